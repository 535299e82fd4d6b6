import json, time
from flask import g, request

def log_event(service: str, event: str, **fields):
    log = {"ts": int(time.time()*1000), "service": service, "event": event}
    log.update(fields)
    print(json.dumps(log), flush=True)

def json_logger(app, service_name: str):
    @app.before_request
    def _start():
        request._start_ts = time.time()

    @app.after_request
    def _end(resp):
        cid = request.headers.get("X-Correlation-Id", "-")
        # request.path only: the query string carries the admin token
        log = {
            "ts": int(time.time()*1000),
            "service": service_name,
            "cid": cid,
            "method": request.method,
            "path": request.path,
            "status": resp.status_code,
            "role": getattr(g, "admin_role", None),
            "ms": int((time.time() - getattr(request,"_start_ts",time.time()))*1000)
        }
        print(json.dumps(log), flush=True)
        return resp
