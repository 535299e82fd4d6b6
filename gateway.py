import platform, sys, uuid, requests
from datetime import datetime, timezone
from flask import Flask, Response, g, jsonify, request

from common import config
from common.admin_auth import require_admin
from common.logging_middleware import json_logger, log_event
from common.rate_limit import FixedWindowLimiter, rate_limit
from common.token_engine import Role, TokenEngine, today_date_string
from common.utils import client_ip, now_ms

STATS_ROLES = (Role.DEVELOPER, Role.PM)
ACTIONS = {"POST": "create", "PUT": "update", "PATCH": "update", "DELETE": "delete"}
# hop-by-hop and length headers requests already decoded
SKIP_HEADERS = {"content-encoding", "content-length", "transfer-encoding", "connection"}


def audit(event: dict, audit_url: str):
    try:
        ev = {"ts": now_ms()} | event
        requests.post(audit_url, json=ev, timeout=3)
    except requests.RequestException as e:
        # activity logging never fails the admin request
        log_event("gateway", "audit_unreachable", reason=str(e))


def forward(path: str, upstream_url: str, audit_url: str):
    cid = request.headers.get("X-Correlation-Id", str(uuid.uuid4()))
    params = [(k, v) for k, v in request.args.items(multi=True) if k != "token"]
    headers = {"X-Correlation-Id": cid, "X-Admin-Role": g.admin_role}
    if request.content_type:
        headers["Content-Type"] = request.content_type
    try:
        res = requests.request(request.method, f"{upstream_url}/api/control/{path}",
                               params=params, headers=headers, data=request.get_data(),
                               timeout=5)
    except requests.RequestException as e:
        log_event("gateway", "upstream_unreachable", cid=cid, path=path, reason=str(e))
        return jsonify({"success": False, "error": "content service unavailable"}), 502

    action = ACTIONS.get(request.method)
    if action and 200 <= res.status_code < 300:
        audit({"event": "admin_activity", "action": action, "path": f"/api/control/{path}",
               "role": g.admin_role, "admin_name": f"{g.admin_role}_admin",
               "ip": client_ip(), "user_agent": request.headers.get("User-Agent", "Unknown"),
               "cid": cid, "result": res.status_code}, audit_url)
    out_headers = [(k, v) for k, v in res.headers.items() if k.lower() not in SKIP_HEADERS]
    return Response(res.content, status=res.status_code, headers=out_headers)


def create_app(engine: TokenEngine = None, upstream_url: str = None, audit_url: str = None,
               app_env: str = None, limiter: FixedWindowLimiter = None) -> Flask:
    engine = engine or TokenEngine(config.load_token_config())
    upstream_url = (upstream_url or config.UPSTREAM_URL).rstrip("/")
    audit_url = audit_url or config.AUDIT_URL
    debug_enabled = config.is_development(app_env)
    limiter = limiter or FixedWindowLimiter(config.RATE_LIMIT_WINDOW_SECONDS,
                                            config.RATE_LIMIT_MAX_REQUESTS)

    app = Flask("gateway")
    app.config["TOKEN_ENGINE"] = engine
    json_logger(app, "gateway")
    rate_limit(app, limiter)

    if not debug_enabled and config.missing_env_vars():
        log_event("gateway", "insecure_defaults", missing=config.missing_env_vars())

    @app.get("/api/auth/role")
    @require_admin()
    def auth_role():
        return jsonify({"success": True, "valid": True, "role": g.admin_role})

    @app.route("/api/control/stats", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    @require_admin(STATS_ROLES)
    def stats():
        return forward("stats", upstream_url, audit_url)

    @app.route("/api/control/<path:path>", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    @require_admin()
    def control(path):
        return forward(path, upstream_url, audit_url)

    @app.get("/api/debug/token")
    def debug_token():
        if not debug_enabled:
            return jsonify({"error": "This API is only available in development"}), 403
        token = request.args.get("token")
        if not token:
            return jsonify({"error": "Token parameter is required"}), 400

        now = datetime.now(timezone.utc)
        date = today_date_string(now)
        role = engine.resolve_role(token, now)
        ingredients = {}
        for r in Role:
            try:
                ingredients[r.value] = engine.ingredients(date, r)
            except ValueError as e:
                ingredients[r.value] = f"Error: {e}"
        missing = set(config.missing_env_vars())
        return jsonify({
            "success": True,
            "debug": {
                "receivedToken": token,
                "currentDate": date,
                "currentDateTime": now.isoformat(),
                "validRole": role.value if role else None,
                "isValid": role is not None,
                "expectedTokens": engine.expected_tokens(date),
                "tokenIngredients": ingredients,
                "environmentInfo": {n: ("unset" if n in missing else "set")
                                    for n in config.env_var_names()},
                "serverInfo": {
                    "appEnv": app_env or config.APP_ENV,
                    "timezone": "UTC",
                    "platform": sys.platform,
                    "pythonVersion": platform.python_version(),
                },
            },
            "result": {
                "valid": role is not None,
                "role": role.value if role else None,
                "message": f"Valid token for role: {role.value}" if role else "Invalid token",
            },
        })

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000)
