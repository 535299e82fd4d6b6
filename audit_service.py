from flask import Flask, request, jsonify
from sqlalchemy import create_engine
import json
from common import config
from common.admin_auth import require_admin
from common.logging_middleware import json_logger
from common.token_engine import TokenEngine
from common.utils import chain_hash, now_ms

DAY_MS = 24 * 60 * 60 * 1000

def init_db(db_url: str):
    engine = create_engine(db_url, future=True)
    # Admin activity ledger (append-only, hash-chained)
    with engine.begin() as con:
        con.exec_driver_sql("""
        CREATE TABLE IF NOT EXISTS admin_activity(
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          ts INTEGER NOT NULL,
          action TEXT,
          role TEXT,
          event TEXT NOT NULL,
          prev_hash TEXT,
          cur_hash TEXT NOT NULL
        )""")
    return engine

def create_app(db_url: str = None, token_engine: TokenEngine = None) -> Flask:
    db = init_db(db_url or config.AUDIT_DB)
    app = Flask("audit")
    app.config["TOKEN_ENGINE"] = token_engine or TokenEngine(config.load_token_config())
    json_logger(app, "audit")

    @app.post("/audit")
    def record():
        event = request.get_json(force=True, silent=True)
        if not isinstance(event, dict):
            return jsonify({"ok": False, "error": "event must be a JSON object"}), 400
        if event.get("ts") is None:
            event["ts"] = now_ms()
        elif isinstance(event["ts"], bool) or not isinstance(event["ts"], int):
            return jsonify({"ok": False, "error": "ts must be an integer (ms)"}), 400
        with db.begin() as con:
            prev = con.exec_driver_sql(
                "SELECT cur_hash FROM admin_activity ORDER BY id DESC LIMIT 1"
            ).first()
            prev_hash = prev[0] if prev else None
            cur_hash = chain_hash(prev_hash, event)
            con.exec_driver_sql(
                "INSERT INTO admin_activity(ts,action,role,event,prev_hash,cur_hash) "
                "VALUES(:ts,:ac,:ro,:ev,:ph,:ch)",
                {"ts": event["ts"], "ac": event.get("action"), "ro": event.get("role"),
                 "ev": json.dumps(event), "ph": prev_hash, "ch": cur_hash}
            )
        return jsonify({"ok": True, "hash": cur_hash})

    @app.get("/audit")
    @require_admin()
    def recent():
        limit = max(1, request.args.get("limit", 50, type=int))
        days = max(1, request.args.get("days", 30, type=int))
        since = now_ms() - days * DAY_MS
        with db.connect() as con:
            rows = con.exec_driver_sql(
                "SELECT id, ts, event, prev_hash, cur_hash FROM admin_activity "
                "WHERE ts >= :since ORDER BY id DESC LIMIT :lim",
                {"since": since, "lim": limit}
            ).fetchall()
        out = []
        for (id_, ts, ev, prevh, curh) in rows:
            out.append({
                "id": id_,
                "ts": ts,
                "event": json.loads(ev),
                "prev_hash": prevh,
                "cur_hash": curh
            })
        return jsonify(out)

    @app.get("/audit/verify")
    @require_admin()
    def verify():
        with db.connect() as con:
            rows = con.exec_driver_sql(
                "SELECT id,event,prev_hash,cur_hash FROM admin_activity ORDER BY id"
            ).fetchall()
        prev = None
        ok = True
        for r in rows:
            ev = json.loads(r[1])
            expected = chain_hash(prev, ev)
            if expected != r[3]:
                ok = False
                break
            prev = r[3]
        return jsonify({"valid": ok, "entries": len(rows)})

    return app

if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5003)
