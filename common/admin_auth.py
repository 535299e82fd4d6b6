from functools import wraps
from flask import current_app, g, jsonify, request
from common.logging_middleware import log_event
from common.utils import client_ip

def require_admin(allowed_roles=None):
    """Gate a view on ?token=. The resolved role lands on g.admin_role.

    The app must carry a TokenEngine in app.config["TOKEN_ENGINE"].
    """
    allowed = {getattr(r, "value", r) for r in allowed_roles} if allowed_roles else None

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            engine = current_app.config["TOKEN_ENGINE"]
            role = engine.resolve_role(request.args.get("token", ""))
            if role is None:
                log_event(current_app.name, "auth_failed", path=request.path, client=client_ip())
                return jsonify({"success": False, "error": "unauthorized"}), 401
            g.admin_role = role.value
            if allowed is not None and role.value not in allowed:
                log_event(current_app.name, "role_forbidden", path=request.path, role=role.value)
                return jsonify({"success": False, "error": "forbidden"}), 403
            return view(*args, **kwargs)
        return wrapper
    return decorator
