# blueprints/auth/routes.py
from __future__ import annotations
import logging
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, abort, current_app, g, jsonify, request
from flask_login import current_user, login_required

from extensions import login_manager
from .services import Actor, actor_for, has_authority

log = logging.getLogger(__name__)

api_bp = Blueprint("auth_api", __name__)

MAX_ACTOR_ID = 64

# ---------- кто пришёл ----------
@api_bp.before_app_request
def _reset_cached_actor():
    # Flask-Login кэширует пользователя в g, а g живёт вместе с app context,
    # который может пережить несколько запросов (внешний app_context в CLI и тестах)
    g.pop("_login_user", None)

@login_manager.request_loader
def load_actor_from_request(req) -> Optional[Actor]:
    header = current_app.config.get("AUTH_HEADER", "X-User-Id")
    actor_id = (req.headers.get(header) or "").strip()
    if not actor_id or len(actor_id) > MAX_ACTOR_ID:
        return None
    return actor_for(actor_id)

# ---------- декораторы полномочий ----------
def authority_required(role: str):
    def decorator(fn: Callable):
        @wraps(fn)
        @login_required
        def wrapper(*args, **kwargs):
            if not has_authority(current_user, role):
                log.info("authority denied", extra={
                    "event": "forbidden", "path": request.path, "required": role,
                })
                abort(403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def admin_required(fn: Callable):
    return authority_required("admin")(fn)

# ---------- обработчики 401/403 ----------
@login_manager.unauthorized_handler
def _unauth():
    return jsonify({"ok": False, "error": {
        "kind": "UNAUTHENTICATED", "message": "missing actor header", "details": {},
    }}), 401

@api_bp.app_errorhandler(403)
def _forbidden(e):
    return jsonify({"ok": False, "error": {
        "kind": "FORBIDDEN", "message": "insufficient authority", "details": {},
    }}), 403

# ---------- API ----------
@api_bp.get("/auth/whoami")
@login_required
def whoami():
    return jsonify({"ok": True, "actor": {
        "id": current_user.id, "role": current_user.role, "level": current_user.level,
    }})
