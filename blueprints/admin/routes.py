from __future__ import annotations
from flask import Blueprint, request

from blueprints.auth.routes import admin_required
from blueprints.core.responses import ok
from .services import recent

api_bp = Blueprint("admin_api", __name__)

# быстрый просмотр журнала
@api_bp.get("/admin/audit-logs")
@admin_required
def audit_logs():
    limit = min(500, max(1, request.args.get("limit", 50, type=int)))
    entity = request.args.get("entity") or None
    return ok({"ok": True, "items": [
        {"id": a.id, "actor_id": a.actor_id, "action": a.action, "entity": a.entity,
         "entity_id": a.entity_id, "payload": a.payload, "created_at": a.created_at.isoformat()}
        for a in recent(limit=limit, entity=entity)
    ]})
