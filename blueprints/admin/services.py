# blueprints/admin/services.py
from __future__ import annotations
from typing import Any

from extensions import db
from models import AuditLog


def record(action: str, entity: str, entity_id: int | None,
           actor_id: str | None, payload: dict[str, Any] | None = None) -> AuditLog:
    """Запись журнала; коммитится вместе с изменением, которое описывает."""
    entry = AuditLog(
        actor_id=actor_id, action=action, entity=entity,
        entity_id=entity_id, payload=payload or {},
    )
    db.session.add(entry)
    return entry

def recent(limit: int = 50, entity: str | None = None) -> list[AuditLog]:
    q = AuditLog.query
    if entity:
        q = q.filter(AuditLog.entity == entity)
    return q.order_by(AuditLog.id.desc()).limit(limit).all()
