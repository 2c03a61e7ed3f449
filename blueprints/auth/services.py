# blueprints/auth/services.py
"""
Кто делает запрос и какой у него уровень полномочий.

Пользователей в этой службе нет: идентификатор приходит заголовком от шлюза,
роль отдаёт AuthorityProvider. По умолчанию роли берутся из конфига
(USER_ROLES), провайдер лежит в app.extensions и может быть заменён.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from flask import current_app
from flask_login import UserMixin


class AuthorityProvider(Protocol):
    def role_of(self, actor_id: str) -> str: ...
    def authority_of(self, actor_id: str) -> int: ...
    def level_of(self, role: str) -> int: ...


@dataclass
class ConfigAuthorityProvider:
    levels: Mapping[str, int]
    roles: Mapping[str, str]
    default_role: str = "student"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ConfigAuthorityProvider":
        return cls(
            levels=dict(config.get("AUTHORITY_LEVELS") or {}),
            roles=dict(config.get("USER_ROLES") or {}),
            default_role=config.get("DEFAULT_ROLE", "student"),
        )

    def role_of(self, actor_id: str) -> str:
        return self.roles.get(actor_id, self.default_role)

    def level_of(self, role: str) -> int:
        try:
            return self.levels[role]
        except KeyError:
            raise ValueError(f"unknown role: {role}") from None

    def authority_of(self, actor_id: str) -> int:
        return self.levels.get(self.role_of(actor_id), 0)


class Actor(UserMixin):
    def __init__(self, actor_id: str, role: str, level: int):
        self.id = actor_id
        self.role = role
        self.level = level

    def __repr__(self):
        return f"<Actor {self.id} {self.role}:{self.level}>"


def provider() -> AuthorityProvider:
    return current_app.extensions["authority_provider"]

def actor_for(actor_id: str) -> Actor:
    p = provider()
    return Actor(actor_id, p.role_of(actor_id), p.authority_of(actor_id))

def has_authority(actor: Actor, role: str) -> bool:
    return actor.level >= provider().level_of(role)

def can_modify(actor: Actor, reservation) -> bool:
    # ассистент и выше правят любые брони, остальные только свои
    if has_authority(actor, "assistant"):
        return True
    return has_authority(actor, "student") and reservation.created_by == actor.id
