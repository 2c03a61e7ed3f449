from __future__ import annotations
from types import SimpleNamespace

import pytest

from blueprints.auth.services import Actor, ConfigAuthorityProvider, can_modify


def test_provider_from_config(app):
    p = app.extensions["authority_provider"]
    assert p.authority_of("user_admin") == 100
    assert p.authority_of("user_doorkeeper") == 20
    assert p.authority_of("nobody") == 10
    with pytest.raises(ValueError):
        p.level_of("superuser")


def test_can_modify_rules(app):
    mine = SimpleNamespace(created_by="s1")
    assert can_modify(Actor("s1", "student", 10), mine)
    assert not can_modify(Actor("s2", "student", 10), mine)
    assert not can_modify(Actor("s2", "class_rep", 30), mine)
    assert can_modify(Actor("a1", "assistant", 50), mine)


def test_actor_is_resolved_per_request(client):
    # фикстура app держит один app context на весь тест
    seen = []
    for user in ("user_professor", "stranger", "user_professor"):
        rv = client.get("/api/v1/auth/whoami", headers={"X-User-Id": user})
        assert rv.status_code == 200
        seen.append(rv.get_json()["actor"]["id"])
    assert seen == ["user_professor", "stranger", "user_professor"]

    rv = client.get("/api/v1/auth/whoami")
    assert rv.status_code == 401


def test_provider_can_be_swapped(app, client):
    app.extensions["authority_provider"] = ConfigAuthorityProvider(
        levels=app.config["AUTHORITY_LEVELS"], roles={"eve": "admin"}, default_role="student")
    rv = client.get("/api/v1/admin/audit-logs", headers={"X-User-Id": "eve"})
    assert rv.status_code == 200
    rv = client.get("/api/v1/admin/audit-logs", headers={"X-User-Id": "user_admin"})
    assert rv.status_code == 403
