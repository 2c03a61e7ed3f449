from __future__ import annotations
import json
import logging

from blueprints.core.routes import JSONFormatter


def test_health_ok(client):
    rv = client.get("/health")
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["status"] == "ok"
    assert data["request_id"]
    assert rv.headers["X-Request-Id"] == data["request_id"]


def test_request_id_is_propagated(client):
    rv = client.get("/health", headers={"X-Request-Id": "abc-123"})
    assert rv.get_json()["request_id"] == "abc-123"
    assert rv.headers["X-Request-Id"] == "abc-123"


def test_unknown_route_is_json_404(client):
    rv = client.get("/api/v1/definitely-missing")
    assert rv.status_code == 404
    assert rv.get_json()["ok"] is False


def test_whoami_uses_configured_roles(client):
    rv = client.get("/api/v1/auth/whoami", headers={"X-User-Id": "user_professor"})
    assert rv.get_json()["actor"] == {"id": "user_professor", "role": "professor", "level": 70}
    # неизвестный пользователь = студент
    rv = client.get("/api/v1/auth/whoami", headers={"X-User-Id": "stranger"})
    assert rv.get_json()["actor"]["role"] == "student"
    assert client.get("/api/v1/auth/whoami").status_code == 401


def test_json_formatter_keeps_booking_fields():
    record = logging.LogRecord("engine", logging.INFO, __file__, 1, "reservation admitted", None, None)
    record.event = "reservation_create"
    record.room_id = 3
    record.code = "c0de"
    out = json.loads(JSONFormatter().format(record))
    assert out["msg"] == "reservation admitted"
    assert out["room_id"] == 3 and out["code"] == "c0de"
    assert out["level"] == "INFO"
