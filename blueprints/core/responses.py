from __future__ import annotations
from typing import Any

from flask import jsonify


def ok(data: Any, status: int = 200):
    return jsonify(data), status

def created(location: str, data: Any):
    resp = jsonify(data)
    resp.status_code = 201
    resp.headers["Location"] = location
    return resp

def error(kind: str, message: str, status: int = 400, details: dict | None = None):
    return jsonify({"ok": False, "error": {
        "kind": kind, "message": message, "details": details or {},
    }}), status
