from __future__ import annotations
import json, logging, time
from datetime import datetime, timezone
from uuid import uuid4

from flask import g, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers.response import Response

from . import bp

REQUEST_ID_HEADER = "X-Request-Id"
EXTRA_KEYS = ("event", "path", "method", "status", "duration_ms", "request_id",
              "room_id", "code", "kind", "attempt", "preempted")

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)

def _setup_structured_logging(app):
    # корневой логгер: сюда пишут и app.logger, и модульные логгеры движка
    logger = logging.getLogger()
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in logger.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

@bp.before_app_request
def _start_timer_and_request_id():
    g._req_start = time.perf_counter()
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()[:64]
    g.request_id = rid or uuid4().hex

@bp.after_app_request
def _log_request(response: Response):
    start = getattr(g, "_req_start", None)
    duration_ms = int((time.perf_counter() - start) * 1000) if start is not None else None
    rid = getattr(g, "request_id", None)
    if rid:
        response.headers[REQUEST_ID_HEADER] = rid
    extra = {
        "event": "http_request",
        "path": request.path,
        "method": request.method,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "request_id": rid,
    }
    logging.getLogger(__name__).info("request handled", extra=extra)
    return response

@bp.app_errorhandler(HTTPException)
def _http_error(e: HTTPException):
    # 401/403 отдают обработчики auth; здесь 404, 405 и прочее
    return jsonify({"ok": False, "error": {
        "kind": (e.name or "error").upper().replace(" ", "_"),
        "message": e.description,
        "details": {},
    }}), e.code

@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)

@bp.get("/health")
def health():
    return jsonify({
        "status": "ok",
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "request_id": getattr(g, "request_id", None),
    })
