from __future__ import annotations
import os
from importlib import import_module
from typing import Any
from flask import Flask
from config import config_map
from extensions import db, migrate, login_manager

def _engine_options(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if not uri.startswith("sqlite"):
        return
    # SQLite: писатели ждут друг друга вместо мгновенного "database is locked"
    opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(opts.get("connect_args") or {})
    connect_args.setdefault("check_same_thread", False)
    connect_args.setdefault("timeout", app.config.get("SQLITE_BUSY_TIMEOUT", 30))
    opts["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts

def register_blueprints(app: Flask) -> None:
    # Жёстко импортируем модуль с маршрутами core перед взятием bp
    import_module("blueprints.core.routes")
    from blueprints.core import bp as core_bp
    from blueprints.auth.routes import api_bp as auth_api_bp
    from blueprints.reservations.routes import api_bp as reservations_api_bp
    from blueprints.rooms.routes import api_bp as rooms_api_bp
    from blueprints.admin.routes import api_bp as admin_api_bp

    # core без префикса → '/health' в корне
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_api_bp, url_prefix="/api/v1")
    app.register_blueprint(reservations_api_bp, url_prefix="/api/v1")
    app.register_blueprint(rooms_api_bp, url_prefix="/api/v1")
    app.register_blueprint(admin_api_bp, url_prefix="/api/v1")

def create_app(config_name: str | None = None, overrides: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # переопределения применяем ДО init_app: URI движка читается один раз
    if overrides:
        app.config.update(overrides)
    _engine_options(app)

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    from blueprints.auth.services import ConfigAuthorityProvider
    app.extensions["authority_provider"] = ConfigAuthorityProvider.from_config(app.config)

    register_blueprints(app)
    return app
