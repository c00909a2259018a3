# -*- coding: utf-8 -*-
import logging

from flask import Flask, jsonify, request
from flask_login import login_required, current_user

from .config import Config, ensure_instance
from .extensions import db, migrate, login_manager
from .errors import error_payload

# blueprints
from .auth import auth_bp
from .modules.compensation import bp as compensation_bp
from .modules.incentives import bp as incentives_bp

# ACL
from .acl import get_active_tenant_id, set_active_tenant_id


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    log = logging.getLogger(__name__)
    log.setLevel(level)
    if not logging.getLogger().handlers and not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        log.addHandler(handler)


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)
    ensure_instance(app)
    _configure_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # JSON API: no redirects to a login page
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(error_payload("Authentication required")), 401

    # --- active tenant switch ---
    @app.post("/api/set-tenant")
    @login_required
    def set_tenant():
        payload = request.get_json(silent=True) or {}
        try:
            tid = int(payload.get("tenant_id") or 0)
        except (TypeError, ValueError):
            tid = 0
        if not set_active_tenant_id(current_user, tid):
            return jsonify(error_payload("Tenant access denied")), 403
        return jsonify({"ok": True, "data": {"active_tenant_id": get_active_tenant_id(current_user)}})

    # --- blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(compensation_bp)
    app.register_blueprint(incentives_bp)

    @app.get("/health")
    def health():
        return jsonify({"ok": True, "data": "up"})

    return app
