# -*- coding: utf-8 -*-

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from ..acl import get_active_tenant_id, tenants_for_user
from ..errors import error_payload
from ..models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

@auth_bp.route("/login", methods=["POST"])
def login():
    payload = request.get_json(silent=True) or request.form
    username = (payload.get("username") or "").strip()
    password = (payload.get("password") or "").strip()
    u = User.query.filter_by(username=username).first()
    if not u or not u.is_active or not u.check_password(password):
        return jsonify(error_payload("Invalid username or password")), 401
    login_user(u, remember=True)
    return jsonify({"ok": True, "data": {"id": u.id, "username": u.username, "role": u.role}})

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True, "data": None})

@auth_bp.route("/me")
@login_required
def me():
    return jsonify({
        "ok": True,
        "data": {
            "id": current_user.id,
            "username": current_user.username,
            "name": current_user.display_name,
            "role": current_user.role,
            "tenants": [dict(t) for t in tenants_for_user(current_user)],
            "active_tenant_id": get_active_tenant_id(current_user),
        },
    })
