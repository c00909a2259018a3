# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import date

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user

from ...extensions import db
from ...acl import effective_role, resolve_tenant_id
from ...config import season_window
from ...errors import AccessDeniedError, ValidationError, register_error_handlers
from ...models.user import ADMIN_ROLES
from ...security import roles_required
from ...services import incentive_service, overview_service

bp = Blueprint("incentives", __name__, url_prefix="/api/incentives")
register_error_handlers(bp)


def _tenant() -> int:
    return resolve_tenant_id(current_user, request.args.get("tenant_id") or request.args.get("tenantId"))

def _admin_tenant() -> int:
    tid = _tenant()
    if effective_role(current_user, tid) not in ADMIN_ROLES:
        raise AccessDeniedError("Licensee owners only")
    return tid

def _season_year() -> int:
    raw = request.args.get("year")
    if not raw:
        return date.today().year
    try:
        y = int(raw)
    except ValueError:
        raise ValidationError("year must be an integer")
    if y < 2000 or y > 2100:
        raise ValidationError("year out of range")
    return y


@bp.get("/overview")
@login_required
def tenant_overview():
    tid = _admin_tenant()
    return jsonify({"ok": True, "data": overview_service(db.session).tenant_overview(tid)})

@bp.get("/overview/global")
@roles_required("hq_admin")
def global_overview():
    return jsonify({"ok": True, "data": overview_service(db.session).global_overview()})

@bp.get("/overview/me")
@login_required
def my_overview():
    tid = _tenant()
    data = overview_service(db.session).director_overview(current_user.id, tid)
    return jsonify({"ok": True, "data": data})

@bp.get("/licensee-summary")
@login_required
def licensee_summary():
    tid = _admin_tenant()
    try:
        start, end = season_window(_season_year(), current_app.config)
    except ValueError as exc:
        raise ValidationError(str(exc))
    data = overview_service(db.session).licensee_summary(tid, start, end)
    return jsonify({"ok": True, "data": data})

@bp.get("/history/<int:staff_profile_id>")
@login_required
def history(staff_profile_id: int):
    tid = _tenant()
    role = effective_role(current_user, tid)
    if staff_profile_id != current_user.id and role not in ADMIN_ROLES + ("director",):
        raise AccessDeniedError("Cannot view another staff member's history")
    data = incentive_service(db.session).get_person_history(staff_profile_id, role, tid)
    return jsonify({"ok": True, "data": data})
