# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from ...extensions import db
from ...acl import can_manage_compensation, effective_role, resolve_tenant_id
from ...errors import AccessDeniedError, ValidationError, register_error_handlers
from ...models.compensation import PLAN_PARAMETER_FIELDS
from ...money import D
from ...security import roles_required
from ...services import incentive_service

bp = Blueprint("compensation", __name__, url_prefix="/api")
register_error_handlers(bp)

# request keys accepted from older clients
_ALIASES = {
    "tenant_id": ("tenantId",),
    "staff_profile_id": ("staffProfileId",),
    "plan_code": ("planCode",),
    "camp_day_id": ("campDayId",),
    "budget_preapproved_total": ("budgetPreapprovedTotal",),
    "budget_actual_total": ("budgetActualTotal",),
    "csat_avg_score": ("csatAvgScore",),
    "guest_speaker_count": ("guestSpeakerCount",),
    "day_csat_avg_score": ("dayCsatAvgScore",),
    "day_guest_speaker_count": ("dayGuestSpeakerCount",),
}

_METRIC_KEYS = ("budget_preapproved_total", "budget_actual_total", "csat_avg_score", "guest_speaker_count")


# ---------- helpers ----------
def _payload() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data

def _get(payload: dict, key: str, default=None):
    for k in (key,) + _ALIASES.get(key, ()):
        if k in payload and payload[k] is not None:
            return payload[k]
        if k in request.args:
            return request.args.get(k)
    return default

def _int(value, field: str, required: bool = False) -> int | None:
    if value in (None, ""):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")

def _number(value, field: str):
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        # rejects NaN and Infinity in either JSON or string form
        D(value)
    except ValueError:
        raise ValidationError(f"{field} must be a finite number")
    if isinstance(value, (int, float)):
        return value
    return str(value)

def _tenant(payload: dict) -> int:
    return resolve_tenant_id(current_user, _get(payload, "tenant_id"))

def _managed_tenant(payload: dict) -> int:
    tid = _tenant(payload)
    if not can_manage_compensation(current_user, tid):
        raise AccessDeniedError("Only licensee owners and directors can manage compensation")
    return tid

def _visible_staff_id(payload: dict, role: str) -> int | None:
    staff_id = _int(_get(payload, "staff_profile_id"), "staff_profile_id")
    if role == "coach":
        # coaches only see their own records
        if staff_id is None:
            return current_user.id
        if staff_id != current_user.id:
            raise AccessDeniedError("Coaches can only view their own compensation")
    return staff_id

def _metrics(payload: dict) -> dict[str, Any]:
    return {k: _number(_get(payload, k), k) for k in _METRIC_KEYS}

def _ok(data, status: int = 200):
    return jsonify({"ok": True, "data": data}), status


# ---------- plans ----------
@bp.get("/compensation/plans")
@login_required
def plans():
    return _ok(incentive_service(db.session).list_plans())

@bp.put("/compensation/plans/<plan_code>")
@roles_required("hq_admin")
def save_plan(plan_code: str):
    payload = _payload()
    fields = {}
    for k in PLAN_PARAMETER_FIELDS:
        if k in payload:
            fields[k] = _number(payload[k], k)
    if "name" in payload:
        fields["name"] = payload.get("name")
    if "is_active" in payload:
        fields["is_active"] = payload.get("is_active")
    return _ok(incentive_service(db.session).save_plan(plan_code, **fields))


# ---------- session compensation ----------
@bp.post("/camps/<int:camp_id>/hq/compensation")
@login_required
def attach(camp_id: int):
    payload = _payload()
    tid = _managed_tenant(payload)
    staff_id = _int(_get(payload, "staff_profile_id"), "staff_profile_id", required=True)
    plan_code = (_get(payload, "plan_code") or "").strip().upper()
    if not plan_code:
        raise ValidationError("plan_code is required")
    data = incentive_service(db.session).attach_plan(camp_id, staff_id, plan_code, tid)
    return _ok(data, 201)

@bp.get("/camps/<int:camp_id>/hq/compensation")
@login_required
def summary(camp_id: int):
    payload = {}
    tid = _tenant(payload)
    role = effective_role(current_user, tid)
    staff_id = _visible_staff_id(payload, role)
    return _ok(incentive_service(db.session).get_session_summary(camp_id, tid, role, staff_id))

@bp.patch("/camps/<int:camp_id>/hq/compensation")
@login_required
def update_metrics(camp_id: int):
    payload = _payload()
    tid = _managed_tenant(payload)
    staff_id = _int(_get(payload, "staff_profile_id"), "staff_profile_id", required=True)
    data = incentive_service(db.session).update_session_metrics(camp_id, staff_id, tid, **_metrics(payload))
    return _ok(data)

@bp.post("/camps/<int:camp_id>/hq/compensation/calculate")
@login_required
def calculate(camp_id: int):
    payload = _payload()
    tid = _managed_tenant(payload)
    staff_id = _int(_get(payload, "staff_profile_id"), "staff_profile_id", required=True)
    data = incentive_service(db.session).calculate_session_compensation(camp_id, staff_id, tid, **_metrics(payload))
    return _ok(data)


# ---------- daily snapshots ----------
@bp.post("/camps/<int:camp_id>/hq/compensation/snapshots")
@login_required
def capture_snapshot(camp_id: int):
    payload = _payload()
    tid = _managed_tenant(payload)
    svc = incentive_service(db.session)
    day_id = _int(_get(payload, "camp_day_id"), "camp_day_id", required=True)
    day = svc.camps.get_camp_day(day_id)
    if day is not None and day.camp_id != camp_id:
        raise ValidationError("Camp day belongs to another camp")
    notes = _get(payload, "notes")
    data = svc.capture_day_snapshot(
        day_id,
        _int(_get(payload, "staff_profile_id"), "staff_profile_id", required=True),
        tid,
        day_csat_avg_score=_number(_get(payload, "day_csat_avg_score"), "day_csat_avg_score"),
        day_guest_speaker_count=_number(_get(payload, "day_guest_speaker_count"), "day_guest_speaker_count"),
        notes=str(notes) if notes is not None else None,
    )
    return _ok(data)

@bp.get("/camps/<int:camp_id>/hq/compensation/snapshots")
@login_required
def snapshots(camp_id: int):
    payload = {}
    tid = _tenant(payload)
    staff_id = _visible_staff_id(payload, effective_role(current_user, tid))
    if staff_id is None:
        raise ValidationError("staff_profile_id is required")
    return _ok(incentive_service(db.session).get_daily_snapshots(camp_id, staff_id, tid))
