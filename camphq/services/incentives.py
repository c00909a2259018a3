# -*- coding: utf-8 -*-
"""
Staff compensation workflow for camp sessions.

attach plan -> capture daily snapshots / update metrics -> calculate (one-shot,
finalizes the record). Plan parameters are copied onto the session when the
plan is attached, so later plan edits never change an assigned session.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..errors import AlreadyFinalizedError, DuplicateRecordError, NotFoundError, ValidationError
from ..models import CampDayCompensationSnapshot, CampSessionCompensation, CompensationPlan
from ..models.compensation import PLAN_CODES, PLAN_PARAMETER_FIELDS
from ..models.user import ADMIN_ROLES
from ..money import MAX_AMOUNT, D, as_number, money, rate, score
from ..repositories import (
    CampRepository,
    DailySnapshotRepository,
    PlanRepository,
    SessionCompensationRepository,
)
from .calculator import PlanTerms, SessionMetrics, calculate

logger = logging.getLogger(__name__)

MAX_CSAT = D("5")
# largest value an Integer column holds
MAX_COUNT = 2**31 - 1

_MONEY_FIELDS = {
    "pre_camp_stipend_amount",
    "on_site_stipend_amount",
    "enrollment_bonus_per_camper",
    "csat_bonus_amount",
    "guest_speaker_bonus_amount",
}
_COUNT_FIELDS = {"enrollment_threshold", "guest_speaker_required_count"}


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ---------- validation ----------

def _parsed(convert, value, field: str):
    try:
        return convert(value)
    except ValueError:
        raise ValidationError(f"{field} must be a finite number")


def _check_score(value, field: str):
    if value is None:
        return None
    v = _parsed(score, value, field)
    if v < 0 or v > MAX_CSAT:
        raise ValidationError(f"{field} must be between 0 and {MAX_CSAT}")
    return v


def _check_amount(value, field: str):
    if value is None:
        return None
    v = _parsed(money, value, field)
    if v < 0:
        raise ValidationError(f"{field} must not be negative")
    if v > MAX_AMOUNT:
        raise ValidationError(f"{field} must not exceed {MAX_AMOUNT}")
    return v


def _check_count(value, field: str):
    if value is None:
        return None
    d = _parsed(D, value, field)
    if d != d.to_integral_value() or d < 0:
        raise ValidationError(f"{field} must be a non-negative whole number")
    if d > MAX_COUNT:
        raise ValidationError(f"{field} must not exceed {MAX_COUNT}")
    return int(d)


def _check_rate(value, field: str):
    if value is None:
        return None
    v = _parsed(rate, value, field)
    if v < 0 or v > 1:
        raise ValidationError(f"{field} must be a fraction between 0 and 1")
    return v


# ---------- serialization ----------

def plan_detail(plan: CompensationPlan) -> dict[str, Any]:
    return {
        "id": plan.id,
        "name": plan.name,
        "plan_code": plan.plan_code,
        "pre_camp_stipend_amount": as_number(D(plan.pre_camp_stipend_amount)),
        "on_site_stipend_amount": as_number(D(plan.on_site_stipend_amount)),
        "enrollment_threshold": plan.enrollment_threshold,
        "enrollment_bonus_per_camper": as_number(plan.enrollment_bonus_per_camper),
        "csat_required_score": as_number(plan.csat_required_score),
        "csat_bonus_amount": as_number(plan.csat_bonus_amount),
        "budget_efficiency_rate": as_number(plan.budget_efficiency_rate),
        "guest_speaker_required_count": plan.guest_speaker_required_count,
        "guest_speaker_bonus_amount": as_number(plan.guest_speaker_bonus_amount),
        "is_active": bool(plan.is_active),
    }


def session_detail(rec: CampSessionCompensation, plan=None, camp=None, staff=None, tenant=None) -> dict[str, Any]:
    n = as_number
    out = {
        "id": rec.id,
        "camp_id": rec.camp_id,
        "tenant_id": rec.tenant_id,
        "staff_profile_id": rec.staff_profile_id,
        "compensation_plan_id": rec.compensation_plan_id,
        "plan_name": plan.name if plan is not None else None,
        "plan_code": plan.plan_code if plan is not None else None,
        # snapshotted plan parameters
        "pre_camp_stipend_amount": n(D(rec.pre_camp_stipend_amount)),
        "on_site_stipend_amount": n(D(rec.on_site_stipend_amount)),
        "enrollment_threshold": rec.enrollment_threshold,
        "enrollment_bonus_per_camper": n(rec.enrollment_bonus_per_camper),
        "csat_required_score": n(rec.csat_required_score),
        "csat_bonus_amount": n(rec.csat_bonus_amount),
        "budget_efficiency_rate": n(rec.budget_efficiency_rate),
        "guest_speaker_required_count": rec.guest_speaker_required_count,
        "guest_speaker_bonus_amount": n(rec.guest_speaker_bonus_amount),
        # performance metrics
        "total_enrolled_campers": rec.total_enrolled_campers,
        "csat_avg_score": n(rec.csat_avg_score),
        "budget_preapproved_total": n(rec.budget_preapproved_total),
        "budget_actual_total": n(rec.budget_actual_total),
        "budget_savings_amount": n(rec.budget_savings_amount),
        "guest_speaker_count": rec.guest_speaker_count,
        # calculated amounts
        "enrollment_bonus_earned": n(rec.enrollment_bonus_earned),
        "csat_bonus_earned": n(rec.csat_bonus_earned),
        "budget_efficiency_bonus_earned": n(rec.budget_efficiency_bonus_earned),
        "guest_speaker_bonus_earned": n(rec.guest_speaker_bonus_earned),
        "fixed_stipend_total": n(rec.fixed_stipend_total),
        "total_variable_bonus": n(rec.total_variable_bonus),
        "total_compensation": n(rec.total_compensation),
        "calculated_at": _iso(rec.calculated_at),
        "is_finalized": bool(rec.is_finalized),
        "created_at": _iso(rec.created_at),
        "updated_at": _iso(rec.updated_at),
    }
    if camp is not None:
        out["camp_name"] = camp.name
        out["camp_start_date"] = _iso(camp.start_date)
        out["camp_end_date"] = _iso(camp.end_date)
    if staff is not None:
        out["staff_name"] = staff.display_name
    if tenant is not None:
        out["tenant_name"] = tenant.name
    return out


def snapshot_detail(snap: CampDayCompensationSnapshot, day=None) -> dict[str, Any]:
    return {
        "id": snap.id,
        "camp_day_id": snap.camp_day_id,
        "camp_id": snap.camp_id,
        "staff_profile_id": snap.staff_profile_id,
        "session_compensation_id": snap.session_compensation_id,
        "day_number": day.day_number if day is not None else None,
        "date": _iso(day.date) if day is not None else None,
        "day_enrolled_campers": snap.day_enrolled_campers,
        "day_checked_in_count": snap.day_checked_in_count,
        "day_checked_out_count": snap.day_checked_out_count,
        "day_no_show_count": snap.day_no_show_count,
        "day_csat_avg_score": as_number(snap.day_csat_avg_score),
        "day_guest_speaker_count": snap.day_guest_speaker_count,
        "notes": snap.notes,
        "created_at": _iso(snap.created_at),
    }


class IncentiveService:
    def __init__(
        self,
        plans: PlanRepository,
        sessions: SessionCompensationRepository,
        snapshots: DailySnapshotRepository,
        camps: CampRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.plans = plans
        self.sessions = sessions
        self.snapshots = snapshots
        self.camps = camps
        self.clock = clock or _utcnow

    # ---------- plans ----------

    def list_plans(self) -> list[dict[str, Any]]:
        return [plan_detail(p) for p in self.plans.list_active()]

    def get_plan(self, plan_code: str) -> dict[str, Any]:
        return plan_detail(self._plan(plan_code))

    def save_plan(self, plan_code: str, **fields) -> dict[str, Any]:
        """Create or edit a plan template. Attached sessions keep their snapshot."""
        plan_code = (plan_code or "").strip().upper()
        if plan_code not in PLAN_CODES:
            raise ValidationError(f"Unknown plan code: {plan_code}")

        values: dict[str, Any] = {}
        for field in PLAN_PARAMETER_FIELDS:
            if field not in fields:
                continue
            v = fields[field]
            if field in _MONEY_FIELDS:
                values[field] = _check_amount(v, field)
            elif field in _COUNT_FIELDS:
                values[field] = _check_count(v, field)
            elif field == "csat_required_score":
                values[field] = _check_score(v, field)
            elif field == "budget_efficiency_rate":
                values[field] = _check_rate(v, field)
        for field in ("pre_camp_stipend_amount", "on_site_stipend_amount"):
            if field in values and values[field] is None:
                raise ValidationError(f"{field} is required")

        plan = self.plans.get_by_code(plan_code)
        created = plan is None
        if created:
            name = (fields.get("name") or "").strip()
            if not name:
                raise ValidationError("name is required")
            plan = CompensationPlan(
                plan_code=plan_code,
                name=name,
                pre_camp_stipend_amount=money(0),
                on_site_stipend_amount=money(0),
                is_active=True,
            )
        elif fields.get("name"):
            plan.name = str(fields["name"]).strip()
        if "is_active" in fields and fields["is_active"] is not None:
            plan.is_active = bool(fields["is_active"])
        for field, v in values.items():
            setattr(plan, field, v)

        plan = self.plans.add(plan) if created else self.plans.save(plan)
        logger.info("compensation plan %s %s", plan_code, "created" if created else "updated")
        return plan_detail(plan)

    def _plan(self, plan_code: str) -> CompensationPlan:
        plan = self.plans.get_by_code(plan_code)
        if plan is None:
            raise NotFoundError(f"Plan not found: {plan_code}")
        return plan

    # ---------- attach ----------

    @staticmethod
    def _apply_plan(rec: CampSessionCompensation, plan: CompensationPlan) -> None:
        rec.compensation_plan_id = plan.id
        rec.plan = plan
        for field in PLAN_PARAMETER_FIELDS:
            setattr(rec, field, getattr(plan, field))

    def _refresh_snapshot(self, rec, plan):
        if rec.is_finalized:
            logger.warning("attach rejected: session %s is finalized", rec.id)
            raise AlreadyFinalizedError("Compensation already finalized")
        self._apply_plan(rec, plan)
        return self.sessions.save(rec)

    def attach_plan(self, camp_id: int, staff_profile_id: int, plan_code: str, tenant_id: int) -> dict[str, Any]:
        plan = self._plan(plan_code)
        camp = self.camps.get_camp(camp_id, tenant_id)
        if camp is None:
            raise NotFoundError("Camp not found")
        staff = self.camps.get_staff(staff_profile_id)
        if staff is None:
            raise NotFoundError("Staff member not found")

        rec = self.sessions.find(camp_id, staff_profile_id)
        if rec is not None:
            rec = self._refresh_snapshot(rec, plan)
        else:
            rec = CampSessionCompensation(
                camp_id=camp_id,
                staff_profile_id=staff_profile_id,
                tenant_id=tenant_id,
                is_finalized=False,
            )
            self._apply_plan(rec, plan)
            try:
                rec = self.sessions.add(rec)
            except DuplicateRecordError:
                # another request created the row first; update that one
                rec = self.sessions.find(camp_id, staff_profile_id)
                if rec is None:
                    raise
                rec = self._refresh_snapshot(rec, plan)

        logger.info("plan %s attached: camp=%s staff=%s", plan.plan_code, camp_id, staff_profile_id)
        return session_detail(rec, plan=plan, camp=camp, staff=staff)

    # ---------- reads ----------

    def _session(self, camp_id, staff_profile_id, tenant_id) -> CampSessionCompensation:
        rec = self.sessions.find(camp_id, staff_profile_id, tenant_id)
        if rec is None:
            raise NotFoundError("No compensation record found")
        return rec

    def _detail(self, rec) -> dict[str, Any]:
        return session_detail(
            rec,
            plan=rec.plan,
            camp=self.camps.get_camp(rec.camp_id),
            staff=self.camps.get_staff(rec.staff_profile_id),
            tenant=self.camps.get_tenant(rec.tenant_id),
        )

    def get_session_compensation(self, camp_id: int, tenant_id: int,
                                 staff_profile_id: Optional[int] = None) -> Optional[dict[str, Any]]:
        if staff_profile_id is not None:
            rec = self.sessions.find(camp_id, staff_profile_id, tenant_id)
        else:
            rec = next(
                (r for r in self.sessions.list_for_tenant(tenant_id) if r.camp_id == camp_id),
                None,
            )
        return self._detail(rec) if rec is not None else None

    def _snapshot_rows(self, camp_id, staff_profile_id) -> list[dict[str, Any]]:
        return [
            snapshot_detail(s, self.camps.get_camp_day(s.camp_day_id))
            for s in self.snapshots.list_for_session(camp_id, staff_profile_id)
        ]

    def get_daily_snapshots(self, camp_id: int, staff_profile_id: int, tenant_id: int) -> list[dict[str, Any]]:
        if self.camps.get_camp(camp_id, tenant_id) is None:
            raise NotFoundError("Camp not found or access denied")
        return self._snapshot_rows(camp_id, staff_profile_id)

    def get_session_summary(self, camp_id: int, tenant_id: Optional[int], role: str,
                            staff_profile_id: Optional[int] = None) -> Optional[dict[str, Any]]:
        """Plan, session, daily snapshots, staff and camp for one session.

        Non-admin roles must name the staff member; hq_admin is not tenant-scoped.
        """
        if role not in ADMIN_ROLES and staff_profile_id is None:
            raise ValidationError("Staff profile ID required")
        scope = None if role == "hq_admin" else tenant_id

        if staff_profile_id is not None:
            rec = self.sessions.find(camp_id, staff_profile_id, scope)
        elif scope is not None:
            rec = next((r for r in self.sessions.list_for_tenant(scope) if r.camp_id == camp_id), None)
        else:
            raise ValidationError("Staff profile ID or tenant required")
        if rec is None:
            return None

        plan = rec.plan
        camp = self.camps.get_camp(rec.camp_id)
        staff = self.camps.get_staff(rec.staff_profile_id)
        return {
            "plan": plan_detail(plan) if plan is not None else None,
            "session": session_detail(rec, plan=plan),
            "daily_snapshots": self._snapshot_rows(rec.camp_id, rec.staff_profile_id),
            "staff": {
                "id": rec.staff_profile_id,
                "name": staff.display_name if staff is not None else "",
                "email": staff.email if staff is not None else "",
            },
            "camp": {
                "id": rec.camp_id,
                "name": camp.name if camp is not None else "",
                "start_date": _iso(camp.start_date) if camp is not None else None,
                "end_date": _iso(camp.end_date) if camp is not None else None,
            },
        }

    def get_person_history(self, staff_profile_id: int, role: str,
                           tenant_id: Optional[int] = None) -> list[dict[str, Any]]:
        scope = None if role == "hq_admin" else tenant_id
        return [self._detail(r) for r in self.sessions.list_for_staff(staff_profile_id, scope)]

    # ---------- daily snapshots ----------

    def capture_day_snapshot(
        self,
        camp_day_id: int,
        staff_profile_id: int,
        tenant_id: int,
        day_csat_avg_score=None,
        day_guest_speaker_count=None,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        day_csat_avg_score = _check_score(day_csat_avg_score, "day_csat_avg_score")
        day_guest_speaker_count = _check_count(day_guest_speaker_count, "day_guest_speaker_count")

        day = self.camps.get_camp_day(camp_day_id)
        if day is None:
            raise NotFoundError("Camp day not found")
        rec = self.sessions.find(day.camp_id, staff_profile_id, tenant_id)
        if rec is None:
            raise NotFoundError("No compensation record found for this staff member")

        rows = self.camps.attendance_for_day(camp_day_id)
        counts = {
            "day_enrolled_campers": len(rows),
            "day_checked_in_count": sum(1 for a in rows if a.check_in_time),
            "day_checked_out_count": sum(1 for a in rows if a.check_out_time),
            "day_no_show_count": sum(1 for a in rows if not a.check_in_time and a.status == "absent"),
        }

        snap = self.snapshots.find(camp_day_id, staff_profile_id)
        if snap is None:
            snap = CampDayCompensationSnapshot(
                camp_day_id=camp_day_id,
                camp_id=day.camp_id,
                staff_profile_id=staff_profile_id,
                session_compensation_id=rec.id,
                day_csat_avg_score=day_csat_avg_score,
                day_guest_speaker_count=day_guest_speaker_count or 0,
                notes=notes,
                **counts,
            )
            try:
                snap = self.snapshots.add(snap)
            except DuplicateRecordError:
                snap = self.snapshots.find(camp_day_id, staff_profile_id)
                if snap is None:
                    raise
                snap = self._update_snapshot(snap, counts, day_csat_avg_score, day_guest_speaker_count, notes)
        else:
            snap = self._update_snapshot(snap, counts, day_csat_avg_score, day_guest_speaker_count, notes)

        logger.info("day snapshot captured: day=%s staff=%s", camp_day_id, staff_profile_id)
        return snapshot_detail(snap, day)

    def _update_snapshot(self, snap, counts, csat, guests, notes):
        for k, v in counts.items():
            setattr(snap, k, v)
        if csat is not None:
            snap.day_csat_avg_score = csat
        if guests is not None:
            snap.day_guest_speaker_count = guests
        if notes is not None:
            snap.notes = notes
        return self.snapshots.save(snap)

    # ---------- metrics ----------

    def update_session_metrics(
        self,
        camp_id: int,
        staff_profile_id: int,
        tenant_id: int,
        budget_preapproved_total=None,
        budget_actual_total=None,
        csat_avg_score=None,
        guest_speaker_count=None,
    ) -> dict[str, Any]:
        preapproved = _check_amount(budget_preapproved_total, "budget_preapproved_total")
        actual = _check_amount(budget_actual_total, "budget_actual_total")
        csat = _check_score(csat_avg_score, "csat_avg_score")
        guests = _check_count(guest_speaker_count, "guest_speaker_count")

        rec = self._session(camp_id, staff_profile_id, tenant_id)
        if rec.is_finalized:
            logger.warning("metrics update rejected: session %s is finalized", rec.id)
            raise AlreadyFinalizedError("Cannot update finalized compensation")

        if preapproved is not None:
            rec.budget_preapproved_total = preapproved
        if actual is not None:
            rec.budget_actual_total = actual
        if csat is not None:
            rec.csat_avg_score = csat
        if guests is not None:
            rec.guest_speaker_count = guests
        if rec.budget_preapproved_total is not None and rec.budget_actual_total is not None:
            rec.budget_savings_amount = money(
                max(D(rec.budget_preapproved_total) - D(rec.budget_actual_total), D(0))
            )

        rec = self.sessions.save(rec)
        return self._detail(rec)

    # ---------- calculation ----------

    def calculate_session_compensation(
        self,
        camp_id: int,
        staff_profile_id: int,
        tenant_id: int,
        budget_preapproved_total=None,
        budget_actual_total=None,
        csat_avg_score=None,
        guest_speaker_count=None,
    ) -> dict[str, Any]:
        """Run the bonus rules once and finalize the session."""
        preapproved = _check_amount(budget_preapproved_total, "budget_preapproved_total")
        actual = _check_amount(budget_actual_total, "budget_actual_total")
        csat = _check_score(csat_avg_score, "csat_avg_score")
        guests = _check_count(guest_speaker_count, "guest_speaker_count")

        rec = self._session(camp_id, staff_profile_id, tenant_id)
        if rec.is_finalized:
            logger.warning("recalculation rejected: session %s is finalized", rec.id)
            raise AlreadyFinalizedError("Compensation already finalized")

        enrolled = int(self.camps.count_enrollments(camp_id))
        if guests is None:
            guests = int(self.snapshots.guest_speaker_total(camp_id, staff_profile_id))
        if csat is None:
            csat = rec.csat_avg_score
        if preapproved is None:
            preapproved = money(rec.budget_preapproved_total or 0)
        if actual is None:
            actual = money(rec.budget_actual_total or 0)

        result = calculate(
            PlanTerms.from_record(rec),
            SessionMetrics(
                enrolled_campers=enrolled,
                csat_avg_score=csat,
                budget_preapproved_total=preapproved,
                budget_actual_total=actual,
                guest_speaker_count=guests,
            ),
        )

        rec.total_enrolled_campers = enrolled
        rec.csat_avg_score = csat
        rec.budget_preapproved_total = preapproved
        rec.budget_actual_total = actual
        rec.budget_savings_amount = result.budget_efficiency.savings
        rec.guest_speaker_count = guests
        rec.enrollment_bonus_earned = result.enrollment.earned
        rec.csat_bonus_earned = result.csat.earned
        rec.budget_efficiency_bonus_earned = result.budget_efficiency.earned
        rec.guest_speaker_bonus_earned = result.guest_speaker.earned
        rec.fixed_stipend_total = result.fixed_stipend_total
        rec.total_variable_bonus = result.total_variable_bonus
        rec.total_compensation = result.total_compensation
        rec.calculated_at = self.clock()
        rec.is_finalized = True
        self.sessions.save(rec)

        logger.info(
            "session %s finalized: camp=%s staff=%s total=%s",
            rec.id, camp_id, staff_profile_id, result.total_compensation,
        )
        return {
            "total_compensation": as_number(result.total_compensation),
            "breakdown": result.as_dict(),
        }
