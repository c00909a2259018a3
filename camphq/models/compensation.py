# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.ext.hybrid import hybrid_property

from ..extensions import db
from ..money import D, Money, Rate, Score

PLAN_CODES = ("HIGH", "MID", "ENTRY", "FIXED")

# plan parameters copied onto a session when the plan is attached
PLAN_PARAMETER_FIELDS = (
    "pre_camp_stipend_amount",
    "on_site_stipend_amount",
    "enrollment_threshold",
    "enrollment_bonus_per_camper",
    "csat_required_score",
    "csat_bonus_amount",
    "budget_efficiency_rate",
    "guest_speaker_required_count",
    "guest_speaker_bonus_amount",
)


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CompensationPlan(db.Model):
    __tablename__ = "compensation_plan"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    plan_code = db.Column(db.String(16), nullable=False, unique=True, index=True)  # HIGH|MID|ENTRY|FIXED

    pre_camp_stipend_amount = db.Column(Money(), nullable=False, default=0)
    on_site_stipend_amount = db.Column(Money(), nullable=False, default=0)

    enrollment_threshold = db.Column(db.Integer, nullable=True)
    enrollment_bonus_per_camper = db.Column(Money(), nullable=True)
    csat_required_score = db.Column(Score(), nullable=True)
    csat_bonus_amount = db.Column(Money(), nullable=True)
    budget_efficiency_rate = db.Column(Rate(), nullable=True)
    guest_speaker_required_count = db.Column(db.Integer, nullable=True)
    guest_speaker_bonus_amount = db.Column(Money(), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)


class CampSessionCompensation(db.Model):
    __tablename__ = "camp_session_compensation"

    id = db.Column(db.Integer, primary_key=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camp.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenant.id"), nullable=False, index=True)
    staff_profile_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    compensation_plan_id = db.Column(db.Integer, db.ForeignKey("compensation_plan.id"), nullable=False)

    # snapshot of the plan at attach time
    pre_camp_stipend_amount = db.Column(Money(), nullable=False, default=0)
    on_site_stipend_amount = db.Column(Money(), nullable=False, default=0)
    enrollment_threshold = db.Column(db.Integer)
    enrollment_bonus_per_camper = db.Column(Money())
    csat_required_score = db.Column(Score())
    csat_bonus_amount = db.Column(Money())
    budget_efficiency_rate = db.Column(Rate())
    guest_speaker_required_count = db.Column(db.Integer)
    guest_speaker_bonus_amount = db.Column(Money())

    # performance metrics
    total_enrolled_campers = db.Column(db.Integer)
    csat_avg_score = db.Column(Score())
    budget_preapproved_total = db.Column(Money())
    budget_actual_total = db.Column(Money())
    budget_savings_amount = db.Column(Money())
    guest_speaker_count = db.Column(db.Integer)

    # calculated amounts
    enrollment_bonus_earned = db.Column(Money())
    csat_bonus_earned = db.Column(Money())
    budget_efficiency_bonus_earned = db.Column(Money())
    guest_speaker_bonus_earned = db.Column(Money())
    fixed_stipend_total = db.Column(Money())
    total_variable_bonus = db.Column(Money())
    total_compensation = db.Column(Money())

    calculated_at = db.Column(db.DateTime, nullable=True)
    is_finalized = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    plan = db.relationship("CompensationPlan", lazy="joined")
    camp = db.relationship("Camp", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("camp_id", "staff_profile_id", name="uq_session_comp_camp_staff"),
    )

    # --- derived values ---

    @hybrid_property
    def stipend_estimate(self) -> Decimal:
        """Calculated total, or the fixed stipend while the session is pending."""
        if self.total_compensation is not None:
            return D(self.total_compensation)
        return D(self.pre_camp_stipend_amount) + D(self.on_site_stipend_amount)

    @stipend_estimate.expression
    def stipend_estimate(cls):
        return func.coalesce(
            cls.total_compensation,
            func.coalesce(cls.pre_camp_stipend_amount, 0) + func.coalesce(cls.on_site_stipend_amount, 0),
        )


class CampDayCompensationSnapshot(db.Model):
    __tablename__ = "camp_day_compensation_snapshot"

    id = db.Column(db.Integer, primary_key=True)
    camp_day_id = db.Column(db.Integer, db.ForeignKey("camp_day.id"), nullable=False, index=True)
    camp_id = db.Column(db.Integer, db.ForeignKey("camp.id"), nullable=False, index=True)
    staff_profile_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    session_compensation_id = db.Column(
        db.Integer, db.ForeignKey("camp_session_compensation.id"), nullable=False, index=True
    )

    day_enrolled_campers = db.Column(db.Integer)
    day_checked_in_count = db.Column(db.Integer)
    day_checked_out_count = db.Column(db.Integer)
    day_no_show_count = db.Column(db.Integer)
    day_csat_avg_score = db.Column(Score())
    day_guest_speaker_count = db.Column(db.Integer)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=_utcnow)

    camp_day = db.relationship("CampDay", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("camp_day_id", "staff_profile_id", name="uq_day_snapshot_day_staff"),
    )
