# -*- coding: utf-8 -*-
"""
Compensation rules for one camp session.

Four independent bonuses are evaluated against the plan parameters that were
snapshotted onto the session and summed with the fixed stipend:

- enrollment:        (enrolled - threshold) * per-camper rate, above threshold
- CSAT:              flat amount once the required score is reached
- budget efficiency: savings against the preapproved budget * rate
- guest speaker:     flat amount once the required count is reached

All arithmetic is Decimal; each earned amount is rounded to cents once.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..money import D, ZERO, as_number, money


@dataclass(frozen=True)
class PlanTerms:
    pre_camp_stipend_amount: Decimal = ZERO
    on_site_stipend_amount: Decimal = ZERO
    enrollment_threshold: Optional[int] = None
    enrollment_bonus_per_camper: Optional[Decimal] = None
    csat_required_score: Optional[Decimal] = None
    csat_bonus_amount: Optional[Decimal] = None
    budget_efficiency_rate: Optional[Decimal] = None
    guest_speaker_required_count: Optional[int] = None
    guest_speaker_bonus_amount: Optional[Decimal] = None

    @classmethod
    def from_record(cls, rec) -> "PlanTerms":
        """Terms from anything carrying the plan parameter columns (plan or session)."""
        return cls(
            pre_camp_stipend_amount=D(rec.pre_camp_stipend_amount),
            on_site_stipend_amount=D(rec.on_site_stipend_amount),
            enrollment_threshold=rec.enrollment_threshold,
            enrollment_bonus_per_camper=rec.enrollment_bonus_per_camper,
            csat_required_score=rec.csat_required_score,
            csat_bonus_amount=rec.csat_bonus_amount,
            budget_efficiency_rate=rec.budget_efficiency_rate,
            guest_speaker_required_count=rec.guest_speaker_required_count,
            guest_speaker_bonus_amount=rec.guest_speaker_bonus_amount,
        )


@dataclass(frozen=True)
class SessionMetrics:
    enrolled_campers: int = 0
    csat_avg_score: Optional[Decimal] = None
    budget_preapproved_total: Decimal = ZERO
    budget_actual_total: Decimal = ZERO
    guest_speaker_count: int = 0


@dataclass(frozen=True)
class EnrollmentBonus:
    threshold: Optional[int]
    actual_enrolled: int
    eligible_campers: int
    per_camper_rate: Decimal
    earned: Decimal


@dataclass(frozen=True)
class CsatBonus:
    required_score: Optional[Decimal]
    actual_score: Optional[Decimal]
    bonus_amount: Decimal
    earned: Decimal


@dataclass(frozen=True)
class BudgetEfficiencyBonus:
    preapproved: Decimal
    actual: Decimal
    savings: Decimal
    rate: Decimal
    earned: Decimal


@dataclass(frozen=True)
class GuestSpeakerBonus:
    required_count: int
    actual_count: int
    bonus_amount: Decimal
    earned: Decimal


@dataclass(frozen=True)
class CompensationBreakdown:
    pre_camp_stipend: Decimal
    on_site_stipend: Decimal
    fixed_stipend_total: Decimal
    enrollment: EnrollmentBonus
    csat: CsatBonus
    budget_efficiency: BudgetEfficiencyBonus
    guest_speaker: GuestSpeakerBonus
    total_variable_bonus: Decimal
    total_compensation: Decimal

    def as_dict(self) -> dict:
        n = as_number
        return {
            "fixed_stipend": {
                "pre_camp": n(self.pre_camp_stipend),
                "on_site": n(self.on_site_stipend),
                "total": n(self.fixed_stipend_total),
            },
            "bonuses": {
                "enrollment": {
                    "threshold": self.enrollment.threshold,
                    "actual_enrolled": self.enrollment.actual_enrolled,
                    "eligible_campers": self.enrollment.eligible_campers,
                    "per_camper_rate": n(self.enrollment.per_camper_rate),
                    "earned": n(self.enrollment.earned),
                },
                "csat": {
                    "required_score": n(self.csat.required_score),
                    "actual_score": n(self.csat.actual_score),
                    "bonus_amount": n(self.csat.bonus_amount),
                    "earned": n(self.csat.earned),
                },
                "budget_efficiency": {
                    "preapproved": n(self.budget_efficiency.preapproved),
                    "actual": n(self.budget_efficiency.actual),
                    "savings": n(self.budget_efficiency.savings),
                    "rate": n(self.budget_efficiency.rate),
                    "earned": n(self.budget_efficiency.earned),
                },
                "guest_speaker": {
                    "required_count": self.guest_speaker.required_count,
                    "actual_count": self.guest_speaker.actual_count,
                    "bonus_amount": n(self.guest_speaker.bonus_amount),
                    "earned": n(self.guest_speaker.earned),
                },
            },
            "total_variable_bonus": n(self.total_variable_bonus),
            "total_compensation": n(self.total_compensation),
        }


def enrollment_bonus(terms: PlanTerms, enrolled: int) -> EnrollmentBonus:
    threshold = terms.enrollment_threshold or 0
    per_camper = D(terms.enrollment_bonus_per_camper)
    eligible, earned = 0, ZERO
    if enrolled > threshold and per_camper > 0:
        eligible = enrolled - threshold
        earned = per_camper * eligible
    return EnrollmentBonus(
        threshold=terms.enrollment_threshold,
        actual_enrolled=enrolled,
        eligible_campers=eligible,
        per_camper_rate=per_camper,
        earned=money(earned),
    )


def csat_bonus(terms: PlanTerms, actual_score: Optional[Decimal]) -> CsatBonus:
    required = terms.csat_required_score
    amount = D(terms.csat_bonus_amount)
    earned = ZERO
    # all-or-nothing
    if required is not None and actual_score is not None and D(actual_score) >= D(required):
        earned = amount
    return CsatBonus(
        required_score=required,
        actual_score=actual_score,
        bonus_amount=amount,
        earned=money(earned),
    )


def budget_efficiency_bonus(terms: PlanTerms, preapproved, actual) -> BudgetEfficiencyBonus:
    preapproved, actual = D(preapproved), D(actual)
    efficiency_rate = D(terms.budget_efficiency_rate)
    savings, earned = ZERO, ZERO
    # no preapproved budget -> nothing to save against
    if preapproved > 0:
        savings = max(preapproved - actual, ZERO)
        earned = savings * efficiency_rate
    return BudgetEfficiencyBonus(
        preapproved=money(preapproved),
        actual=money(actual),
        savings=money(savings),
        rate=efficiency_rate,
        earned=money(earned),
    )


def guest_speaker_bonus(terms: PlanTerms, count: int) -> GuestSpeakerBonus:
    required = terms.guest_speaker_required_count or 0
    amount = D(terms.guest_speaker_bonus_amount)
    earned = ZERO
    if required > 0 and count >= required:
        earned = amount
    return GuestSpeakerBonus(
        required_count=required,
        actual_count=count,
        bonus_amount=amount,
        earned=money(earned),
    )


def calculate(terms: PlanTerms, metrics: SessionMetrics) -> CompensationBreakdown:
    pre_camp = money(terms.pre_camp_stipend_amount)
    on_site = money(terms.on_site_stipend_amount)
    fixed = pre_camp + on_site

    enrollment = enrollment_bonus(terms, int(metrics.enrolled_campers or 0))
    csat = csat_bonus(terms, metrics.csat_avg_score)
    budget = budget_efficiency_bonus(terms, metrics.budget_preapproved_total, metrics.budget_actual_total)
    guest = guest_speaker_bonus(terms, int(metrics.guest_speaker_count or 0))

    variable = enrollment.earned + csat.earned + budget.earned + guest.earned
    return CompensationBreakdown(
        pre_camp_stipend=pre_camp,
        on_site_stipend=on_site,
        fixed_stipend_total=fixed,
        enrollment=enrollment,
        csat=csat,
        budget_efficiency=budget,
        guest_speaker=guest,
        total_variable_bonus=variable,
        total_compensation=fixed + variable,
    )
