# -*- coding: utf-8 -*-
"""
Incentive rollups for dashboards.

Sessions are grouped by staff member in memory; record counts are
season-sized, so there is no paging here.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..errors import NotFoundError, ValidationError
from ..money import D, ZERO, as_number, money, score
from ..repositories import CampRepository, SessionCompensationRepository


def _mean(values: Iterable) -> Optional[Decimal]:
    vals = [D(v) for v in values if v is not None]
    if not vals:
        return None
    return sum(vals, ZERO) / len(vals)


def _avg_score(sessions) -> Optional[float]:
    return as_number(score(_mean(s.csat_avg_score for s in sessions)))


def _avg_enrollment(sessions) -> Optional[float]:
    avg = _mean(s.total_enrolled_campers for s in sessions)
    return round(float(avg), 2) if avg is not None else None


def _group_by_staff(sessions) -> "OrderedDict[int, list]":
    grouped: "OrderedDict[int, list]" = OrderedDict()
    for s in sessions:
        grouped.setdefault(s.staff_profile_id, []).append(s)
    return grouped


def _total(sessions) -> Decimal:
    return sum((D(s.total_compensation) for s in sessions), ZERO)


class OverviewService:
    def __init__(self, sessions: SessionCompensationRepository, camps: CampRepository):
        self.sessions = sessions
        self.camps = camps

    def _staff_item(self, staff_profile_id: int, sessions, tenant_id: Optional[int] = None) -> dict[str, Any]:
        staff = self.camps.get_staff(staff_profile_id)
        item = {
            "staff_profile_id": staff_profile_id,
            "staff_name": staff.display_name if staff is not None else "",
            "staff_email": staff.email if staff is not None else "",
            "total_sessions": len(sessions),
            "total_compensation": as_number(money(_total(sessions))),
            "avg_csat_score": _avg_score(sessions),
            "avg_enrollment": _avg_enrollment(sessions),
        }
        if tenant_id is not None:
            item["tenant_id"] = tenant_id
        return item

    def tenant_overview(self, tenant_id: int) -> dict[str, Any]:
        """Finalized payouts of one licensee, per staff member."""
        tenant = self.camps.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")

        sessions = self.sessions.list_for_tenant(tenant_id, finalized=True)
        staff_summaries = [
            self._staff_item(staff_id, rows)
            for staff_id, rows in _group_by_staff(sessions).items()
        ]
        return {
            "tenant_id": tenant_id,
            "tenant_name": tenant.name,
            "total_payouts": as_number(money(_total(sessions))),
            "total_sessions": len(sessions),
            "avg_csat": _avg_score(sessions),
            "avg_enrollment": _avg_enrollment(sessions),
            "staff_summaries": staff_summaries,
        }

    def global_overview(self) -> list[dict[str, Any]]:
        """HQ view: one tenant overview per licensee with finalized sessions."""
        out = []
        for tenant_id in self.sessions.tenant_ids_with_finalized():
            try:
                out.append(self.tenant_overview(tenant_id))
            except NotFoundError:
                continue
        return out

    def director_overview(self, staff_profile_id: int, tenant_id: int) -> Optional[dict[str, Any]]:
        sessions = self.sessions.list_for_staff(staff_profile_id, tenant_id, finalized=True)
        if not sessions:
            return None
        return self._staff_item(staff_profile_id, sessions, tenant_id=tenant_id)

    def licensee_summary(self, tenant_id: int, season_start: date, season_end: date) -> dict[str, Any]:
        """Season summary with pending and finalized compensation kept apart.

        Pending sessions that were never calculated count at their fixed stipend.
        """
        if season_end < season_start:
            raise ValidationError("season end is before season start")

        sessions = self.sessions.list_for_season(tenant_id, season_start, season_end)
        grouped = _group_by_staff(sessions)

        total_paid, total_pending = ZERO, ZERO
        staff_list = []
        for staff_id, rows in grouped.items():
            finalized = [s for s in rows if s.is_finalized]
            pending = [s for s in rows if not s.is_finalized]
            finalized_comp = money(_total(finalized))
            pending_comp = money(sum((s.stipend_estimate for s in pending), ZERO))
            total_paid += finalized_comp
            total_pending += pending_comp

            staff = self.camps.get_staff(staff_id)
            avg_enrollment = _avg_enrollment(rows)
            staff_list.append({
                "staff_id": staff_id,
                "staff_name": staff.display_name if staff is not None else "",
                "role": self.camps.staff_role(rows[0].camp_id, staff_id) or "staff",
                "sessions_this_season": len(rows),
                "total_compensation": as_number(finalized_comp + pending_comp),
                "pending_compensation": as_number(pending_comp),
                "finalized_compensation": as_number(finalized_comp),
                "avg_csat": _avg_score(rows),
                "avg_enrollment": avg_enrollment if avg_enrollment is not None else 0,
                "is_finalized": not pending and bool(finalized),
            })

        staff_list.sort(key=lambda x: x["total_compensation"], reverse=True)
        total_sessions = len(sessions)
        avg_per_session = money((total_paid + total_pending) / total_sessions) if total_sessions else ZERO
        return {
            "season_start": season_start.isoformat(),
            "season_end": season_end.isoformat(),
            "total_paid": as_number(total_paid),
            "total_pending": as_number(total_pending),
            "staff_count": len(grouped),
            "avg_per_session": as_number(avg_per_session),
            "staff": staff_list,
        }
