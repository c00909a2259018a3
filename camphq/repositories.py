# -*- coding: utf-8 -*-
"""
Data access for the compensation services.

The services only talk to these interfaces; `Sql*` classes implement them on
a SQLAlchemy session, tests plug in-memory fakes into the same seams.
"""
from __future__ import annotations

from datetime import date
from typing import List, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .errors import DuplicateRecordError
from .models import (
    Camp,
    CampAttendance,
    CampDay,
    CampDayCompensationSnapshot,
    CampSessionCompensation,
    CampStaffAssignment,
    CompensationPlan,
    Registration,
    Tenant,
    User,
)
from .models.camp import ENROLLED_STATUSES


class PlanRepository(Protocol):
    def list_active(self) -> List[CompensationPlan]: ...
    def get_by_code(self, plan_code: str) -> Optional[CompensationPlan]: ...
    def add(self, plan: CompensationPlan) -> CompensationPlan: ...
    def save(self, plan: CompensationPlan) -> CompensationPlan: ...


class SessionCompensationRepository(Protocol):
    def find(self, camp_id: int, staff_profile_id: int,
             tenant_id: Optional[int] = None) -> Optional[CampSessionCompensation]: ...
    def add(self, record: CampSessionCompensation) -> CampSessionCompensation: ...
    def save(self, record: CampSessionCompensation) -> CampSessionCompensation: ...
    def list_for_tenant(self, tenant_id: int,
                        finalized: Optional[bool] = None) -> List[CampSessionCompensation]: ...
    def list_for_staff(self, staff_profile_id: int, tenant_id: Optional[int] = None,
                       finalized: Optional[bool] = None) -> List[CampSessionCompensation]: ...
    def list_for_season(self, tenant_id: int, start: date,
                        end: date) -> List[CampSessionCompensation]: ...
    def tenant_ids_with_finalized(self) -> List[int]: ...


class DailySnapshotRepository(Protocol):
    def find(self, camp_day_id: int, staff_profile_id: int) -> Optional[CampDayCompensationSnapshot]: ...
    def add(self, snapshot: CampDayCompensationSnapshot) -> CampDayCompensationSnapshot: ...
    def save(self, snapshot: CampDayCompensationSnapshot) -> CampDayCompensationSnapshot: ...
    def list_for_session(self, camp_id: int, staff_profile_id: int) -> List[CampDayCompensationSnapshot]: ...
    def guest_speaker_total(self, camp_id: int, staff_profile_id: int) -> int: ...


class CampRepository(Protocol):
    def get_camp(self, camp_id: int, tenant_id: Optional[int] = None) -> Optional[Camp]: ...
    def get_camp_day(self, camp_day_id: int) -> Optional[CampDay]: ...
    def attendance_for_day(self, camp_day_id: int) -> List[CampAttendance]: ...
    def count_enrollments(self, camp_id: int) -> int: ...
    def get_tenant(self, tenant_id: int) -> Optional[Tenant]: ...
    def get_staff(self, staff_profile_id: int) -> Optional[User]: ...
    def staff_role(self, camp_id: int, staff_profile_id: int) -> Optional[str]: ...


# ---------- SQLAlchemy implementations ----------

class _SqlRepository:
    def __init__(self, session):
        self.session = session

    def _insert(self, obj, what: str):
        self.session.add(obj)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise DuplicateRecordError(f"{what} already exists")
        return obj

    def save(self, obj):
        self.session.add(obj)
        self.session.commit()
        return obj


class SqlPlanRepository(_SqlRepository):
    def list_active(self):
        return (
            self.session.query(CompensationPlan)
            .filter(CompensationPlan.is_active.is_(True))
            .order_by(CompensationPlan.name.asc())
            .all()
        )

    def get_by_code(self, plan_code):
        return self.session.query(CompensationPlan).filter_by(plan_code=plan_code).first()

    def add(self, plan):
        return self._insert(plan, f"Plan {plan.plan_code}")


class SqlSessionCompensationRepository(_SqlRepository):
    def _query(self):
        return self.session.query(CampSessionCompensation)

    def find(self, camp_id, staff_profile_id, tenant_id=None):
        q = self._query().filter(
            CampSessionCompensation.camp_id == camp_id,
            CampSessionCompensation.staff_profile_id == staff_profile_id,
        )
        if tenant_id is not None:
            q = q.filter(CampSessionCompensation.tenant_id == tenant_id)
        return q.first()

    def add(self, record):
        return self._insert(record, "Compensation record")

    def list_for_tenant(self, tenant_id, finalized=None):
        q = self._query().filter(CampSessionCompensation.tenant_id == tenant_id)
        if finalized is not None:
            q = q.filter(CampSessionCompensation.is_finalized.is_(finalized))
        return q.order_by(CampSessionCompensation.id.asc()).all()

    def list_for_staff(self, staff_profile_id, tenant_id=None, finalized=None):
        q = (
            self._query()
            .join(Camp, Camp.id == CampSessionCompensation.camp_id)
            .filter(CampSessionCompensation.staff_profile_id == staff_profile_id)
        )
        if tenant_id is not None:
            q = q.filter(CampSessionCompensation.tenant_id == tenant_id)
        if finalized is not None:
            q = q.filter(CampSessionCompensation.is_finalized.is_(finalized))
        return q.order_by(Camp.start_date.desc(), CampSessionCompensation.id.desc()).all()

    def list_for_season(self, tenant_id, start, end):
        return (
            self._query()
            .join(Camp, Camp.id == CampSessionCompensation.camp_id)
            .filter(
                CampSessionCompensation.tenant_id == tenant_id,
                Camp.start_date >= start,
                Camp.start_date <= end,
            )
            .order_by(CampSessionCompensation.id.asc())
            .all()
        )

    def tenant_ids_with_finalized(self):
        rows = (
            self.session.query(CampSessionCompensation.tenant_id)
            .filter(CampSessionCompensation.is_finalized.is_(True))
            .distinct()
            .order_by(CampSessionCompensation.tenant_id.asc())
            .all()
        )
        return [r[0] for r in rows]


class SqlDailySnapshotRepository(_SqlRepository):
    def find(self, camp_day_id, staff_profile_id):
        return (
            self.session.query(CampDayCompensationSnapshot)
            .filter_by(camp_day_id=camp_day_id, staff_profile_id=staff_profile_id)
            .first()
        )

    def add(self, snapshot):
        return self._insert(snapshot, "Day snapshot")

    def list_for_session(self, camp_id, staff_profile_id):
        return (
            self.session.query(CampDayCompensationSnapshot)
            .join(CampDay, CampDay.id == CampDayCompensationSnapshot.camp_day_id)
            .filter(
                CampDayCompensationSnapshot.camp_id == camp_id,
                CampDayCompensationSnapshot.staff_profile_id == staff_profile_id,
            )
            .order_by(CampDay.day_number.asc())
            .all()
        )

    def guest_speaker_total(self, camp_id, staff_profile_id):
        total = (
            self.session.query(func.coalesce(func.sum(CampDayCompensationSnapshot.day_guest_speaker_count), 0))
            .filter(
                CampDayCompensationSnapshot.camp_id == camp_id,
                CampDayCompensationSnapshot.staff_profile_id == staff_profile_id,
            )
            .scalar()
        )
        return int(total or 0)


class SqlCampRepository(_SqlRepository):
    def get_camp(self, camp_id, tenant_id=None):
        q = self.session.query(Camp).filter(Camp.id == camp_id)
        if tenant_id is not None:
            q = q.filter(Camp.tenant_id == tenant_id)
        return q.first()

    def get_camp_day(self, camp_day_id):
        return self.session.get(CampDay, camp_day_id)

    def attendance_for_day(self, camp_day_id):
        return self.session.query(CampAttendance).filter_by(camp_day_id=camp_day_id).all()

    def count_enrollments(self, camp_id):
        return (
            self.session.query(func.count(Registration.id))
            .filter(Registration.camp_id == camp_id, Registration.status.in_(ENROLLED_STATUSES))
            .scalar()
            or 0
        )

    def get_tenant(self, tenant_id):
        return self.session.get(Tenant, tenant_id)

    def get_staff(self, staff_profile_id):
        return self.session.get(User, staff_profile_id)

    def staff_role(self, camp_id, staff_profile_id):
        row = (
            self.session.query(CampStaffAssignment.role)
            .filter_by(camp_id=camp_id, user_id=staff_profile_id)
            .first()
        )
        return row[0] if row else None
