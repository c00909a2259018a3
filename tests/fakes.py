"""In-memory repositories with the same interfaces as the SQLAlchemy ones."""
from __future__ import annotations

import itertools
from datetime import date
from decimal import Decimal

from camphq.errors import DuplicateRecordError
from camphq.models import Camp, CampAttendance, CampDay, CompensationPlan, Tenant, User


class _Store:
    def __init__(self):
        self._ids = itertools.count(1)
        self.saves = 0

    def _assign_id(self, obj):
        if obj.id is None:
            obj.id = next(self._ids)
        return obj


class FakePlanRepository(_Store):
    def __init__(self, plans=()):
        super().__init__()
        self.rows = {}
        for p in plans:
            self.add(p)

    def list_active(self):
        return sorted((p for p in self.rows.values() if p.is_active), key=lambda p: p.name)

    def get_by_code(self, plan_code):
        return self.rows.get(plan_code)

    def add(self, plan):
        if plan.plan_code in self.rows:
            raise DuplicateRecordError(f"Plan {plan.plan_code} already exists")
        self.rows[plan.plan_code] = self._assign_id(plan)
        return plan

    def save(self, plan):
        self.saves += 1
        self.rows[plan.plan_code] = plan
        return plan


class FakeSessionCompensationRepository(_Store):
    def __init__(self, camps: "FakeCampRepository"):
        super().__init__()
        self.camps = camps
        self.rows = []
        # set to a record to simulate a concurrent insert winning the race
        self.race_winner = None

    def find(self, camp_id, staff_profile_id, tenant_id=None):
        for r in self.rows:
            if r.camp_id == camp_id and r.staff_profile_id == staff_profile_id:
                if tenant_id is None or r.tenant_id == tenant_id:
                    return r
        return None

    def add(self, record):
        if self.race_winner is not None:
            self.rows.append(self._assign_id(self.race_winner))
            self.race_winner = None
            raise DuplicateRecordError("Compensation record already exists")
        if self.find(record.camp_id, record.staff_profile_id) is not None:
            raise DuplicateRecordError("Compensation record already exists")
        self.rows.append(self._assign_id(record))
        return record

    def save(self, record):
        self.saves += 1
        return record

    def list_for_tenant(self, tenant_id, finalized=None):
        return [
            r for r in self.rows
            if r.tenant_id == tenant_id and (finalized is None or bool(r.is_finalized) == finalized)
        ]

    def list_for_staff(self, staff_profile_id, tenant_id=None, finalized=None):
        rows = [
            r for r in self.rows
            if r.staff_profile_id == staff_profile_id
            and (tenant_id is None or r.tenant_id == tenant_id)
            and (finalized is None or bool(r.is_finalized) == finalized)
        ]
        return sorted(rows, key=lambda r: (self.camps.camps[r.camp_id].start_date, r.id), reverse=True)

    def list_for_season(self, tenant_id, start, end):
        return [
            r for r in self.rows
            if r.tenant_id == tenant_id and start <= self.camps.camps[r.camp_id].start_date <= end
        ]

    def tenant_ids_with_finalized(self):
        return sorted({r.tenant_id for r in self.rows if r.is_finalized})


class FakeDailySnapshotRepository(_Store):
    def __init__(self, camps: "FakeCampRepository"):
        super().__init__()
        self.camps = camps
        self.rows = []

    def find(self, camp_day_id, staff_profile_id):
        return next(
            (s for s in self.rows if s.camp_day_id == camp_day_id and s.staff_profile_id == staff_profile_id),
            None,
        )

    def add(self, snapshot):
        if self.find(snapshot.camp_day_id, snapshot.staff_profile_id) is not None:
            raise DuplicateRecordError("Day snapshot already exists")
        self.rows.append(self._assign_id(snapshot))
        return snapshot

    def save(self, snapshot):
        self.saves += 1
        return snapshot

    def list_for_session(self, camp_id, staff_profile_id):
        rows = [s for s in self.rows if s.camp_id == camp_id and s.staff_profile_id == staff_profile_id]
        return sorted(rows, key=lambda s: self.camps.days[s.camp_day_id].day_number)

    def guest_speaker_total(self, camp_id, staff_profile_id):
        return sum(s.day_guest_speaker_count or 0 for s in self.list_for_session(camp_id, staff_profile_id))


class FakeCampRepository:
    def __init__(self):
        self.camps = {}
        self.days = {}
        self.attendance = {}
        self.enrollments = {}
        self.tenants = {}
        self.staff = {}
        self.roles = {}

    # --- builders ---

    def add_tenant(self, tenant_id, name):
        self.tenants[tenant_id] = Tenant(id=tenant_id, name=name, slug=name.lower().replace(" ", "-"))
        return self.tenants[tenant_id]

    def add_staff(self, staff_id, first, last, email="", role=None, camp_id=None):
        self.staff[staff_id] = User(id=staff_id, username=first.lower(), first_name=first,
                                    last_name=last, email=email)
        if role and camp_id:
            self.roles[(camp_id, staff_id)] = role
        return self.staff[staff_id]

    def add_camp(self, camp_id, tenant_id, name, start: date, end: date = None, enrolled=0):
        self.camps[camp_id] = Camp(id=camp_id, tenant_id=tenant_id, name=name,
                                   start_date=start, end_date=end or start)
        self.enrollments[camp_id] = enrolled
        return self.camps[camp_id]

    def add_day(self, day_id, camp_id, day_number, day: date):
        self.days[day_id] = CampDay(id=day_id, camp_id=camp_id, day_number=day_number, date=day)
        self.attendance.setdefault(day_id, [])
        return self.days[day_id]

    def add_attendance(self, day_id, status, check_in=None, check_out=None):
        self.attendance.setdefault(day_id, []).append(
            CampAttendance(camp_day_id=day_id, status=status, check_in_time=check_in, check_out_time=check_out)
        )

    # --- repository interface ---

    def get_camp(self, camp_id, tenant_id=None):
        camp = self.camps.get(camp_id)
        if camp is None or (tenant_id is not None and camp.tenant_id != tenant_id):
            return None
        return camp

    def get_camp_day(self, camp_day_id):
        return self.days.get(camp_day_id)

    def attendance_for_day(self, camp_day_id):
        return list(self.attendance.get(camp_day_id, []))

    def count_enrollments(self, camp_id):
        return self.enrollments.get(camp_id, 0)

    def get_tenant(self, tenant_id):
        return self.tenants.get(tenant_id)

    def get_staff(self, staff_profile_id):
        return self.staff.get(staff_profile_id)

    def staff_role(self, camp_id, staff_profile_id):
        return self.roles.get((camp_id, staff_profile_id))


def make_plan(plan_code="HIGH", name="High Performance", **overrides):
    """Plan matching the reference payout scenario unless overridden."""
    values = dict(
        pre_camp_stipend_amount=Decimal("200.00"),
        on_site_stipend_amount=Decimal("300.00"),
        enrollment_threshold=50,
        enrollment_bonus_per_camper=Decimal("2.00"),
        csat_required_score=Decimal("4.50"),
        csat_bonus_amount=Decimal("100.00"),
        budget_efficiency_rate=Decimal("0.2000"),
        guest_speaker_required_count=3,
        guest_speaker_bonus_amount=Decimal("100.00"),
        is_active=True,
    )
    values.update(overrides)
    return CompensationPlan(plan_code=plan_code, name=name, **values)
