"""
Shared fixtures.

Service tests run against the in-memory repositories in `tests.fakes`;
route and repository tests run the Flask app on an in-memory SQLite database.
"""
from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from camphq import create_app
from camphq.config import Config
from camphq.extensions import db
from camphq.models import (
    Camp, CampAttendance, CampDay, CampStaffAssignment, Registration,
    Tenant, User, UserTenant,
)
from camphq.services.incentives import IncentiveService
from camphq.services.overview import OverviewService
from tests.fakes import (
    FakeCampRepository,
    FakeDailySnapshotRepository,
    FakePlanRepository,
    FakeSessionCompensationRepository,
    make_plan,
)

FIXED_NOW = datetime(2025, 7, 12, 18, 0, 0)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "DEBUG"


def pytest_collection_modifyitems(config, items):
    """Mark tests by the layer they touch."""
    for item in items:
        if "app" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------- in-memory services ----------

@pytest.fixture
def camps():
    repo = FakeCampRepository()
    repo.add_tenant(1, "Northside Athletics")
    repo.add_tenant(2, "Coastal Sports Camps")
    repo.add_staff(10, "Chris", "Coach", email="chris@example.com", role="coach", camp_id=100)
    repo.add_staff(11, "Dana", "Director", email="dana@example.com", role="director", camp_id=100)
    repo.add_camp(100, 1, "Summer Skills Camp", date(2025, 7, 7), date(2025, 7, 11), enrolled=65)
    repo.add_day(1000, 100, 1, date(2025, 7, 7))
    repo.add_day(1001, 100, 2, date(2025, 7, 8))
    return repo


@pytest.fixture
def plans():
    return FakePlanRepository([
        make_plan(),
        make_plan(
            "FIXED", "Fixed Stipend",
            enrollment_threshold=None, enrollment_bonus_per_camper=None,
            csat_required_score=None, csat_bonus_amount=None,
            budget_efficiency_rate=None,
            guest_speaker_required_count=None, guest_speaker_bonus_amount=None,
        ),
    ])


@pytest.fixture
def sessions(camps):
    return FakeSessionCompensationRepository(camps)


@pytest.fixture
def snapshots(camps):
    return FakeDailySnapshotRepository(camps)


@pytest.fixture
def service(plans, sessions, snapshots, camps):
    return IncentiveService(plans, sessions, snapshots, camps, clock=lambda: FIXED_NOW)


@pytest.fixture
def overview(sessions, camps):
    return OverviewService(sessions, camps)


# ---------- Flask app on SQLite ----------

@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _user(username, role, first="", last=""):
    u = User(username=username, role=role, first_name=first, last_name=last, email=f"{username}@example.com")
    u.set_password(username)
    return u


@pytest.fixture
def seeded(app):
    """Two tenants, one user per role, the HIGH plan and a five-day camp in tenant `north`."""
    north = Tenant(name="Northside Athletics", slug="northside")
    coast = Tenant(name="Coastal Sports Camps", slug="coastal")
    db.session.add_all([north, coast])
    db.session.flush()

    hq = _user("hq", "hq_admin", "Head", "Quarters")
    owner = _user("owner", "licensee_owner", "Olivia", "Owner")
    director = _user("director", "director", "Dana", "Director")
    coach = _user("coach", "coach", "Chris", "Coach")
    other_coach = _user("coach2", "coach", "Casey", "Coach")
    outsider = _user("outsider", "licensee_owner", "Omar", "Outsider")
    db.session.add_all([hq, owner, director, coach, other_coach, outsider])
    db.session.flush()

    db.session.add_all([
        UserTenant(user_id=owner.id, tenant_id=north.id, role="licensee_owner"),
        UserTenant(user_id=director.id, tenant_id=north.id, role="director"),
        UserTenant(user_id=coach.id, tenant_id=north.id, role="coach"),
        UserTenant(user_id=other_coach.id, tenant_id=north.id, role="coach"),
        UserTenant(user_id=outsider.id, tenant_id=coast.id, role="licensee_owner"),
    ])

    plan = make_plan()
    db.session.add(plan)

    camp = Camp(tenant_id=north.id, name="Summer Skills Camp",
                start_date=date(2025, 7, 7), end_date=date(2025, 7, 11))
    db.session.add(camp)
    db.session.flush()
    days = [CampDay(camp_id=camp.id, date=camp.start_date + timedelta(days=i), day_number=i + 1)
            for i in range(5)]
    db.session.add_all(days)
    db.session.add_all([
        CampStaffAssignment(camp_id=camp.id, user_id=director.id, role="director", is_lead=True),
        CampStaffAssignment(camp_id=camp.id, user_id=coach.id, role="coach"),
    ])

    # 65 enrolled (confirmed or pending), plus ones that do not count
    regs = [Registration(tenant_id=north.id, camp_id=camp.id, athlete_name=f"A{i}",
                         status="confirmed" if i < 60 else "pending") for i in range(65)]
    regs += [Registration(tenant_id=north.id, camp_id=camp.id, athlete_name="W", status="waitlisted"),
             Registration(tenant_id=north.id, camp_id=camp.id, athlete_name="X", status="cancelled")]
    db.session.add_all(regs)
    db.session.flush()

    nine = datetime(2025, 7, 7, 9, 0)
    for i, reg in enumerate(regs[:5]):
        if i < 3:
            db.session.add(CampAttendance(camp_day_id=days[0].id, registration_id=reg.id, status="checked_out",
                                          check_in_time=nine, check_out_time=nine + timedelta(hours=6)))
        elif i == 3:
            db.session.add(CampAttendance(camp_day_id=days[0].id, registration_id=reg.id, status="checked_in",
                                          check_in_time=nine))
        else:
            db.session.add(CampAttendance(camp_day_id=days[0].id, registration_id=reg.id, status="absent"))
    db.session.commit()

    return SimpleNamespace(
        north_id=north.id, coast_id=coast.id,
        hq_id=hq.id, owner_id=owner.id, director_id=director.id,
        coach_id=coach.id, other_coach_id=other_coach.id, outsider_id=outsider.id,
        plan_id=plan.id, camp_id=camp.id, day_ids=[d.id for d in days],
    )


@pytest.fixture
def login(client):
    def _login(username, password=None):
        resp = client.post("/auth/login", json={"username": username, "password": password or username})
        assert resp.status_code == 200, resp.get_json()
        return resp
    return _login
