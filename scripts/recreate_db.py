# -*- coding: utf-8 -*-
"""
Full reset of the SQLite database plus a small demo data set.

Run from the project root:
  python scripts/recreate_db.py
"""

from __future__ import annotations
import sys, traceback
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from sqlalchemy import func, select

# --- project path ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

print(f"[recreate] ROOT={ROOT}")
if not (ROOT / "camphq" / "__init__.py").exists():
    raise SystemExit("[recreate] error: camphq/__init__.py not found next to scripts/")

print("[recreate] importing app...")
from camphq import create_app  # type: ignore
from camphq.extensions import db  # type: ignore
from camphq.models import (  # type: ignore
    Camp, CampAttendance, CampDay, CampStaffAssignment, CompensationPlan,
    Registration, Tenant, User, UserTenant,
)

# code, name, pre-camp, on-site, threshold, per camper, csat score, csat bonus, savings rate, speakers, speaker bonus
PLANS = (
    ("HIGH", "High Performance", 75, 150, 25, 8, "4.50", 100, "0.10", 2, 50),
    ("MID", "Mid Range", 50, 100, 30, 5, None, None, None, None, None),
    ("ENTRY", "Entry Level", 25, 75, 40, 3, "4.00", 25, None, None, None),
    ("FIXED", "Fixed Stipend", 100, 200, None, None, None, None, None, None, None),
)


def _db_path_from_uri(uri: str) -> Optional[Path]:
    if uri.startswith("sqlite:///"):
        return Path(uri.replace("sqlite:///", "")).resolve()
    return None


def _cnt(model) -> int:
    return int(db.session.scalar(select(func.count()).select_from(model)) or 0)


def _user(username: str, password: str, role: str, first: str, last: str) -> User:
    u = User(username=username, role=role, first_name=first, last_name=last,
             email=f"{username}@example.com")
    u.set_password(password)
    return u


def _seed_plans() -> dict[str, CompensationPlan]:
    out = {}
    for code, name, pre, onsite, thr, per, csat, csat_bonus, rate, speakers, speaker_bonus in PLANS:
        plan = CompensationPlan(
            plan_code=code, name=name,
            pre_camp_stipend_amount=pre, on_site_stipend_amount=onsite,
            enrollment_threshold=thr, enrollment_bonus_per_camper=per,
            csat_required_score=csat, csat_bonus_amount=csat_bonus,
            budget_efficiency_rate=rate,
            guest_speaker_required_count=speakers, guest_speaker_bonus_amount=speaker_bonus,
            is_active=True,
        )
        db.session.add(plan)
        out[code] = plan
    db.session.commit()
    return out


def _seed_camp(tenant: Tenant, coach: User, director: User) -> Camp:
    start = date(date.today().year, 7, 7)
    camp = Camp(tenant_id=tenant.id, name="Summer Skills Camp", start_date=start,
                end_date=start + timedelta(days=4))
    db.session.add(camp)
    db.session.flush()

    days = [CampDay(camp_id=camp.id, date=start + timedelta(days=i), day_number=i + 1) for i in range(5)]
    db.session.add_all(days)
    db.session.add_all([
        CampStaffAssignment(camp_id=camp.id, user_id=director.id, role="director", is_lead=True),
        CampStaffAssignment(camp_id=camp.id, user_id=coach.id, role="coach"),
    ])

    regs = [
        Registration(tenant_id=tenant.id, camp_id=camp.id, athlete_name=f"Athlete {i + 1}",
                     status="confirmed" if i < 34 else "cancelled")
        for i in range(36)
    ]
    db.session.add_all(regs)
    db.session.flush()

    # first day: most checked in, a few no-shows
    first = days[0]
    morning = datetime.combine(first.date, datetime.min.time()).replace(hour=9)
    for i, reg in enumerate(r for r in regs if r.status == "confirmed"):
        if i < 30:
            db.session.add(CampAttendance(
                camp_day_id=first.id, registration_id=reg.id, status="checked_out",
                check_in_time=morning, check_out_time=morning + timedelta(hours=7),
            ))
        else:
            db.session.add(CampAttendance(camp_day_id=first.id, registration_id=reg.id, status="absent"))
    db.session.commit()
    return camp


def main() -> int:
    print("[recreate] create_app()...")
    app = create_app()
    with app.app_context():
        uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        print(f"[recreate] SQLALCHEMY_DATABASE_URI = {uri}")

        db_path = _db_path_from_uri(uri)
        if db_path:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            if db_path.exists():
                print(f"[recreate] removing database file: {db_path}")
                db.engine.dispose()
                db_path.unlink()
        else:
            print("[recreate] not SQLite, dropping all tables instead")
            db.drop_all()

        print("[recreate] creating tables...")
        db.create_all()

        print("[recreate] adding tenants...")
        north = Tenant(name="Northside Athletics", slug="northside", timezone="America/Chicago")
        coast = Tenant(name="Coastal Sports Camps", slug="coastal", timezone="America/Los_Angeles")
        db.session.add_all([north, coast])
        db.session.commit()
        print(f"[recreate] tenant rows={_cnt(Tenant)}  -> northside id={north.id}, coastal id={coast.id}")

        print("[recreate] adding users...")
        hq = _user("hq", "hq", "hq_admin", "Headquarters", "Admin")
        owner = _user("owner", "owner", "licensee_owner", "Olivia", "Owner")
        director = _user("director", "director", "director", "Dana", "Director")
        coach = _user("coach", "coach", "coach", "Chris", "Coach")
        db.session.add_all([hq, owner, director, coach])
        db.session.commit()
        print(f"[recreate] user rows={_cnt(User)}")

        print("[recreate] assigning tenant memberships...")
        db.session.add_all([
            UserTenant(user_id=owner.id, tenant_id=north.id, role="licensee_owner"),
            UserTenant(user_id=owner.id, tenant_id=coast.id, role="licensee_owner"),
            UserTenant(user_id=director.id, tenant_id=north.id, role="director"),
            UserTenant(user_id=coach.id, tenant_id=north.id, role="coach"),
        ])
        db.session.commit()
        print(f"[recreate] user_tenant rows={_cnt(UserTenant)}")

        print("[recreate] adding compensation plans...")
        plans = _seed_plans()
        print(f"[recreate] compensation_plan rows={_cnt(CompensationPlan)}  -> {', '.join(plans)}")

        print("[recreate] adding demo camp...")
        camp = _seed_camp(north, coach, director)
        print(f"[recreate] camp id={camp.id}, days={_cnt(CampDay)}, registrations={_cnt(Registration)}")

        print("\n[recreate] Done.")
        print("Logins:")
        print("  hq       / hq")
        print("  owner    / owner")
        print("  director / director")
        print("  coach    / coach")
        if db_path:
            print(f"\nDatabase file: {db_path}")
        return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception:
        print("\n[recreate] ERROR:")
        traceback.print_exc()
        sys.exit(1)
