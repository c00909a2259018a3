"""IncentiveService workflow against in-memory repositories."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from camphq.errors import AlreadyFinalizedError, NotFoundError, ValidationError
from camphq.models import CampSessionCompensation
from tests.conftest import FIXED_NOW


def _attach(service, staff_id=10, plan_code="HIGH"):
    return service.attach_plan(100, staff_id, plan_code, 1)


class TestPlans:
    def test_list_only_active(self, service, plans):
        plans.rows["FIXED"].is_active = False
        assert [p["plan_code"] for p in service.list_plans()] == ["HIGH"]

    def test_get_unknown_plan(self, service):
        with pytest.raises(NotFoundError):
            service.get_plan("MID")

    def test_create_plan(self, service, plans):
        data = service.save_plan("mid", name="Mid Range", pre_camp_stipend_amount=50,
                                 on_site_stipend_amount=100, enrollment_threshold=30,
                                 enrollment_bonus_per_camper=5)
        assert data["plan_code"] == "MID"
        assert data["on_site_stipend_amount"] == 100.0
        assert data["enrollment_threshold"] == 30
        assert plans.get_by_code("MID") is not None

    def test_create_requires_name(self, service):
        with pytest.raises(ValidationError):
            service.save_plan("MID", pre_camp_stipend_amount=50)

    def test_unknown_code(self, service):
        with pytest.raises(ValidationError):
            service.save_plan("PLATINUM", name="Platinum")

    @pytest.mark.parametrize("field,value", [
        ("csat_required_score", "5.5"),
        ("budget_efficiency_rate", "1.5"),
        ("csat_bonus_amount", "-1"),
        ("guest_speaker_required_count", "2.5"),
    ])
    def test_rejects_out_of_range(self, service, field, value):
        with pytest.raises(ValidationError):
            service.save_plan("HIGH", **{field: value})

    def test_plan_edit_does_not_touch_attached_session(self, service, sessions):
        _attach(service)
        service.save_plan("HIGH", csat_bonus_amount=500)

        rec = sessions.find(100, 10)
        assert rec.csat_bonus_amount == Decimal("100.00")


class TestAttachPlan:
    def test_snapshot_copies_plan_terms(self, service, sessions):
        data = _attach(service)

        assert data["plan_code"] == "HIGH"
        assert data["plan_name"] == "High Performance"
        assert data["pre_camp_stipend_amount"] == 200.0
        assert data["guest_speaker_required_count"] == 3
        assert data["is_finalized"] is False
        assert data["camp_name"] == "Summer Skills Camp"
        assert data["staff_name"] == "Chris Coach"
        assert len(sessions.rows) == 1

    def test_reattach_keeps_one_row_and_metrics(self, service, sessions):
        _attach(service)
        service.update_session_metrics(100, 10, 1, csat_avg_score="4.6", budget_preapproved_total=900)

        data = _attach(service, plan_code="FIXED")

        assert len(sessions.rows) == 1
        assert data["plan_code"] == "FIXED"
        assert data["enrollment_bonus_per_camper"] is None
        assert data["csat_avg_score"] == 4.6
        assert data["budget_preapproved_total"] == 900.0

    def test_concurrent_insert_falls_back_to_update(self, service, sessions, plans):
        sessions.race_winner = CampSessionCompensation(
            camp_id=100, staff_profile_id=10, tenant_id=1, is_finalized=False,
            compensation_plan_id=plans.rows["FIXED"].id,
        )
        data = _attach(service)

        assert len(sessions.rows) == 1
        assert data["plan_code"] == "HIGH"
        assert sessions.rows[0].csat_bonus_amount == Decimal("100.00")

    def test_unknown_plan(self, service):
        with pytest.raises(NotFoundError):
            _attach(service, plan_code="ENTRY")

    def test_camp_of_other_tenant(self, service):
        with pytest.raises(NotFoundError):
            service.attach_plan(100, 10, "HIGH", 2)

    def test_unknown_staff(self, service):
        with pytest.raises(NotFoundError):
            _attach(service, staff_id=999)

    def test_finalized_session_rejects_attach(self, service):
        _attach(service)
        service.calculate_session_compensation(100, 10, 1)
        with pytest.raises(AlreadyFinalizedError):
            _attach(service, plan_code="FIXED")


class TestDailySnapshots:
    @pytest.fixture(autouse=True)
    def _attendance(self, camps):
        when = datetime(2025, 7, 7, 9, 0)
        camps.add_attendance(1000, "checked_out", check_in=when, check_out=when)
        camps.add_attendance(1000, "checked_out", check_in=when, check_out=when)
        camps.add_attendance(1000, "checked_in", check_in=when)
        camps.add_attendance(1000, "absent")
        camps.add_attendance(1000, "not_arrived")

    def test_counts_from_attendance(self, service):
        _attach(service)
        snap = service.capture_day_snapshot(1000, 10, 1, day_csat_avg_score="4.8",
                                            day_guest_speaker_count=1, notes="rainy")

        assert snap["day_enrolled_campers"] == 5
        assert snap["day_checked_in_count"] == 3
        assert snap["day_checked_out_count"] == 2
        assert snap["day_no_show_count"] == 1
        assert snap["day_csat_avg_score"] == 4.8
        assert snap["day_number"] == 1
        assert snap["date"] == "2025-07-07"

    def test_recapture_updates_same_row(self, service, snapshots, camps):
        _attach(service)
        service.capture_day_snapshot(1000, 10, 1, day_guest_speaker_count=1, notes="first")
        camps.add_attendance(1000, "absent")
        snap = service.capture_day_snapshot(1000, 10, 1, day_guest_speaker_count=2)

        assert len(snapshots.rows) == 1
        assert snap["day_enrolled_campers"] == 6
        assert snap["day_no_show_count"] == 2
        assert snap["day_guest_speaker_count"] == 2
        assert snap["notes"] == "first"

    def test_requires_session(self, service):
        with pytest.raises(NotFoundError):
            service.capture_day_snapshot(1000, 10, 1)

    def test_unknown_day(self, service):
        _attach(service)
        with pytest.raises(NotFoundError):
            service.capture_day_snapshot(4242, 10, 1)

    def test_listing_orders_by_day(self, service):
        _attach(service)
        service.capture_day_snapshot(1001, 10, 1)
        service.capture_day_snapshot(1000, 10, 1)

        rows = service.get_daily_snapshots(100, 10, 1)
        assert [r["day_number"] for r in rows] == [1, 2]

    def test_listing_other_tenant(self, service):
        with pytest.raises(NotFoundError):
            service.get_daily_snapshots(100, 10, 2)


class TestMetrics:
    @pytest.mark.parametrize("field,value", [
        ("budget_preapproved_total", 1e30),
        ("budget_actual_total", "NaN"),
        ("budget_actual_total", "100000000"),
        ("csat_avg_score", "Infinity"),
        ("csat_avg_score", 1e30),
        ("guest_speaker_count", float("inf")),
        ("guest_speaker_count", "1e12"),
    ])
    def test_rejects_non_finite_and_oversized(self, service, field, value):
        _attach(service)
        with pytest.raises(ValidationError):
            service.update_session_metrics(100, 10, 1, **{field: value})

    def test_whole_number_string_count(self, service):
        _attach(service)
        assert service.update_session_metrics(100, 10, 1, guest_speaker_count="3.0")["guest_speaker_count"] == 3
        assert service.update_session_metrics(100, 10, 1, guest_speaker_count=2.0)["guest_speaker_count"] == 2
        with pytest.raises(ValidationError):
            service.update_session_metrics(100, 10, 1, guest_speaker_count="3.5")

    def test_update_computes_savings(self, service):
        _attach(service)
        data = service.update_session_metrics(100, 10, 1, budget_preapproved_total="5000",
                                              budget_actual_total="4200.50")
        assert data["budget_savings_amount"] == 799.5

    def test_overspend_savings_floor_at_zero(self, service):
        _attach(service)
        data = service.update_session_metrics(100, 10, 1, budget_preapproved_total=100,
                                              budget_actual_total=150)
        assert data["budget_savings_amount"] == 0.0

    def test_partial_update_keeps_other_fields(self, service):
        _attach(service)
        service.update_session_metrics(100, 10, 1, csat_avg_score="4.1")
        data = service.update_session_metrics(100, 10, 1, guest_speaker_count=2)
        assert data["csat_avg_score"] == 4.1
        assert data["guest_speaker_count"] == 2
        assert data["budget_savings_amount"] is None

    def test_invalid_score(self, service):
        _attach(service)
        with pytest.raises(ValidationError):
            service.update_session_metrics(100, 10, 1, csat_avg_score="6")

    def test_missing_session(self, service):
        with pytest.raises(NotFoundError):
            service.update_session_metrics(100, 10, 1, csat_avg_score="4")


class TestCalculate:
    def test_reference_payout(self, service, sessions):
        _attach(service)
        result = service.calculate_session_compensation(
            100, 10, 1, budget_preapproved_total=5000, budget_actual_total=4200,
            csat_avg_score="4.7", guest_speaker_count=4,
        )

        assert result["total_compensation"] == 890.0
        assert result["breakdown"]["bonuses"]["enrollment"]["eligible_campers"] == 15
        rec = sessions.find(100, 10)
        assert rec.is_finalized is True
        assert rec.calculated_at == FIXED_NOW
        assert rec.total_enrolled_campers == 65
        assert rec.budget_savings_amount == Decimal("800.00")
        assert rec.total_compensation == Decimal("890.00")

    def test_uses_recorded_metrics_and_snapshot_speakers(self, service, camps):
        camps.enrollments[100] = 40
        _attach(service)
        service.update_session_metrics(100, 10, 1, csat_avg_score="4.2",
                                       budget_preapproved_total=5000, budget_actual_total=4200)
        service.capture_day_snapshot(1000, 10, 1, day_guest_speaker_count=2)
        service.capture_day_snapshot(1001, 10, 1, day_guest_speaker_count=2)

        result = service.calculate_session_compensation(100, 10, 1)

        assert result["breakdown"]["bonuses"]["guest_speaker"]["actual_count"] == 4
        assert result["total_compensation"] == 760.0

    def test_second_calculation_rejected(self, service):
        _attach(service)
        service.calculate_session_compensation(100, 10, 1)
        with pytest.raises(AlreadyFinalizedError):
            service.calculate_session_compensation(100, 10, 1)
        with pytest.raises(AlreadyFinalizedError):
            service.update_session_metrics(100, 10, 1, csat_avg_score="5")

    def test_missing_session(self, service):
        with pytest.raises(NotFoundError):
            service.calculate_session_compensation(100, 10, 1)


class TestReads:
    def test_summary_for_coach(self, service):
        _attach(service)
        service.capture_day_snapshot(1000, 10, 1)

        data = service.get_session_summary(100, 1, "coach", 10)

        assert data["plan"]["plan_code"] == "HIGH"
        assert data["session"]["staff_profile_id"] == 10
        assert len(data["daily_snapshots"]) == 1
        assert data["staff"] == {"id": 10, "name": "Chris Coach", "email": "chris@example.com"}
        assert data["camp"]["start_date"] == "2025-07-07"

    def test_summary_requires_staff_for_non_admin(self, service):
        with pytest.raises(ValidationError):
            service.get_session_summary(100, 1, "director")

    def test_summary_for_owner_without_staff(self, service):
        _attach(service, staff_id=11)
        data = service.get_session_summary(100, 1, "licensee_owner")
        assert data["session"]["staff_profile_id"] == 11

    def test_summary_hq_ignores_tenant(self, service):
        _attach(service)
        assert service.get_session_summary(100, 2, "hq_admin", 10) is not None
        assert service.get_session_summary(100, 2, "director", 10) is None

    def test_no_record(self, service):
        assert service.get_session_summary(100, 1, "coach", 10) is None
        assert service.get_session_compensation(100, 1, 10) is None

    def test_person_history(self, service, camps):
        camps.add_camp(200, 1, "Spring Camp", date(2025, 4, 14))
        camps.add_camp(300, 2, "Coastal Camp", date(2025, 8, 4))
        _attach(service)
        service.attach_plan(200, 10, "HIGH", 1)
        service.attach_plan(300, 10, "FIXED", 2)

        scoped = service.get_person_history(10, "director", 1)
        assert [r["camp_id"] for r in scoped] == [100, 200]
        assert scoped[0]["tenant_name"] == "Northside Athletics"

        everything = service.get_person_history(10, "hq_admin", 1)
        assert [r["camp_id"] for r in everything] == [300, 100, 200]
