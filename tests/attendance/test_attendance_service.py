from __future__ import annotations

from datetime import datetime

import pytest

from core_service.attendance.factory import AttendanceStrategyFactory
from core_service.attendance.model import WorkWindow
from core_service.attendance.strategies.early_strategy import EarlyDepartureStrategy
from core_service.attendance.strategies.late_strategy import LateStrategy
from core_service.attendance.strategies.normal_strategy import NormalStrategy
from core_service.core.enums import AttendanceStatus
from core_service.core.exceptions import AuthorizationError, NotFoundError, ValidationError

OFFICE = {"longitude": 106.8272, "latitude": -6.1754}


def _assign(container, employee, schedule_data):
    svc = container.schedule_service
    schedule = svc.create_schedule(schedule_data, user_id="admin")
    return svc.assign_schedule(
        {
            "employee_id": employee.employee_ref,
            "schedule_id": schedule.schedule_id,
            "start_date": "2024-01-01",
            "shift_assignments": schedule_data.get("assign_shifts"),
        },
        user_id="admin",
    )


@pytest.fixture
def regular(container, employee):
    return _assign(container, employee, {"code": "REG", "name": "Office", "type": "regular"})


def test_factory_picks_strategy_after_grace_period():
    window = WorkWindow(start=datetime(2024, 3, 4, 8), end=datetime(2024, 3, 4, 17), grace_minutes=15)
    factory = AttendanceStrategyFactory()

    assert isinstance(factory.for_checkin(now=datetime(2024, 3, 4, 8, 15), window=window), NormalStrategy)
    late = factory.for_checkin(now=datetime(2024, 3, 4, 8, 16), window=window)
    assert isinstance(late, LateStrategy)
    assert late.decide_checkin(now=datetime(2024, 3, 4, 8, 16), window=window).late_minutes == 16

    early = factory.for_checkout(now=datetime(2024, 3, 4, 16, 45), window=window)
    assert isinstance(early, EarlyDepartureStrategy)
    decision = early.decide_checkout(now=datetime(2024, 3, 4, 16, 45), window=window, current=AttendanceStatus.PRESENT)
    assert decision.early_departure_minutes == 15
    assert isinstance(factory.for_checkout(now=datetime(2024, 3, 4, 17), window=window), NormalStrategy)


def test_late_check_in_and_early_check_out(container, employee, regular):
    svc = container.attendance_service
    ref = employee.employee_ref

    record = svc.check_in(ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 8, 20))
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 20
    assert record.anomalies["is_late"] is True
    assert record.anomalies["is_incomplete"] is True

    with pytest.raises(ValidationError):
        svc.check_in(ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 9))

    done = svc.check_out(ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 16, 30))
    assert done.work_duration_minutes == 490
    assert done.early_departure_minutes == 30
    assert done.anomalies["is_early_departure"] is True
    assert done.anomalies["is_incomplete"] is False
    assert done.overtime_minutes == 0

    with pytest.raises(ValidationError):
        svc.check_out(ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 17))


def test_overtime_counts_past_minimum(container, employee, regular):
    svc = container.attendance_service
    svc.check_in(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 5, 7, 55))

    done = svc.check_out(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 5, 18))

    assert done.late_minutes == 0
    assert done.overtime_minutes == 60
    assert done.anomalies["is_overtime"] is True


def test_check_in_requires_active_schedule(container, employee):
    with pytest.raises(ValidationError):
        container.attendance_service.check_in(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 8))
    with pytest.raises(NotFoundError):
        container.attendance_service.check_in(999, {}, user_id="emp-user", now=datetime(2024, 3, 4, 8))


def test_overnight_shift_checks_out_next_day(container, employee):
    _assign(
        container,
        employee,
        {
            "code": "NIGHT",
            "name": "Night",
            "type": "shift",
            "shifts": [{"name": "Night", "code": "N", "start": "22:00", "end": "06:00"}],
        },
    )
    svc = container.attendance_service

    record = svc.check_in(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 22, 5))
    assert record.shift_code == "N"
    assert record.late_minutes == 0

    done = svc.check_out(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 5, 6, 10))
    assert done.attendance_id == record.attendance_id
    assert done.work_duration_minutes == 485
    assert done.overtime_minutes == 0
    assert done.anomalies["is_early_departure"] is False


def test_geofence(container, employee):
    _assign(
        container,
        employee,
        {
            "code": "FENCED",
            "name": "Fenced",
            "type": "regular",
            "geofencing": {"enabled": True, "locations": [{"name": "Office", "radius": 100, **OFFICE}]},
        },
    )
    svc = container.attendance_service

    inside = svc.check_in(employee.employee_ref, {"location": OFFICE}, user_id="emp-user", now=datetime(2024, 3, 4, 8))
    assert inside.anomalies["is_outside_geofence"] is False
    assert inside.check_in["location"] == OFFICE

    outside = svc.check_in(
        employee.employee_ref,
        {"location": {"coordinates": [106.9, -6.3]}},
        user_id="emp-user",
        now=datetime(2024, 3, 5, 8),
    )
    assert outside.anomalies["is_outside_geofence"] is True

    missing = svc.check_in(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 6, 8))
    assert missing.anomalies["is_outside_geofence"] is True


def test_correction_workflow(container, employee, regular):
    svc = container.attendance_service
    record = svc.check_in(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 9))
    svc.check_out(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 17))

    with pytest.raises(ValidationError):
        svc.request_correction(record.attendance_id, {"reason": "Forgot"}, user_id="emp-user")
    with pytest.raises(ValidationError):
        svc.request_correction(
            record.attendance_id,
            {"reason": "Wrong", "corrected_check_in": "2024-03-04T18:00:00"},
            user_id="emp-user",
        )

    svc.request_correction(
        record.attendance_id,
        {"reason": "Badge reader down", "corrected_check_in": "2024-03-04T08:00:00"},
        user_id="emp-user",
    )
    with pytest.raises(ValidationError):
        svc.request_correction(
            record.attendance_id, {"reason": "Again", "corrected_check_in": "2024-03-04T08:00:00"}, user_id="emp-user"
        )
    with pytest.raises(ValidationError):
        svc.review_correction(record.attendance_id, status="pending", user_id="hr1")

    approved = svc.review_correction(record.attendance_id, status="approved", notes="ok", user_id="hr1")
    assert approved.check_in_time == datetime(2024, 3, 4, 8)
    assert approved.check_in["verified"] is True
    assert approved.work_duration_minutes == 540
    assert approved.correction_request["status"] == "APPROVED"

    with pytest.raises(ValidationError):
        svc.review_correction(record.attendance_id, status="rejected", user_id="hr1")


def test_correction_must_target_own_record(container, employee, regular):
    svc = container.attendance_service
    record = svc.check_in(employee.employee_ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 9))
    data = {"reason": "Badge reader down", "corrected_check_in": "2024-03-04T08:00:00"}

    with pytest.raises(AuthorizationError):
        svc.request_correction(record.attendance_id, data, user_id="other-user", employee_ref=employee.employee_ref + 1)
    assert svc.get_attendance(record.attendance_id).correction_request in (None, {})

    filed = svc.request_correction(record.attendance_id, data, user_id="emp-user", employee_ref=employee.employee_ref)
    assert filed.correction_request["status"] == "PENDING"


def test_summary_anomalies_and_export(container, employee, regular):
    svc = container.attendance_service
    ref = employee.employee_ref
    svc.check_in(ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 8, 30))
    svc.check_out(ref, {}, user_id="emp-user", now=datetime(2024, 3, 4, 17))
    svc.check_in(ref, {}, user_id="emp-user", now=datetime(2024, 3, 5, 8))
    svc.check_out(ref, {}, user_id="emp-user", now=datetime(2024, 3, 5, 17))

    summary = svc.summary(ref, start="2024-03-01", end="2024-03-31")
    assert summary["total_days"] == 2
    assert summary["by_status"]["present"] == 2
    assert summary["late_count"] == 1
    assert summary["total_work_minutes"] == 1050
    assert summary["average_work_hours"] == 8.75

    late = svc.anomalies(anomaly_type="late", start="2024-03-01", end="2024-03-31")
    assert [r.date.day for r in late.items] == [4]
    assert svc.anomalies(anomaly_type="late", branch_id=999).total == 0

    rows = svc.export_rows(start="2024-03-01", end="2024-03-31")
    assert [r["date"] for r in rows] == ["2024-03-04", "2024-03-05"]
    assert rows[0]["employee_id"] == "EMP001"
    assert rows[0]["anomalies"] == "is_late"

    with pytest.raises(ValidationError):
        svc.summary(ref, start="2024-04-01", end="2024-03-01")
