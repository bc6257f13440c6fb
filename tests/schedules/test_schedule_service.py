from __future__ import annotations

from datetime import date

import pytest

from core_service.core.enums import AssignmentStatus, ScheduleType
from core_service.core.exceptions import NotFoundError, ValidationError


def _shift_schedule(container, code="SHIFT1"):
    return container.schedule_service.create_schedule(
        {
            "code": code,
            "name": "Warehouse shifts",
            "type": "shift",
            "shifts": [
                {"name": "Morning", "code": "m", "start": "06:00", "end": "14:00", "break_minutes": 30},
                {"name": "Night", "code": "n", "start": "22:00", "end": "06:00"},
            ],
        },
        user_id="admin",
    )


def test_regular_schedule_defaults_and_total_hours(container):
    schedule = container.schedule_service.create_schedule(
        {"code": "reg", "name": "Office", "type": "regular", "regular_hours": {"start": "07:30", "end": "16:30"}},
        user_id="admin",
    )

    assert schedule.code == "REG"
    assert schedule.type == ScheduleType.REGULAR
    assert schedule.working_days[0] == "MONDAY"
    assert schedule.regular_hours["total_hours"] == 8
    assert schedule.geofencing == {"enabled": False, "locations": []}


def test_shift_definitions(container):
    schedule = _shift_schedule(container)
    morning = schedule.find_shift("M")
    night = schedule.find_shift("N")

    assert morning["total_hours"] == 7.5
    assert morning["is_overnight"] is False
    assert night["is_overnight"] is True
    assert night["total_hours"] == 8


def test_invalid_schedules_rejected(container):
    svc = container.schedule_service
    with pytest.raises(ValidationError):
        svc.create_schedule({"code": "S", "name": "No shifts", "type": "shift"}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.create_schedule(
            {"code": "R", "name": "Backwards", "type": "regular", "regular_hours": {"start": "17:00", "end": "08:00"}},
            user_id="admin",
        )
    with pytest.raises(ValidationError):
        svc.create_schedule(
            {"code": "G", "name": "Fence", "type": "regular", "geofencing": {"enabled": True}}, user_id="admin"
        )
    svc.create_schedule({"code": "DUP", "name": "One", "type": "regular"}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.create_schedule({"code": "dup", "name": "Two", "type": "regular"}, user_id="admin")


def test_update_and_filter_by_branch(container):
    svc = container.schedule_service
    schedule = svc.create_schedule({"code": "REG", "name": "Office", "type": "regular"}, user_id="admin")

    updated = svc.update_schedule(schedule.schedule_id, {"applicable_to": {"branches": [1, "2"]}}, user_id="admin")

    assert updated.applicable_branches == [1, 2]
    assert svc.list_schedules(branch_id=2).total == 1
    assert svc.list_schedules(branch_id=3).total == 0


def test_assign_rejects_overlap(container, employee):
    svc = container.schedule_service
    schedule = svc.create_schedule({"code": "REG", "name": "Office", "type": "regular"}, user_id="admin")
    ref = employee.employee_ref

    first = svc.assign_schedule(
        {"employee_id": ref, "schedule_id": schedule.schedule_id, "start_date": "2024-01-01", "end_date": "2024-06-30"},
        user_id="admin",
    )
    with pytest.raises(ValidationError):
        svc.assign_schedule(
            {"employee_id": ref, "schedule_id": schedule.schedule_id, "start_date": "2024-06-01"}, user_id="admin"
        )

    second = svc.assign_schedule(
        {"employee_id": ref, "schedule_id": schedule.schedule_id, "start_date": "2024-07-01"}, user_id="admin"
    )
    assert first.status == AssignmentStatus.ACTIVE

    active, _ = svc.get_active_schedule(ref, "2024-08-01")
    assert active.assignment_id == second.assignment_id
    assert svc.get_active_schedule(ref, "2023-12-31") is None


def test_shift_assignments_validated(container, employee):
    svc = container.schedule_service
    schedule = _shift_schedule(container)
    base = {"employee_id": employee.employee_ref, "schedule_id": schedule.schedule_id, "start_date": "2024-03-01"}

    with pytest.raises(ValidationError):
        svc.assign_schedule({**base, "shift_assignments": [{"date": "2024-02-28", "shift_code": "M"}]}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.assign_schedule({**base, "shift_assignments": [{"date": "2024-03-02", "shift_code": "X"}]}, user_id="admin")

    assignment = svc.assign_schedule(
        {**base, "shift_assignments": [{"date": "2024-03-02", "shift_code": "n"}]}, user_id="admin"
    )
    assert assignment.shift_code_for(date(2024, 3, 2)) == "N"
    assert assignment.shift_code_for(date(2024, 3, 3)) is None


def test_update_assignment_and_lookup(container, employee):
    svc = container.schedule_service
    schedule = svc.create_schedule({"code": "REG", "name": "Office", "type": "regular"}, user_id="admin")
    assignment = svc.assign_schedule(
        {"employee_id": employee.employee_ref, "schedule_id": schedule.schedule_id, "start_date": "2024-01-01"},
        user_id="admin",
    )

    with pytest.raises(ValidationError):
        svc.update_employee_schedule(assignment.assignment_id, {"end_date": "2023-12-01"}, user_id="admin")
    ended = svc.update_employee_schedule(assignment.assignment_id, {"status": "inactive"}, user_id="admin")
    assert ended.status == AssignmentStatus.INACTIVE

    with pytest.raises(NotFoundError):
        svc.employee_schedule_for(employee.employee_ref, "2024-02-01")
    with pytest.raises(NotFoundError):
        svc.assign_schedule({"employee_id": 999, "schedule_id": schedule.schedule_id, "start_date": "2024-01-01"}, user_id="admin")


def test_active_schedule_respects_template_dates_and_working_days(container, employee):
    svc = container.schedule_service
    schedule = svc.create_schedule(
        {
            "code": "REG24",
            "name": "Office 2024",
            "type": "regular",
            "effective_date": "2024-01-01",
            "expiry_date": "2024-12-31",
        },
        user_id="admin",
    )
    svc.assign_schedule(
        {"employee_id": employee.employee_ref, "schedule_id": schedule.schedule_id, "start_date": "2023-06-01"},
        user_id="admin",
    )
    ref = employee.employee_ref

    assert svc.get_active_schedule(ref, "2024-03-04") is not None
    # before the template takes effect and after it expires
    assert svc.get_active_schedule(ref, "2023-12-29") is None
    assert svc.get_active_schedule(ref, "2025-01-06") is None
    # Saturday is not a working day
    assert svc.get_active_schedule(ref, "2024-03-09") is None


def test_shift_assignment_overrides_working_days(container, employee):
    svc = container.schedule_service
    schedule = _shift_schedule(container)
    svc.assign_schedule(
        {
            "employee_id": employee.employee_ref,
            "schedule_id": schedule.schedule_id,
            "start_date": "2024-03-01",
            "shift_assignments": [{"date": "2024-03-02", "shift_code": "M"}],
        },
        user_id="admin",
    )

    assert svc.get_active_schedule(employee.employee_ref, "2024-03-02") is not None
    assert svc.get_active_schedule(employee.employee_ref, "2024-03-03") is None
