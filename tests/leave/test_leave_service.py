from __future__ import annotations

from datetime import date

import pytest

from core_service.core.enums import BalanceAction, RequestStatus
from core_service.core.exceptions import ConflictError, NotFoundError, ValidationError

TODAY = date(2024, 3, 1)


@pytest.fixture
def balance(container, employee):
    return container.leave_service.initialize_balance(
        {"employee_id": employee.employee_ref, "year": 2024}, user_id="hr1"
    )


def _request(container, employee, start, end, **extra):
    return container.leave_service.request_leave(
        {"employee_id": employee.employee_ref, "type": "annual", "start_date": start, "end_date": end, **extra},
        user_id="emp-user",
        today=TODAY,
    )


def _annual(container, employee):
    return container.leave_service.get_balance(employee.employee_ref, 2024)["balances"]["ANNUAL"]


def test_initialize_balance(container, employee, balance):
    assert balance.balances["ANNUAL"]["allocated"] == 12
    assert balance.balances["ANNUAL"]["max_carry_over"] == 5
    assert balance.balances["UNPAID"]["allocated"] == 0
    assert balance.accrual_history[0]["action"] == BalanceAction.ANNUAL_ALLOCATION.value

    with pytest.raises(ConflictError):
        container.leave_service.initialize_balance({"employee_id": employee.employee_ref, "year": 2024}, user_id="hr1")
    with pytest.raises(ValidationError):
        container.leave_service.initialize_balance(
            {"employee_id": employee.employee_ref, "year": 2025, "allocations": {"sick": -1}}, user_id="hr1"
        )

    custom = container.leave_service.initialize_balance(
        {"employee_id": employee.employee_ref, "year": 2025, "allocations": {"annual": 15}}, user_id="hr1"
    )
    assert custom.balances["ANNUAL"]["allocated"] == 15


def test_request_moves_days_to_pending(container, employee, balance):
    container.holiday_service.create_holiday({"name": "Nyepi", "date": "2024-03-11"}, user_id="admin")

    leave = _request(container, employee, "2024-03-11", "2024-03-15", reason="Trip")

    assert leave.duration == 4
    assert leave.status == RequestStatus.PENDING
    assert leave.balance_year == 2024
    annual = _annual(container, employee)
    assert annual["pending"] == 4
    assert annual["available"] == 8


def test_request_validation(container, employee, balance):
    _request(container, employee, "2024-03-04", "2024-03-08")

    with pytest.raises(ValidationError):
        _request(container, employee, "2024-03-08", "2024-03-12")
    with pytest.raises(ValidationError):
        _request(container, employee, "2024-04-01", "2024-04-30")
    with pytest.raises(ValidationError):
        _request(container, employee, "2024-03-09", "2024-03-10")
    with pytest.raises(ValidationError):
        _request(container, employee, "2024-05-10", "2024-05-01")

    unpaid = container.leave_service.request_leave(
        {"employee_id": employee.employee_ref, "type": "unpaid", "start_date": "2024-06-03", "end_date": "2024-06-28"},
        user_id="emp-user",
        today=TODAY,
    )
    assert unpaid.duration == 20


def test_request_without_balance(container, employee):
    with pytest.raises(ValidationError):
        _request(container, employee, "2024-03-04", "2024-03-04")


def test_approve_then_cancel_restores_balance(container, employee, balance):
    svc = container.leave_service
    leave = _request(container, employee, "2024-03-04", "2024-03-08")

    approved = svc.approve_or_reject(leave.leave_id, status="approved", approver_role="MANAGER", user_id="mgr1")
    assert approved.status == RequestStatus.APPROVED
    assert approved.approval_history[-1]["approver_id"] == "mgr1"
    annual = _annual(container, employee)
    assert (annual["used"], annual["pending"], annual["available"]) == (5, 0, 7)

    with pytest.raises(ValidationError):
        svc.approve_or_reject(leave.leave_id, status="rejected", user_id="mgr1")
    with pytest.raises(ValidationError):
        svc.cancel_leave(leave.leave_id, user_id="emp-user", today=date(2024, 3, 5))

    cancelled = svc.cancel_leave(leave.leave_id, reason=" Plans changed ", user_id="emp-user", today=TODAY)
    assert cancelled.cancellation_reason == "Plans changed"
    annual = _annual(container, employee)
    assert (annual["used"], annual["available"]) == (0, 12)

    with pytest.raises(ValidationError):
        svc.cancel_leave(leave.leave_id, user_id="emp-user", today=TODAY)


def test_reject_releases_pending(container, employee, balance):
    svc = container.leave_service
    leave = _request(container, employee, "2024-03-04", "2024-03-05")

    with pytest.raises(ValidationError):
        svc.approve_or_reject(leave.leave_id, status="pending", user_id="mgr1")
    svc.approve_or_reject(leave.leave_id, status="rejected", notes="Busy period", user_id="mgr1")

    annual = _annual(container, employee)
    assert (annual["used"], annual["pending"]) == (0, 0)
    with pytest.raises(ValidationError):
        svc.cancel_leave(leave.leave_id, user_id="emp-user", today=TODAY)
    with pytest.raises(NotFoundError):
        svc.get_leave(999)


def test_adjust_balance(container, employee, balance):
    svc = container.leave_service
    base = {"employee_id": employee.employee_ref, "year": 2024, "type": "annual"}

    with pytest.raises(ValidationError):
        svc.adjust_balance({**base, "amount": 0, "reason": "Nothing"}, user_id="hr1")
    with pytest.raises(ValidationError):
        svc.adjust_balance({**base, "amount": -20, "reason": "Too much"}, user_id="hr1")
    with pytest.raises(ValidationError):
        svc.adjust_balance({**base, "amount": 2}, user_id="hr1")

    updated = svc.adjust_balance({**base, "amount": 2, "reason": "Overtime compensation"}, user_id="hr1")
    assert updated.balances["ANNUAL"]["additional"] == 2
    assert updated.adjustments[0]["approved_by"] == "hr1"
    assert updated.accrual_history[-1]["action"] == BalanceAction.ADJUSTMENT.value


def test_monthly_accruals_run_once_per_period(container, employee, balance):
    svc = container.leave_service

    assert svc.calculate_accruals(2024, 1, user_id="system") == {"period": "2024-01", "processed": 1, "skipped": 0}
    assert svc.calculate_accruals("2024", "1", user_id="system")["skipped"] == 1
    assert _annual(container, employee)["additional"] == 1.0

    with pytest.raises(ValidationError):
        svc.calculate_accruals(2024, 13, user_id="system")


def test_carryover_into_next_year(container, employee, balance):
    svc = container.leave_service

    created = svc.process_carryover(2024, 2025, user_id="system")

    assert len(created) == 1
    annual = created[0].balances["ANNUAL"]
    assert annual["allocated"] == 12
    assert annual["carried_over"] == 5
    assert annual["carry_over_expiry"] == "2025-06-30"
    assert created[0].balances["SICK"]["carried_over"] == 0
    assert created[0].balances["SICK"]["allocated"] == 0
    assert svc.process_carryover(2024, 2025, user_id="system") == []

    with pytest.raises(ValidationError):
        svc.process_carryover(2025, 2024, user_id="system")


def test_failed_balance_write_rolls_back_request(container, repos, employee, balance, monkeypatch):
    def broken_update(item):
        raise RuntimeError("balance store unavailable")

    monkeypatch.setattr(repos.leave_balances, "update", broken_update)
    with pytest.raises(RuntimeError):
        _request(container, employee, "2024-03-04", "2024-03-05")
    monkeypatch.undo()

    assert container.leave_service.list_employee_leaves(employee.employee_ref).total == 0
    assert _annual(container, employee)["pending"] == 0
