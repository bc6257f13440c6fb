from __future__ import annotations

import pytest

from core_service.core.enums import EmployeeAction, EmployeeStatus
from core_service.core.exceptions import ConflictError, NotFoundError, ValidationError


def test_create_sets_initial_assignment_and_history(container, employee):
    assert employee.full_name == "Budi Santoso"
    assert employee.status == EmployeeStatus.ACTIVE
    assert employee.assignment_history[0]["is_active"] is True
    assert employee.status_history[0]["reason"] == "Joined"

    history = container.employee_service.get_history(employee.employee_ref)
    assert [h.change_type for h in history.items] == [EmployeeAction.CREATE]


def test_duplicate_employee_id_and_linked_account(container, employee):
    svc = container.employee_service
    with pytest.raises(ValidationError):
        svc.create_employee({"employee_id": "EMP001", "first_name": "A", "last_name": "B", "join_date": "2024-01-01"}, user_id="admin")
    with pytest.raises(ConflictError):
        svc.create_employee(
            {"employee_id": "EMP002", "first_name": "A", "last_name": "B", "join_date": "2024-01-01", "user_id": "emp-user"},
            user_id="admin",
        )


def test_position_must_belong_to_division(container, org):
    other_division = container.division_service.create_division(
        {"code": "FIN", "name": "Finance", "branch_id": org.branch.branch_id}, user_id="admin"
    )
    with pytest.raises(ValidationError):
        container.employee_service.create_employee(
            {
                "employee_id": "EMP009",
                "first_name": "A",
                "last_name": "B",
                "join_date": "2024-01-01",
                "division_id": other_division.division_id,
                "position_id": org.position.position_id,
            },
            user_id="admin",
        )


def test_update_recomputes_full_name_and_logs_diff(container, employee):
    svc = container.employee_service
    updated = svc.update_employee(employee.employee_ref, {"last_name": "Wijaya", "phone": "0812"}, user_id="admin")

    assert updated.full_name == "Budi Wijaya"
    latest = svc.get_history(employee.employee_ref).items[0]
    assert latest.change_type == EmployeeAction.UPDATE
    assert latest.new_value["last_name"] == "Wijaya"

    unchanged = svc.update_employee(employee.employee_ref, {"phone": "0812"}, user_id="admin")
    assert unchanged == updated


def test_change_assignment_closes_previous_and_keeps_account(container, org, employee):
    svc = container.employee_service
    lead = container.position_service.create_position(
        {"code": "LEAD", "title": "Lead", "division_id": org.division.division_id}, user_id="admin"
    )

    moved = svc.change_assignment(
        employee.employee_ref,
        {
            "branch_id": org.branch.branch_id,
            "division_id": org.division.division_id,
            "position_id": lead.position_id,
            "start_date": "2024-06-01",
        },
        user_id="admin",
    )

    assert moved.position_id == lead.position_id
    assert moved.user_id == "emp-user"
    assert moved.updated_by == "admin"
    first, second = moved.assignment_history
    assert first["is_active"] is False
    assert first["end_date"] == "2024-06-01"
    assert second["is_active"] is True


def test_change_status_rejects_same_status(container, employee):
    svc = container.employee_service
    with pytest.raises(ValidationError):
        svc.change_status(employee.employee_ref, status="active", user_id="admin")

    updated = svc.change_status(
        employee.employee_ref, status="on_leave", reason="Sabbatical", effective_date="2024-03-01", user_id="admin"
    )
    assert updated.status == EmployeeStatus.ON_LEAVE
    assert updated.status_history[0]["end_date"] == "2024-03-01"
    assert updated.status_history[-1]["reason"] == "Sabbatical"


def test_document_lifecycle(container, employee):
    svc = container.employee_service
    with_doc = svc.add_document(
        employee.employee_ref,
        {"type": "ktp", "number": "3171", "file_url": "https://files/ktp.png", "issued_date": "2020-01-01"},
        user_id="admin",
    )
    doc_id = with_doc.documents[0]["document_id"]
    assert with_doc.documents[0]["verification_status"] == "PENDING"

    verified = svc.verify_document(employee.employee_ref, doc_id, status="verified", user_id="hr1")
    assert verified.documents[0]["verification_status"] == "VERIFIED"
    assert verified.documents[0]["verified_by"] == "hr1"

    changed = svc.update_document(employee.employee_ref, doc_id, {"file_url": "https://files/ktp2.png"}, user_id="admin")
    assert changed.documents[0]["verification_status"] == "PENDING"

    with pytest.raises(ValidationError):
        svc.verify_document(employee.employee_ref, doc_id, status="pending", user_id="hr1")
    with pytest.raises(NotFoundError):
        svc.verify_document(employee.employee_ref, "missing", status="verified", user_id="hr1")
    with pytest.raises(ValidationError):
        svc.add_document(
            employee.employee_ref,
            {"type": "ktp", "number": "1", "file_url": "x", "issued_date": "2024-01-02", "expiry_date": "2024-01-01"},
            user_id="admin",
        )


def test_profile_sub_records(container, employee):
    svc = container.employee_service
    ref = employee.employee_ref

    svc.add_skill(ref, {"name": "Forklift", "proficiency_level": "advanced"}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.add_skill(ref, {"name": "forklift"}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.add_skill(ref, {"name": "Driving", "proficiency_level": "guru"}, user_id="admin")

    with pytest.raises(ValidationError):
        svc.add_training(ref, {"name": "Safety", "start_date": "2024-02-01", "end_date": "2024-01-01"}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.add_evaluation(
            ref, {"evaluation_date": "2024-01-01", "evaluation_type": "annual", "overall_rating": 6}, user_id="admin"
        )
    with pytest.raises(ValidationError):
        svc.add_contract(ref, {"contract_type": "contract", "start_date": "2024-01-01", "end_date": "2024-01-01"}, user_id="admin")

    final = svc.add_contract(ref, {"contract_type": "contract", "start_date": "2024-01-01", "salary": 5000000}, user_id="admin")
    assert final.contracts[0]["contract_type"] == "CONTRACT"
    assert final.skills[0]["proficiency_level"] == "ADVANCED"
    types = {h.change_type for h in svc.get_history(ref, limit=50).items}
    assert {EmployeeAction.SKILL_ADDED, EmployeeAction.CONTRACT_ADDED} <= types


def test_link_user_conflict(container, employee):
    svc = container.employee_service
    other = svc.create_employee({"employee_id": "EMP002", "first_name": "Sari", "last_name": "Dewi", "join_date": "2024-01-01"}, user_id="admin")

    with pytest.raises(ConflictError):
        svc.link_user(other.employee_ref, "emp-user", user_id="admin")
    assert svc.link_user(other.employee_ref, "sari-user", user_id="admin").user_id == "sari-user"
    assert svc.get_by_user_id("sari-user").employee_ref == other.employee_ref


def test_list_and_search(container, employee):
    svc = container.employee_service
    svc.create_employee({"employee_id": "EMP002", "first_name": "Sari", "last_name": "Dewi", "join_date": "2024-01-01"}, user_id="admin")

    page = svc.list_employees(search="sari")
    assert page.total == 1
    assert page.items[0].employee_id == "EMP002"
    assert svc.list_employees(status="active", limit=1).pages == 2


def test_manager_must_be_an_existing_employee(container, employee):
    svc = container.employee_service
    base = {"first_name": "Sari", "last_name": "Dewi", "join_date": "2024-01-01"}

    with pytest.raises(NotFoundError):
        svc.create_employee({**base, "employee_id": "EMP010", "manager_ref": 999}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.create_employee({**base, "employee_id": "EMP010", "manager_ref": "boss"}, user_id="admin")

    report = svc.create_employee({**base, "employee_id": "EMP010", "manager_ref": employee.employee_ref}, user_id="admin")
    assert report.manager_ref == employee.employee_ref

    with pytest.raises(ValidationError):
        svc.update_employee(report.employee_ref, {"manager_ref": report.employee_ref}, user_id="admin")
    with pytest.raises(NotFoundError):
        svc.update_employee(report.employee_ref, {"manager_ref": 999}, user_id="admin")
