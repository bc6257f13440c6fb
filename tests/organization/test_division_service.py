from __future__ import annotations

import pytest

from core_service.core.enums import ChangeType, DivisionStatus, EntityType
from core_service.core.exceptions import NotFoundError, ValidationError


@pytest.fixture
def branch(container):
    return container.branch_service.create_branch({"code": "HQ", "name": "Head", "type": "HEAD_OFFICE"}, user_id="u1")


def _division(container, branch, code, parent_id=None):
    return container.division_service.create_division(
        {"code": code, "name": f"Division {code}", "branch_id": branch.branch_id, "parent_id": parent_id},
        user_id="u1",
    )


def test_create_records_org_change(container, branch):
    ops = _division(container, branch, "ops")

    assert ops.code == "OPS"
    assert (ops.level, ops.path) == (1, "OPS")
    changes = container.org_change_service.get_by_entity("division", ops.division_id)
    assert [c.change_type for c in changes] == [ChangeType.CREATE]


def test_child_division_and_descendants(container, branch):
    ops = _division(container, branch, "OPS")
    fleet = _division(container, branch, "FLEET", parent_id=ops.division_id)

    assert fleet.path == "OPS.FLEET"
    assert fleet.level == 2
    assert [d.code for d in container.division_service.get_children(ops.division_id)] == ["FLEET"]
    assert [d.code for d in container.division_service.get_descendants(ops.division_id)] == ["FLEET"]


def test_missing_branch_is_not_found(container):
    with pytest.raises(NotFoundError):
        container.division_service.create_division({"code": "X", "name": "X", "branch_id": 42}, user_id="u1")


def test_reparent_is_recorded_as_restructure(container, branch):
    svc = container.division_service
    ops = _division(container, branch, "OPS")
    fin = _division(container, branch, "FIN")
    fleet = _division(container, branch, "FLEET", parent_id=ops.division_id)

    moved = svc.update_division(fleet.division_id, {"parent_id": fin.division_id, "reason": "Reorg"}, user_id="u1")

    assert moved.path == "FIN.FLEET"
    latest = container.org_change_service.get_by_entity(EntityType.DIVISION, fleet.division_id)[0]
    assert latest.change_type == ChangeType.RESTRUCTURE
    assert latest.reason == "Reorg"

    with pytest.raises(ValidationError):
        svc.update_division(fin.division_id, {"parent_id": fleet.division_id}, user_id="u1")


def test_cannot_deactivate_with_active_children(container, branch):
    svc = container.division_service
    ops = _division(container, branch, "OPS")
    fleet = _division(container, branch, "FLEET", parent_id=ops.division_id)

    with pytest.raises(ValidationError):
        svc.change_status(ops.division_id, status="inactive", user_id="u1")

    svc.change_status(fleet.division_id, status="archived", reason="Merged", user_id="u1")
    updated = svc.change_status(ops.division_id, status="inactive", user_id="u1")
    assert updated.status == DivisionStatus.INACTIVE


def test_budget_validation_and_remaining(container, branch):
    svc = container.division_service
    ops = _division(container, branch, "OPS")

    result = svc.update_budget(
        ops.division_id, {"annual_budget": 1000, "spent_budget": 250, "fiscal_year": 2025}, user_id="u1"
    )
    assert result["remaining"] == 750

    with pytest.raises(ValidationError):
        svc.update_budget(ops.division_id, {"fiscal_year": 1999}, user_id="u1")


def test_transfer_to_branch(container, branch):
    svc = container.division_service
    other = container.branch_service.create_branch({"code": "SBY", "name": "Surabaya", "type": "BRANCH"}, user_id="u1")
    ops = _division(container, branch, "OPS")

    with pytest.raises(ValidationError):
        svc.transfer_to_branch(ops.division_id, branch.branch_id, user_id="u1")

    moved = svc.transfer_to_branch(ops.division_id, other.branch_id, user_id="u1")
    assert moved.branch_id == other.branch_id
    assert container.org_change_service.get_by_type("transfer")[0].entity_id == ops.division_id


def test_delete_blocked_by_positions(container, branch):
    ops = _division(container, branch, "OPS")
    container.position_service.create_position(
        {"code": "MGR", "title": "Manager", "division_id": ops.division_id}, user_id="u1"
    )

    with pytest.raises(ValidationError):
        container.division_service.delete_division(ops.division_id, user_id="u1")


def test_moving_division_subtree_cannot_exceed_max_depth(container, branch):
    svc = container.division_service
    parent_id = None
    deep = []
    for i in range(9):
        deep.append(_division(container, branch, f"D{i}", parent_id=parent_id))
        parent_id = deep[-1].division_id
    top = _division(container, branch, "TOP")
    child = _division(container, branch, "SUB", parent_id=top.division_id)

    with pytest.raises(ValidationError):
        svc.update_division(top.division_id, {"parent_id": deep[-1].division_id}, user_id="u1")

    assert svc.get_division(top.division_id).level == 1
    assert svc.get_division(child.division_id).level == 2
    assert svc.get_division(child.division_id).path == "TOP.SUB"
