from __future__ import annotations

import pytest

from core_service.core.enums import AreaAction
from core_service.core.exceptions import ConflictError, NotFoundError, ValidationError

AREA = {
    "code": "BDG",
    "name": "Bandung",
    "level": "city",
    "geometry": {"type": "Polygon", "coordinates": [[[107, -7], [108, -7], [108, -6.5], [107, -6.5], [107, -7]]]},
}


@pytest.fixture
def setup(container):
    branches = container.branch_service
    north = branches.create_branch({"code": "BDGN", "name": "Bandung North", "type": "branch"}, user_id="admin")
    south = branches.create_branch({"code": "BDGS", "name": "Bandung South", "type": "branch"}, user_id="admin")
    area = container.service_area_service.create_area(AREA, user_id="admin")
    return north, south, area


def test_assign_and_choose_branch(container, setup):
    north, south, area = setup
    svc = container.branch_area_service

    svc.assign({"branch_id": north.branch_id, "area_id": area.area_id, "priority": 2}, user_id="admin")
    svc.assign({"branch_id": south.branch_id, "area_id": area.area_id, "priority": 1}, user_id="admin")

    assert svc.branch_for_area(area.area_id).branch_id == south.branch_id
    with pytest.raises(ConflictError):
        svc.assign({"branch_id": north.branch_id, "area_id": area.area_id}, user_id="admin")

    history = container.service_area_service.get_history(area.area_id, action="assignment_change")
    assert len(history) == 2


def test_primary_breaks_priority_ties_and_is_unique(container, setup):
    north, south, area = setup
    svc = container.branch_area_service

    first = svc.assign({"branch_id": north.branch_id, "area_id": area.area_id, "is_primary": True}, user_id="admin")
    second = svc.assign({"branch_id": south.branch_id, "area_id": area.area_id, "is_primary": True}, user_id="admin")

    assert svc.get_assignment(first.assignment_id).is_primary is False
    assert svc.branch_for_area(area.area_id).assignment_id == second.assignment_id

    svc.update_assignment(first.assignment_id, {"is_primary": True}, user_id="admin")
    assert svc.get_assignment(second.assignment_id).is_primary is False
    assert svc.branch_for_area(area.area_id).assignment_id == first.assignment_id


def test_priority_bounds_and_empty_update(container, setup):
    north, _, area = setup
    svc = container.branch_area_service

    with pytest.raises(ValidationError):
        svc.assign({"branch_id": north.branch_id, "area_id": area.area_id, "priority": 11}, user_id="admin")
    assignment = svc.assign({"branch_id": north.branch_id, "area_id": area.area_id}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.update_assignment(assignment.assignment_id, {}, user_id="admin")
    with pytest.raises(NotFoundError):
        svc.assign({"branch_id": 999, "area_id": area.area_id}, user_id="admin")


def test_branch_for_point_skips_inactive(container, setup):
    north, south, area = setup
    svc = container.branch_area_service

    with pytest.raises(NotFoundError):
        svc.branch_for_point(107.5, -6.8)

    inactive = svc.assign({"branch_id": north.branch_id, "area_id": area.area_id, "status": "inactive"}, user_id="admin")
    with pytest.raises(NotFoundError):
        svc.branch_for_point(107.5, -6.8)

    svc.assign({"branch_id": south.branch_id, "area_id": area.area_id, "priority": 5}, user_id="admin")
    found = svc.branch_for_point(107.5, -6.8)
    assert found["area"].area_id == area.area_id
    assert found["assignment"].branch_id == south.branch_id

    svc.remove_assignment(inactive.assignment_id, user_id="admin")
    assert [a.branch_id for a in svc.list_by_area(area.area_id)] == [south.branch_id]
    actions = [h.action for h in container.service_area_service.get_history(area.area_id)]
    assert actions.count(AreaAction.ASSIGNMENT_CHANGE) == 3
