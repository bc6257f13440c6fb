from __future__ import annotations

import pytest

from core_service.core.enums import ChangeType, EntityType
from core_service.core.exceptions import NotFoundError, ValidationError


@pytest.fixture
def division(container):
    branch = container.branch_service.create_branch({"code": "HQ", "name": "Head", "type": "HEAD_OFFICE"}, user_id="u1")
    return container.division_service.create_division(
        {"code": "OPS", "name": "Operations", "branch_id": branch.branch_id}, user_id="u1"
    )


def _position(container, division, code, report_to_id=None, **extra):
    return container.position_service.create_position(
        {"code": code, "title": code.title(), "division_id": division.division_id, "report_to_id": report_to_id, **extra},
        user_id="u1",
    )


def test_reporting_levels_and_chain(container, division):
    ceo = _position(container, division, "CEO")
    coo = _position(container, division, "COO", report_to_id=ceo.position_id)
    lead = _position(container, division, "LEAD", report_to_id=coo.position_id)

    assert (ceo.level, coo.level, lead.level) == (1, 2, 3)
    chain = container.position_service.get_reporting_chain(lead.position_id)
    assert [p.code for p in chain] == ["LEAD", "COO", "CEO"]


def test_org_chart_nests_direct_reports(container, division):
    ceo = _position(container, division, "CEO")
    _position(container, division, "COO", report_to_id=ceo.position_id)

    chart = container.position_service.get_org_chart(division.division_id)
    assert chart[0]["code"] == "CEO"
    assert chart[0]["direct_reports"][0]["code"] == "COO"


def test_circular_reporting_is_rejected(container, division):
    svc = container.position_service
    ceo = _position(container, division, "CEO")
    coo = _position(container, division, "COO", report_to_id=ceo.position_id)

    with pytest.raises(ValidationError):
        svc.update_position(ceo.position_id, {"report_to_id": coo.position_id}, user_id="u1")
    with pytest.raises(ValidationError):
        svc.update_position(ceo.position_id, {"report_to_id": ceo.position_id}, user_id="u1")


def test_changing_manager_refreshes_report_levels(container, division):
    svc = container.position_service
    ceo = _position(container, division, "CEO")
    coo = _position(container, division, "COO")
    lead = _position(container, division, "LEAD", report_to_id=coo.position_id)

    svc.update_position(coo.position_id, {"report_to_id": ceo.position_id}, user_id="u1")

    assert svc.get_position(coo.position_id).level == 2
    assert svc.get_position(lead.position_id).level == 3
    latest = container.org_change_service.get_by_entity(EntityType.POSITION, coo.position_id)[0]
    assert latest.change_type == ChangeType.RESTRUCTURE


def test_salary_range_validation(container, division):
    svc = container.position_service
    ceo = _position(container, division, "CEO", salary_range={"min": 100, "max": 200})

    assert ceo.salary_range == {"currency": "IDR", "min": 100, "max": 200}
    with pytest.raises(ValidationError):
        svc.update_salary_range(ceo.position_id, {"min": 500}, user_id="u1")


def test_unknown_division_and_manager(container, division):
    with pytest.raises(NotFoundError):
        container.position_service.create_position({"code": "X", "title": "X", "division_id": 99}, user_id="u1")
    with pytest.raises(NotFoundError):
        _position(container, division, "Y", report_to_id=99)


def test_delete_blocked_by_direct_reports(container, division):
    svc = container.position_service
    ceo = _position(container, division, "CEO")
    coo = _position(container, division, "COO", report_to_id=ceo.position_id)

    with pytest.raises(ValidationError):
        svc.delete_position(ceo.position_id, user_id="u1")

    svc.delete_position(coo.position_id, user_id="u1")
    assert container.org_change_service.get_by_type(ChangeType.DELETE)[0].entity_id == coo.position_id
