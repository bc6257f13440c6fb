from __future__ import annotations

import pytest

from core_service.core.enums import BranchStatus, BranchType
from core_service.core.exceptions import NotFoundError, ValidationError


def _create(service, code, parent_id=None, **extra):
    data = {"code": code, "name": f"Branch {code}", "type": "branch", "parent_id": parent_id, **extra}
    return service.create_branch(data, user_id="u1")


def test_create_root_and_child_compute_path_and_level(container):
    svc = container.branch_service
    hq = _create(svc, "hq", type="HEAD_OFFICE")
    jkt = _create(svc, "jkt", parent_id=hq.branch_id)

    assert hq.code == "HQ"
    assert hq.type == BranchType.HEAD_OFFICE
    assert (hq.level, hq.path) == (1, "HQ")
    assert (jkt.level, jkt.path) == (2, "HQ.JKT")
    assert jkt.status == BranchStatus.ACTIVE


def test_duplicate_and_too_long_codes_are_rejected(container):
    svc = container.branch_service
    _create(svc, "HQ")
    with pytest.raises(ValidationError):
        _create(svc, "hq")
    with pytest.raises(ValidationError):
        _create(svc, "ABCDEFGHIJK")


def test_unknown_parent_is_rejected(container):
    with pytest.raises(ValidationError):
        _create(container.branch_service, "X1", parent_id=99)


def test_moving_a_branch_rewrites_descendant_paths(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")
    reg = _create(svc, "REG")
    jkt = _create(svc, "JKT", parent_id=hq.branch_id)
    sub = _create(svc, "SUB", parent_id=jkt.branch_id)

    moved = svc.update_branch(jkt.branch_id, {"parent_id": reg.branch_id}, user_id="u1")

    assert moved.path == "REG.JKT"
    child = svc.get_branch(sub.branch_id)
    assert child.path == "REG.JKT.SUB"
    assert child.level == 3


def test_parent_cycle_is_rejected(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")
    jkt = _create(svc, "JKT", parent_id=hq.branch_id)

    with pytest.raises(ValidationError):
        svc.update_branch(hq.branch_id, {"parent_id": jkt.branch_id}, user_id="u1")
    with pytest.raises(ValidationError):
        svc.update_branch(hq.branch_id, {"parent_id": hq.branch_id}, user_id="u1")


def test_closing_requires_reason_and_keeps_history(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")

    with pytest.raises(ValidationError):
        svc.update_status(hq.branch_id, status="closed", reason="  ", user_id="u1")

    closed = svc.update_status(hq.branch_id, status="closed", reason="Relocated", user_id="u1")
    assert closed.status == BranchStatus.CLOSED
    assert closed.status_reason == "Relocated"
    assert closed.status_history[-1]["from"] == "ACTIVE"
    assert closed.status_history[-1]["to"] == "CLOSED"


def test_operational_hours_validation(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")

    updated = svc.update_operational_hours(
        hq.branch_id,
        [
            {"day": "monday", "open_time": "08:00", "close_time": "17:00"},
            {"day": "sunday", "is_open": False},
        ],
        user_id="u1",
    )
    assert updated.operational_hours[0] == {"day": "MONDAY", "is_open": True, "open_time": "08:00", "close_time": "17:00"}
    assert updated.operational_hours[1]["open_time"] is None

    with pytest.raises(ValidationError):
        svc.update_operational_hours(hq.branch_id, [{"day": "MONDAY", "open_time": "17:00", "close_time": "08:00"}], user_id="u1")
    with pytest.raises(ValidationError):
        svc.update_operational_hours(
            hq.branch_id,
            [
                {"day": "MONDAY", "open_time": "08:00", "close_time": "17:00"},
                {"day": "MONDAY", "open_time": "09:00", "close_time": "17:00"},
            ],
            user_id="u1",
        )


def test_metrics_and_resources_ranges(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")

    assert svc.update_metrics(hq.branch_id, {"customer_satisfaction_score": 4.5}, user_id="u1").metrics == {
        "customer_satisfaction_score": 4.5
    }
    with pytest.raises(ValidationError):
        svc.update_metrics(hq.branch_id, {"delivery_success_rate": 120}, user_id="u1")
    with pytest.raises(ValidationError):
        svc.update_resources(hq.branch_id, {"vehicle_count": -1}, user_id="u1")


def test_documents_can_be_added_and_removed(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")

    with_doc = svc.add_document(
        hq.branch_id, {"name": "Permit", "type": "permit", "file_url": "https://files/p.pdf"}, user_id="u1"
    )
    doc_id = with_doc.documents[0]["document_id"]
    assert with_doc.documents[0]["type"] == "PERMIT"

    assert svc.remove_document(hq.branch_id, doc_id, user_id="u1").documents == []
    with pytest.raises(NotFoundError):
        svc.remove_document(hq.branch_id, doc_id, user_id="u1")


def test_delete_refuses_branch_with_children(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")
    jkt = _create(svc, "JKT", parent_id=hq.branch_id)

    with pytest.raises(ValidationError):
        svc.delete_branch(hq.branch_id, user_id="u1")

    svc.delete_branch(jkt.branch_id, user_id="u1")
    with pytest.raises(NotFoundError):
        svc.get_branch(jkt.branch_id)


def test_hierarchy_nests_children(container):
    svc = container.branch_service
    hq = _create(svc, "HQ")
    _create(svc, "JKT", parent_id=hq.branch_id)

    tree = svc.get_hierarchy()
    assert len(tree) == 1
    assert tree[0]["code"] == "HQ"
    assert [c["code"] for c in tree[0]["children"]] == ["JKT"]


def _chain(service, prefix, depth, parent_id=None):
    nodes = []
    for i in range(depth):
        node = _create(service, f"{prefix}{i}", parent_id=parent_id)
        nodes.append(node)
        parent_id = node.branch_id
    return nodes


def test_moving_subtree_cannot_exceed_max_depth(container):
    svc = container.branch_service
    deep = _chain(svc, "D", 8)
    chain = _chain(svc, "C", 3)

    with pytest.raises(ValidationError):
        svc.update_branch(chain[0].branch_id, {"parent_id": deep[-1].branch_id}, user_id="u1")

    assert [svc.get_branch(b.branch_id).level for b in chain] == [1, 2, 3]
    assert svc.get_branch(chain[0].branch_id).parent_id is None


def test_moving_subtree_within_depth_refreshes_levels(container):
    svc = container.branch_service
    deep = _chain(svc, "D", 8)
    chain = _chain(svc, "C", 2)

    svc.update_branch(chain[0].branch_id, {"parent_id": deep[-1].branch_id}, user_id="u1")

    assert [svc.get_branch(b.branch_id).level for b in chain] == [9, 10]
    assert svc.get_branch(chain[1].branch_id).path.endswith("D7.C0.C1")


def test_non_numeric_parent_id_is_a_validation_error(container):
    svc = container.branch_service
    with pytest.raises(ValidationError):
        _create(svc, "HQ", parent_id="abc")
    hq = _create(svc, "HQ")
    with pytest.raises(ValidationError):
        svc.update_branch(hq.branch_id, {"parent_id": "abc"}, user_id="u1")
