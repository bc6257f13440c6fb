from __future__ import annotations

from datetime import date

import pytest

from core_service.core.enums import ChangeType, EntityType
from core_service.core.exceptions import NotFoundError, ValidationError


def _record(svc, entity_id, change_type=ChangeType.UPDATE, reason=None):
    return svc.record_change(
        entity_type=EntityType.DIVISION,
        entity_id=entity_id,
        change_type=change_type,
        changes=[{"field": "name", "old": "A", "new": "B"}],
        reason=reason,
        changed_by="u1",
    )


def test_record_and_fetch(container):
    svc = container.org_change_service
    change = _record(svc, 7, reason="  Rename  ")

    assert change.change_id > 0
    assert change.reason == "Rename"
    assert svc.get_change(change.change_id) == change
    with pytest.raises(NotFoundError):
        svc.get_change(999)


def test_recent_is_limited_and_validated(container):
    svc = container.org_change_service
    for i in range(5):
        _record(svc, i)

    assert len(svc.get_recent(3)) == 3
    with pytest.raises(ValidationError):
        svc.get_recent(0)
    with pytest.raises(ValidationError):
        svc.get_recent("many")


def test_date_range_and_search(container):
    svc = container.org_change_service
    _record(svc, 1, reason="Quarterly restructure")
    today = date.today().isoformat()

    assert len(svc.get_by_date_range(today, today)) == 1
    with pytest.raises(ValidationError):
        svc.get_by_date_range("2025-02-01", "2025-01-01")
    assert len(svc.search("quarterly")) == 1
    assert svc.search("nothing-like-this") == []
