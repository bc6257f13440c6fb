from __future__ import annotations

from datetime import date

import pytest

from core_service.core.enums import HolidayType
from core_service.core.exceptions import NotFoundError, ValidationError


def test_create_stores_date_parts(container):
    holiday = container.holiday_service.create_holiday(
        {"name": "Independence Day", "date": "2024-08-17"}, user_id="admin"
    )

    assert (holiday.year, holiday.month, holiday.day) == (2024, 8, 17)
    assert holiday.type == HolidayType.NATIONAL
    assert holiday.is_recurring is True


def test_duplicate_name_on_same_date(container):
    svc = container.holiday_service
    svc.create_holiday({"name": "New Year", "date": "2024-01-01"}, user_id="admin")
    with pytest.raises(ValidationError):
        svc.create_holiday({"name": "New Year", "date": "2024-01-01"}, user_id="admin")
    svc.create_holiday({"name": "Company Day", "date": "2024-01-01", "type": "company"}, user_id="admin")


def test_branch_scoped_holiday(container):
    svc = container.holiday_service
    svc.create_holiday({"name": "City Anniversary", "date": "2024-06-22", "applicable_branches": [1]}, user_id="admin")

    assert svc.is_holiday(date(2024, 6, 22), branch_id=1)
    assert not svc.is_holiday(date(2024, 6, 22), branch_id=2)
    assert svc.is_holiday(date(2024, 6, 22))
    assert svc.list_holidays(year=2024, branch_id=2).total == 0


def test_update_moves_date(container):
    svc = container.holiday_service
    holiday = svc.create_holiday({"name": "Outing", "date": "2024-05-01", "is_recurring": False}, user_id="admin")

    moved = svc.update_holiday(holiday.holiday_id, {"date": "2024-05-03", "status": "inactive"}, user_id="admin")

    assert moved.date == date(2024, 5, 3)
    assert moved.day == 3
    assert not svc.is_holiday(date(2024, 5, 3))


def test_generate_recurring_skips_existing_and_invalid_dates(container):
    svc = container.holiday_service
    svc.create_holiday({"name": "New Year", "date": "2024-01-01"}, user_id="admin")
    svc.create_holiday({"name": "Leap Day", "date": "2024-02-29"}, user_id="admin")
    svc.create_holiday({"name": "One-off", "date": "2024-03-15", "is_recurring": False}, user_id="admin")
    svc.create_holiday({"name": "New Year", "date": "2025-01-01"}, user_id="admin")

    created = svc.generate_recurring(2025, user_id="admin")
    assert created == []

    created = svc.generate_recurring("2026", user_id="admin")
    assert [h.date for h in created] == [date(2026, 1, 1)]
    assert created[0].year == 2026

    with pytest.raises(ValidationError):
        svc.generate_recurring(1800, user_id="admin")


def test_list_range_validation_and_delete(container):
    svc = container.holiday_service
    holiday = svc.create_holiday({"name": "New Year", "date": "2024-01-01"}, user_id="admin")

    with pytest.raises(ValidationError):
        svc.list_holidays(start="2024-02-01", end="2024-01-01")

    svc.delete_holiday(holiday.holiday_id, user_id="admin")
    with pytest.raises(NotFoundError):
        svc.get_holiday(holiday.holiday_id)
