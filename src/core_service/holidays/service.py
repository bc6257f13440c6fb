from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, List, Optional

from ..common.datetime_utils import now_local, parse_iso_date, parse_optional_date
from ..common.pagination import Page, paginate
from ..common.validators import optional_int, require_enum, require_fields, require_non_empty
from ..core.enums import HalfDayPortion, HolidayType, RecordStatus
from ..core.exceptions import NotFoundError, ValidationError
from .model import Holiday
from .repository import HolidayRepository

logger = logging.getLogger(__name__)


def _id_list(value: Any, field_name: str) -> list:
    if value in (None, ""):
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list")
    return [optional_int(v, field_name) for v in value if v not in (None, "")]


def _dated(holiday: Holiday, day: date) -> Holiday:
    return replace(holiday, date=day, month=day.month, day=day.day, year=day.year)


class HolidayService:
    def __init__(self, holidays: HolidayRepository):
        self._holidays = holidays

    def _require(self, holiday_id: int) -> Holiday:
        holiday = self._holidays.get_by_id(int(holiday_id))
        if not holiday:
            raise NotFoundError("Holiday not found")
        return holiday

    def create_holiday(self, data: dict, *, user_id: str) -> Holiday:
        require_fields(data, ("name", "date"))
        name = require_non_empty(data["name"], "Holiday name")
        day = parse_iso_date(data["date"], "date")
        if self._holidays.find(day, name):
            raise ValidationError(f"Holiday {name} already exists on {day.isoformat()}")

        holiday = Holiday(
            holiday_id=0,
            name=name,
            date=day,
            type=require_enum(data.get("type", HolidayType.NATIONAL), HolidayType, "holiday type"),
            is_recurring=bool(data.get("is_recurring", True)),
            is_half_day=bool(data.get("is_half_day", False)),
            half_day_portion=require_enum(
                data.get("half_day_portion") or HalfDayPortion.AFTERNOON, HalfDayPortion, "half day portion"
            ),
            description=data.get("description"),
            applicable_branches=_id_list(data.get("applicable_branches"), "applicable_branches"),
            applicable_divisions=_id_list(data.get("applicable_divisions"), "applicable_divisions"),
            status=RecordStatus.ACTIVE,
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        holiday = _dated(holiday, day)
        holiday = replace(holiday, holiday_id=self._holidays.create(holiday))
        logger.info("Holiday %s created for %s", name, day.isoformat())
        return holiday

    def get_holiday(self, holiday_id: int) -> Holiday:
        return self._require(holiday_id)

    def update_holiday(self, holiday_id: int, data: dict, *, user_id: str) -> Holiday:
        holiday = self._require(holiday_id)
        changes: dict[str, Any] = {}
        if "name" in data:
            changes["name"] = require_non_empty(data["name"], "Holiday name")
        if "type" in data:
            changes["type"] = require_enum(data["type"], HolidayType, "holiday type")
        for key in ("is_recurring", "is_half_day"):
            if key in data:
                changes[key] = bool(data[key])
        if data.get("half_day_portion"):
            changes["half_day_portion"] = require_enum(data["half_day_portion"], HalfDayPortion, "half day portion")
        if "description" in data:
            changes["description"] = data["description"]
        if "applicable_branches" in data:
            changes["applicable_branches"] = _id_list(data["applicable_branches"], "applicable_branches")
        if "applicable_divisions" in data:
            changes["applicable_divisions"] = _id_list(data["applicable_divisions"], "applicable_divisions")
        if "status" in data:
            changes["status"] = require_enum(data["status"], RecordStatus, "status")

        updated = replace(holiday, **changes, updated_by=user_id, updated_at=now_local())
        if data.get("date"):
            updated = _dated(updated, parse_iso_date(data["date"], "date"))

        if updated.date != holiday.date or updated.name != holiday.name:
            other = self._holidays.find(updated.date, updated.name)
            if other and other.holiday_id != holiday.holiday_id:
                raise ValidationError(f"Holiday {updated.name} already exists on {updated.date.isoformat()}")

        self._holidays.update(updated)
        return updated

    def delete_holiday(self, holiday_id: int, *, user_id: str) -> None:
        holiday = self._require(holiday_id)
        self._holidays.delete(holiday.holiday_id)
        logger.info("Holiday %s (%s) deleted by %s", holiday.name, holiday.date.isoformat(), user_id)

    def list_holidays(
        self,
        *,
        year: Optional[int] = None,
        start: Any = None,
        end: Any = None,
        type: Optional[str] = None,
        status: Optional[str] = None,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Holiday]:
        start_d = parse_optional_date(start, "start_date")
        end_d = parse_optional_date(end, "end_date")
        if year is not None:
            start_d = start_d or date(int(year), 1, 1)
            end_d = end_d or date(int(year), 12, 31)
        if start_d and end_d and start_d > end_d:
            raise ValidationError("Start date must be before end date")

        rows = self._holidays.list(
            start=start_d,
            end=end_d,
            type=require_enum(type, HolidayType, "holiday type") if type else None,
            status=require_enum(status, RecordStatus, "status") if status else None,
        )
        rows = [h for h in rows if h.applies_to(branch_id, division_id)]
        return paginate(rows, page, limit)

    def generate_recurring(self, year: Any, *, user_id: str) -> List[Holiday]:
        """Copy every active recurring holiday onto `year`.

        Templates are de-duplicated by (month, day, name). Dates that already hold
        a holiday with the same name are skipped, as are dates that do not exist in
        the target year (29 February).
        """
        target = optional_int(year, "year")
        if target is None or target < 1900 or target > 2100:
            raise ValidationError("Year must be between 1900 and 2100")

        templates = self._holidays.list(status=RecordStatus.ACTIVE, is_recurring=True)
        seen: set[tuple] = set()
        created: List[Holiday] = []
        for template in templates:
            if template.year == target:
                continue
            key = (template.month, template.day, template.name)
            if key in seen:
                continue
            seen.add(key)
            try:
                day = date(target, template.month, template.day)
            except ValueError:
                logger.warning("Skipping %s: %s-%s does not exist in %s", template.name, template.month, template.day, target)
                continue
            if self._holidays.find(day, template.name):
                continue

            holiday = _dated(
                replace(
                    template,
                    holiday_id=0,
                    created_by=user_id,
                    updated_by=user_id,
                    created_at=now_local(),
                    updated_at=now_local(),
                ),
                day,
            )
            created.append(replace(holiday, holiday_id=self._holidays.create(holiday)))

        logger.info("Generated %s recurring holidays for %s", len(created), target)
        return created

    def holiday_dates(
        self,
        start: date,
        end: date,
        *,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
    ) -> set[date]:
        rows = self._holidays.list(start=start, end=end, status=RecordStatus.ACTIVE)
        return {h.date for h in rows if h.applies_to(branch_id, division_id)}

    def is_holiday(self, day: date, *, branch_id: Optional[int] = None, division_id: Optional[int] = None) -> bool:
        return day in self.holiday_dates(day, day, branch_id=branch_id, division_id=division_id)
