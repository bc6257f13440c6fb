from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, List, Optional

from ..common.datetime_utils import now_local, parse_iso_date, parse_optional_date
from ..common.geo import validate_point
from ..common.pagination import Page, paginate
from ..common.validators import (
    optional_int,
    require_dict,
    require_enum,
    require_fields,
    require_hhmm,
    require_non_empty,
    require_non_negative,
)
from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from ..core.enums import AssignmentStatus, ScheduleStatus, ScheduleType, Weekday
from ..core.exceptions import NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from .model import EmployeeSchedule, WorkSchedule
from .repository import EmployeeScheduleRepository, WorkScheduleRepository

logger = logging.getLogger(__name__)

DEFAULT_WORKING_DAYS = [d.value for d in (Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY)]

DEFAULT_REGULAR_HOURS = {
    "start": "08:00",
    "end": "17:00",
    "break_start": "12:00",
    "break_end": "13:00",
    "grace_period_minutes": 15,
    "total_hours": 8,
}

DEFAULT_OVERTIME_POLICY = {
    "allowed": True,
    "max_daily_hours": 3,
    "max_weekly_hours": 15,
    "minimum_duration_minutes": 30,
    "requires_approval": True,
}

DEFAULT_FLEXIBLE_SETTINGS = {
    "core_start": "10:00",
    "core_end": "15:00",
    "flex_start_earliest": "07:00",
    "flex_start_latest": "10:00",
    "flex_end_earliest": "15:00",
    "flex_end_latest": "19:00",
    "min_daily_hours": 8,
}

_HOUR_FIELDS = ("start", "end", "break_start", "break_end")
_FLEX_FIELDS = (
    "core_start",
    "core_end",
    "flex_start_earliest",
    "flex_start_latest",
    "flex_end_earliest",
    "flex_end_latest",
)


def _hours_between(start: str, end: str) -> float:
    sh, sm = (int(x) for x in start.split(":"))
    eh, em = (int(x) for x in end.split(":"))
    minutes = (eh * 60 + em) - (sh * 60 + sm)
    if minutes <= 0:
        minutes += 24 * 60
    return minutes / 60


class ScheduleService:
    def __init__(
        self,
        schedules: WorkScheduleRepository,
        assignments: EmployeeScheduleRepository,
        employees: EmployeeRepository,
    ):
        self._schedules = schedules
        self._assignments = assignments
        self._employees = employees

    def _require(self, schedule_id: int) -> WorkSchedule:
        schedule = self._schedules.get_by_id(int(schedule_id))
        if not schedule:
            raise NotFoundError("Work schedule not found")
        return schedule

    def _require_assignment(self, assignment_id: int) -> EmployeeSchedule:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Employee schedule not found")
        return assignment

    def _require_employee(self, employee_ref: Any) -> int:
        ref = optional_int(employee_ref, "employee_id")
        if ref is None or not self._employees.get_by_id(ref):
            raise NotFoundError("Employee not found")
        return ref

    # ---- validation of sub-documents ----
    @staticmethod
    def _working_days(value: Any) -> list:
        if not isinstance(value, list) or not value:
            raise ValidationError("Working days must be a non-empty list")
        days = []
        for item in value:
            day = require_enum(item, Weekday, "working day").value
            if day not in days:
                days.append(day)
        return days

    @staticmethod
    def _regular_hours(value: Any, current: dict) -> dict:
        value = require_dict(value, "Regular hours")
        merged = {**DEFAULT_REGULAR_HOURS, **current}
        for key in _HOUR_FIELDS:
            if key in value:
                merged[key] = require_hhmm(value[key], key)
        if "grace_period_minutes" in value:
            merged["grace_period_minutes"] = int(require_non_negative(value["grace_period_minutes"], "Grace period"))
        if merged["start"] >= merged["end"]:
            raise ValidationError("Regular start time must be before end time")
        if merged["break_start"] > merged["break_end"]:
            raise ValidationError("Break start must be before break end")
        breaks = _hours_between(merged["break_start"], merged["break_end"]) if merged["break_start"] != merged["break_end"] else 0
        merged["total_hours"] = round(_hours_between(merged["start"], merged["end"]) - breaks, 2)
        return merged

    @staticmethod
    def _shifts(value: Any) -> list:
        if not isinstance(value, list):
            raise ValidationError("Shifts must be a list")
        out = []
        codes = set()
        for item in value:
            item = require_dict(item, "Shift")
            require_fields(item, ("name", "code", "start", "end"))
            code = require_non_empty(item["code"], "Shift code").upper()
            if code in codes:
                raise ValidationError(f"Duplicate shift code {code}")
            codes.add(code)
            start = require_hhmm(item["start"], "Shift start")
            end = require_hhmm(item["end"], "Shift end")
            break_minutes = int(require_non_negative(item.get("break_minutes", 0), "Break minutes"))
            out.append(
                {
                    "name": require_non_empty(item["name"], "Shift name"),
                    "code": code,
                    "start": start,
                    "end": end,
                    "break_minutes": break_minutes,
                    "total_hours": round(_hours_between(start, end) - break_minutes / 60, 2),
                    "grace_period_minutes": int(
                        require_non_negative(item.get("grace_period_minutes", 15), "Grace period")
                    ),
                    "is_overnight": end <= start,
                }
            )
        return out

    @staticmethod
    def _overtime(value: Any, current: dict) -> dict:
        value = require_dict(value, "Overtime policy")
        merged = {**DEFAULT_OVERTIME_POLICY, **current}
        for key in ("allowed", "requires_approval"):
            if key in value:
                merged[key] = bool(value[key])
        for key in ("max_daily_hours", "max_weekly_hours", "minimum_duration_minutes"):
            if key in value:
                merged[key] = require_non_negative(value[key], key)
        return merged

    @staticmethod
    def _flexible(value: Any, current: dict) -> dict:
        value = require_dict(value, "Flexible settings")
        merged = {**DEFAULT_FLEXIBLE_SETTINGS, **current}
        for key in _FLEX_FIELDS:
            if key in value:
                merged[key] = require_hhmm(value[key], key)
        if "min_daily_hours" in value:
            merged["min_daily_hours"] = require_non_negative(value["min_daily_hours"], "Minimum daily hours")
        if merged["core_start"] >= merged["core_end"]:
            raise ValidationError("Core start time must be before core end time")
        return merged

    @staticmethod
    def _geofencing(value: Any) -> dict:
        value = require_dict(value, "Geofencing")
        locations = []
        for item in value.get("locations") or []:
            item = require_dict(item, "Geofence location")
            lon, lat = validate_point(item.get("longitude"), item.get("latitude"))
            radius = require_non_negative(item.get("radius", DEFAULT_GEOFENCE_RADIUS_METERS), "Radius")
            if radius == 0:
                raise ValidationError("Radius must be greater than 0")
            locations.append(
                {
                    "name": require_non_empty(item.get("name"), "Location name"),
                    "address": item.get("address"),
                    "longitude": lon,
                    "latitude": lat,
                    "radius": radius,
                }
            )
        enabled = bool(value.get("enabled", False))
        if enabled and not locations:
            raise ValidationError("At least one location is required when geofencing is enabled")
        return {"enabled": enabled, "locations": locations}

    @staticmethod
    def _id_list(value: Any, field_name: str) -> list:
        if not isinstance(value, list):
            raise ValidationError(f"{field_name} must be a list")
        return [optional_int(v, field_name) for v in value if v not in (None, "")]

    def _apply_fields(self, data: dict, schedule: Optional[WorkSchedule]) -> dict:
        fields: dict[str, Any] = {}
        if "working_days" in data:
            fields["working_days"] = self._working_days(data["working_days"])
        if "regular_hours" in data:
            fields["regular_hours"] = self._regular_hours(data["regular_hours"], schedule.regular_hours if schedule else {})
        if "shifts" in data:
            fields["shifts"] = self._shifts(data["shifts"])
        if "overtime_policy" in data:
            fields["overtime_policy"] = self._overtime(data["overtime_policy"], schedule.overtime_policy if schedule else {})
        if "flexible_settings" in data:
            fields["flexible_settings"] = self._flexible(
                data["flexible_settings"], schedule.flexible_settings if schedule else {}
            )
        if "geofencing" in data:
            fields["geofencing"] = self._geofencing(data["geofencing"])

        applicable = data.get("applicable_to")
        if applicable is not None:
            applicable = require_dict(applicable, "applicable_to")
            if "branches" in applicable:
                fields["applicable_branches"] = self._id_list(applicable["branches"], "branches")
            if "divisions" in applicable:
                fields["applicable_divisions"] = self._id_list(applicable["divisions"], "divisions")
            if "positions" in applicable:
                fields["applicable_positions"] = self._id_list(applicable["positions"], "positions")

        if "effective_date" in data:
            fields["effective_date"] = parse_optional_date(data["effective_date"], "effective_date")
        if "expiry_date" in data:
            fields["expiry_date"] = parse_optional_date(data["expiry_date"], "expiry_date")
        if "description" in data:
            fields["description"] = data["description"]
        if "name" in data:
            fields["name"] = require_non_empty(data["name"], "Schedule name")
        if "status" in data:
            fields["status"] = require_enum(data["status"], ScheduleStatus, "status")
        return fields

    @staticmethod
    def _check_consistency(schedule: WorkSchedule) -> None:
        if schedule.type == ScheduleType.SHIFT and not schedule.shifts:
            raise ValidationError("Shift schedules require at least one shift")
        if schedule.effective_date and schedule.expiry_date and schedule.expiry_date < schedule.effective_date:
            raise ValidationError("Expiry date must be after effective date")

    # ---- work schedules ----
    def create_schedule(self, data: dict, *, user_id: str) -> WorkSchedule:
        require_fields(data, ("code", "name", "type"))
        code = require_non_empty(data["code"], "Schedule code").upper()
        if self._schedules.get_by_code(code):
            raise ValidationError(f"Work schedule with code {code} already exists")

        schedule = WorkSchedule(
            schedule_id=0,
            code=code,
            name=require_non_empty(data["name"], "Schedule name"),
            type=require_enum(data["type"], ScheduleType, "schedule type"),
            working_days=list(DEFAULT_WORKING_DAYS),
            regular_hours=dict(DEFAULT_REGULAR_HOURS),
            overtime_policy=dict(DEFAULT_OVERTIME_POLICY),
            flexible_settings=dict(DEFAULT_FLEXIBLE_SETTINGS),
            geofencing={"enabled": False, "locations": []},
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        schedule = replace(schedule, **self._apply_fields(data, None))
        self._check_consistency(schedule)

        schedule = replace(schedule, schedule_id=self._schedules.create(schedule))
        logger.info("Work schedule %s created (id=%s)", code, schedule.schedule_id)
        return schedule

    def get_schedule(self, schedule_id: int) -> WorkSchedule:
        return self._require(schedule_id)

    def list_schedules(
        self,
        *,
        type: Optional[str] = None,
        status: Optional[str] = None,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[WorkSchedule]:
        rows = self._schedules.list(
            type=require_enum(type, ScheduleType, "schedule type") if type else None,
            status=require_enum(status, ScheduleStatus, "status") if status else None,
            branch_id=branch_id,
            division_id=division_id,
        )
        return paginate(list(rows), page, limit)

    def update_schedule(self, schedule_id: int, data: dict, *, user_id: str) -> WorkSchedule:
        schedule = self._require(schedule_id)
        changes = self._apply_fields(data, schedule)
        if data.get("code") is not None:
            code = require_non_empty(data["code"], "Schedule code").upper()
            other = self._schedules.get_by_code(code)
            if other and other.schedule_id != schedule.schedule_id:
                raise ValidationError(f"Work schedule with code {code} already exists")
            changes["code"] = code
        if data.get("type") is not None:
            changes["type"] = require_enum(data["type"], ScheduleType, "schedule type")

        updated = replace(schedule, **changes, updated_by=user_id, updated_at=now_local())
        self._check_consistency(updated)
        self._schedules.update(updated)
        logger.info("Work schedule %s updated by %s", updated.code, user_id)
        return updated

    # ---- employee schedules ----
    def _shift_assignments(self, schedule: WorkSchedule, value: Any, start: date, end: Optional[date]) -> list:
        if not value:
            return []
        if schedule.type != ScheduleType.SHIFT:
            raise ValidationError("Shift assignments are only allowed for SHIFT schedules")
        if not isinstance(value, list):
            raise ValidationError("Shift assignments must be a list")
        out = []
        for item in value:
            item = require_dict(item, "Shift assignment")
            day = parse_iso_date(item.get("date"), "shift date")
            if day < start or (end is not None and day > end):
                raise ValidationError(f"Shift date {day.isoformat()} is outside the assignment period")
            code = require_non_empty(item.get("shift_code"), "Shift code").upper()
            if not schedule.find_shift(code):
                raise ValidationError(f"Unknown shift code {code}")
            out.append({"date": day.isoformat(), "shift_code": code})
        return out

    def assign_schedule(self, data: dict, *, user_id: str) -> EmployeeSchedule:
        require_fields(data, ("employee_id", "schedule_id", "start_date"))
        employee_ref = self._require_employee(data["employee_id"])
        schedule = self._require(data["schedule_id"])
        if schedule.status != ScheduleStatus.ACTIVE:
            raise ValidationError("Work schedule is not active")

        start = parse_iso_date(data["start_date"], "start_date")
        end = parse_optional_date(data.get("end_date"), "end_date")
        if end is not None and end < start:
            raise ValidationError("End date must be after start date")

        status = require_enum(data.get("status", AssignmentStatus.ACTIVE), AssignmentStatus, "status")
        if status == AssignmentStatus.ACTIVE and self._assignments.find_overlapping(
            employee_ref=employee_ref, start_date=start, end_date=end
        ):
            raise ValidationError("Employee already has an active schedule in this period")

        assignment = EmployeeSchedule(
            assignment_id=0,
            employee_ref=employee_ref,
            schedule_id=schedule.schedule_id,
            start_date=start,
            end_date=end,
            shift_assignments=self._shift_assignments(schedule, data.get("shift_assignments"), start, end),
            overrides=require_dict(data.get("overrides") or {}, "Overrides"),
            status=status,
            notes=data.get("notes"),
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        assignment = replace(assignment, assignment_id=self._assignments.create(assignment))
        logger.info("Schedule %s assigned to employee %s", schedule.code, employee_ref)
        return assignment

    def get_employee_schedule(self, assignment_id: int) -> EmployeeSchedule:
        return self._require_assignment(assignment_id)

    def update_employee_schedule(self, assignment_id: int, data: dict, *, user_id: str) -> EmployeeSchedule:
        assignment = self._require_assignment(assignment_id)
        schedule_id = assignment.schedule_id
        if data.get("schedule_id") is not None:
            schedule_id = self._require(data["schedule_id"]).schedule_id
        schedule = self._require(schedule_id)

        start = parse_iso_date(data["start_date"], "start_date") if data.get("start_date") else assignment.start_date
        end = parse_optional_date(data["end_date"], "end_date") if "end_date" in data else assignment.end_date
        if end is not None and end < start:
            raise ValidationError("End date must be after start date")

        status = require_enum(data["status"], AssignmentStatus, "status") if data.get("status") else assignment.status
        if status == AssignmentStatus.ACTIVE and self._assignments.find_overlapping(
            employee_ref=assignment.employee_ref,
            start_date=start,
            end_date=end,
            exclude_id=assignment.assignment_id,
        ):
            raise ValidationError("Employee already has an active schedule in this period")

        shifts = assignment.shift_assignments
        if "shift_assignments" in data:
            shifts = self._shift_assignments(schedule, data["shift_assignments"], start, end)
        elif schedule_id != assignment.schedule_id and schedule.type != ScheduleType.SHIFT:
            shifts = []

        updated = replace(
            assignment,
            schedule_id=schedule_id,
            start_date=start,
            end_date=end,
            shift_assignments=shifts,
            overrides=require_dict(data["overrides"], "Overrides") if "overrides" in data else assignment.overrides,
            status=status,
            notes=data.get("notes", assignment.notes),
            updated_by=user_id,
            updated_at=now_local(),
        )
        self._assignments.update(updated)
        return updated

    def list_employee_schedules(
        self,
        *,
        employee_ref: Optional[int] = None,
        schedule_id: Optional[int] = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[EmployeeSchedule]:
        rows = self._assignments.list(
            employee_ref=employee_ref,
            schedule_id=schedule_id,
            status=require_enum(status, AssignmentStatus, "status") if status else None,
        )
        return paginate(list(rows), page, limit)

    def get_active_assignment(self, employee_ref: int, day: date) -> Optional[EmployeeSchedule]:
        for assignment in self._assignments.list(
            employee_ref=int(employee_ref), status=AssignmentStatus.ACTIVE, effective_on=day
        ):
            if assignment.covers(day):
                return assignment
        return None

    @staticmethod
    def _in_force(schedule: WorkSchedule, assignment: EmployeeSchedule, day: date) -> bool:
        if schedule.status != ScheduleStatus.ACTIVE:
            return False
        if schedule.effective_date and day < schedule.effective_date:
            return False
        if schedule.expiry_date and day > schedule.expiry_date:
            return False
        # an explicit shift for the day overrides the weekly pattern
        if assignment.shift_code_for(day):
            return True
        return not schedule.working_days or list(Weekday)[day.weekday()].value in schedule.working_days

    def get_active_schedule(self, employee_ref: int, day: Any = None) -> Optional[tuple[EmployeeSchedule, WorkSchedule]]:
        """Assignment and schedule in force for the employee on `day` (today by default)."""
        day = parse_iso_date(day, "date") if day is not None else now_local().date()
        assignment = self.get_active_assignment(employee_ref, day)
        if not assignment:
            return None
        schedule = self._schedules.get_by_id(assignment.schedule_id)
        if not schedule or not self._in_force(schedule, assignment, day):
            return None
        return assignment, schedule

    def employee_schedule_for(self, employee_ref: int, day: Any = None) -> dict:
        found = self.get_active_schedule(self._require_employee(employee_ref), day)
        if not found:
            raise NotFoundError("No active schedule found for this employee")
        assignment, schedule = found
        return {"assignment": assignment, "schedule": schedule}

    def list_assignments_for_schedule(self, schedule_id: int) -> List[EmployeeSchedule]:
        schedule = self._require(schedule_id)
        return list(self._assignments.list(schedule_id=schedule.schedule_id))
