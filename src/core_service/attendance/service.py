from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

from ..common.datetime_utils import combine_hhmm, minutes_between, now_local, parse_iso_datetime, parse_optional_date
from ..common.geo import haversine_meters, validate_point
from ..common.pagination import Page, paginate
from ..common.validators import optional_int, require_dict, require_enum, require_non_empty
from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from ..core.enums import AnomalyType, AttendanceStatus, RequestStatus, ScheduleType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..employees.repository import EmployeeRepository
from ..schedules.model import EmployeeSchedule, WorkSchedule
from ..schedules.service import DEFAULT_FLEXIBLE_SETTINGS, DEFAULT_OVERTIME_POLICY, DEFAULT_REGULAR_HOURS, ScheduleService
from .factory import AttendanceStrategyFactory
from .model import ANOMALY_FLAGS, Attendance, WorkWindow, empty_anomalies
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

_ANOMALY_FLAG = {
    AnomalyType.LATE: "is_late",
    AnomalyType.EARLY_DEPARTURE: "is_early_departure",
    AnomalyType.OUTSIDE_GEOFENCE: "is_outside_geofence",
    AnomalyType.INCOMPLETE: "is_incomplete",
    AnomalyType.OVERTIME: "is_overtime",
}

EXPORT_FIELDS = [
    "date",
    "employee_id",
    "full_name",
    "status",
    "check_in",
    "check_out",
    "work_hours",
    "overtime_hours",
    "late_minutes",
    "early_departure_minutes",
    "anomalies",
]


def _hours(minutes: int) -> float:
    return round(minutes / 60, 2)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        schedules: ScheduleService,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        default_radius: float = DEFAULT_GEOFENCE_RADIUS_METERS,
    ):
        self._attendance = attendance
        self._employees = employees
        self._schedules = schedules
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._default_radius = float(default_radius)

    def _require_employee(self, employee_ref: Any):
        ref = optional_int(employee_ref, "employee_id")
        employee = self._employees.get_by_id(ref) if ref is not None else None
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _require(self, attendance_id: int) -> Attendance:
        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def _active_schedule(self, employee_ref: int, day: date) -> tuple[EmployeeSchedule, WorkSchedule]:
        found = self._schedules.get_active_schedule(employee_ref, day)
        if not found:
            raise ValidationError("No active schedule found for employee")
        return found

    @staticmethod
    def resolve_window(assignment: EmployeeSchedule, schedule: WorkSchedule, day: date) -> WorkWindow:
        """Expected working window for `day`.

        SHIFT schedules use the shift assigned for the day, falling back to the first
        defined shift. FLEXIBLE schedules use the core hours. Everything else uses the
        regular hours. Assignment overrides (start, end, grace_period_minutes) win.
        """
        overtime = {**DEFAULT_OVERTIME_POLICY, **schedule.overtime_policy}
        shift_code = None

        if schedule.type == ScheduleType.SHIFT and schedule.shifts:
            shift = schedule.find_shift(assignment.shift_code_for(day)) or schedule.shifts[0]
            shift_code = shift.get("code")
            start_s, end_s = shift["start"], shift["end"]
            grace = int(shift.get("grace_period_minutes", 15))
        elif schedule.type == ScheduleType.FLEXIBLE:
            flexible = {**DEFAULT_FLEXIBLE_SETTINGS, **schedule.flexible_settings}
            start_s, end_s = flexible["core_start"], flexible["core_end"]
            grace = 0
        else:
            hours = {**DEFAULT_REGULAR_HOURS, **schedule.regular_hours}
            start_s, end_s = hours["start"], hours["end"]
            grace = int(hours.get("grace_period_minutes", 15))

        overrides = assignment.overrides or {}
        start_s = overrides.get("start", start_s)
        end_s = overrides.get("end", end_s)
        grace = int(overrides.get("grace_period_minutes", grace))

        start = combine_hhmm(day, start_s)
        end = combine_hhmm(day, end_s)
        if end <= start:
            end += timedelta(days=1)

        return WorkWindow(
            start=start,
            end=end,
            grace_minutes=grace,
            schedule_id=schedule.schedule_id,
            shift_code=shift_code,
            overtime_allowed=bool(overtime.get("allowed", True)),
            overtime_minimum_minutes=int(overtime.get("minimum_duration_minutes", 0)),
        )

    @staticmethod
    def _point(location: Any) -> Optional[tuple[float, float]]:
        """(lon, lat) from ``{longitude, latitude}`` or ``{coordinates: [lon, lat]}``."""
        if not location:
            return None
        location = require_dict(location, "Location")
        if "coordinates" in location:
            coords = location["coordinates"]
            if not isinstance(coords, (list, tuple)) or len(coords) != 2:
                raise ValidationError("Location coordinates must be [longitude, latitude]")
            return validate_point(coords[0], coords[1])
        return validate_point(location.get("longitude"), location.get("latitude"))

    def is_outside_geofence(self, schedule: WorkSchedule, point: Optional[tuple[float, float]]) -> bool:
        geofencing = schedule.geofencing or {}
        if not geofencing.get("enabled"):
            return False
        if point is None:
            return True
        lon, lat = point
        for fence in geofencing.get("locations") or []:
            radius = float(fence.get("radius") or self._default_radius)
            distance = haversine_meters(lat, lon, float(fence["latitude"]), float(fence["longitude"]))
            if distance <= radius:
                return False
        return True

    @staticmethod
    def _punch(data: dict, now: datetime, point: Optional[tuple[float, float]]) -> dict:
        return {
            "time": now.isoformat(),
            "location": {"longitude": point[0], "latitude": point[1]} if point else None,
            "device": data.get("device"),
            "ip_address": data.get("ip_address"),
            "notes": data.get("notes"),
            "verified": False,
        }

    def check_in(self, employee_ref: Any, data: dict, *, user_id: str, now: datetime | None = None) -> Attendance:
        now = now or now_local()
        today = now.date()
        employee = self._require_employee(employee_ref)

        if self._attendance.get_for_employee_and_date(employee.employee_ref, today):
            raise ValidationError("Employee has already checked in today")

        assignment, schedule = self._active_schedule(employee.employee_ref, today)
        window = self.resolve_window(assignment, schedule, today)
        point = self._point(data.get("location"))

        strategy = self._factory.for_checkin(now=now, window=window)
        decision = strategy.decide_checkin(now=now, window=window)

        anomalies = empty_anomalies()
        anomalies.update(
            is_late=decision.is_late,
            is_outside_geofence=self.is_outside_geofence(schedule, point),
            is_incomplete=True,
        )
        record = Attendance(
            attendance_id=0,
            employee_ref=employee.employee_ref,
            date=today,
            check_in_time=now,
            check_in=self._punch(data, now, point),
            status=decision.status,
            late_minutes=decision.late_minutes,
            schedule_id=window.schedule_id,
            shift_code=window.shift_code,
            anomalies=anomalies,
            created_by=user_id,
            updated_by=user_id,
            created_at=now_local(),
            updated_at=now_local(),
        )
        record = replace(record, attendance_id=self._attendance.create(record))
        logger.info("Employee %s checked in at %s", employee.employee_id, now.isoformat())
        return record

    def _open_record(self, employee_ref: int, now: datetime) -> Attendance:
        today = now.date()
        record = self._attendance.get_for_employee_and_date(employee_ref, today)
        if record:
            return record
        # overnight shift: the record belongs to the day the shift started
        previous = self._attendance.get_for_employee_and_date(employee_ref, today - timedelta(days=1))
        if previous and previous.check_out_time is None:
            return previous
        raise ValidationError("No check-in record found for today")

    def check_out(self, employee_ref: Any, data: dict, *, user_id: str, now: datetime | None = None) -> Attendance:
        now = now or now_local()
        employee = self._require_employee(employee_ref)

        record = self._open_record(employee.employee_ref, now)
        if record.check_in_time is None:
            raise ValidationError("Employee has not checked in today")
        if record.check_out_time is not None:
            raise ValidationError("Employee has already checked out today")

        assignment, schedule = self._active_schedule(employee.employee_ref, record.date)
        window = self.resolve_window(assignment, schedule, record.date)
        point = self._point(data.get("location"))

        strategy = self._factory.for_checkout(now=now, window=window)
        decision = strategy.decide_checkout(now=now, window=window, current=record.status)

        overtime = 0
        if window.overtime_allowed and now > window.end:
            overtime = minutes_between(window.end, now)
            if overtime < window.overtime_minimum_minutes:
                overtime = 0

        anomalies = {**record.anomalies}
        anomalies.update(
            is_early_departure=decision.is_early_departure,
            is_outside_geofence=bool(record.anomalies.get("is_outside_geofence"))
            or self.is_outside_geofence(schedule, point),
            is_incomplete=False,
            is_overtime=overtime > 0,
        )
        updated = replace(
            record,
            check_out_time=now,
            check_out=self._punch(data, now, point),
            status=decision.status,
            work_duration_minutes=max(minutes_between(record.check_in_time, now), 0),
            overtime_minutes=overtime,
            early_departure_minutes=decision.early_departure_minutes,
            anomalies=anomalies,
            updated_by=user_id,
            updated_at=now_local(),
        )
        self._attendance.update(updated)
        logger.info("Employee %s checked out at %s", employee.employee_id, now.isoformat())
        return updated

    def get_attendance(self, attendance_id: int) -> Attendance:
        return self._require(attendance_id)

    def get_today(self, employee_ref: Any, *, now: datetime | None = None) -> Optional[Attendance]:
        employee = self._require_employee(employee_ref)
        return self._attendance.get_for_employee_and_date(employee.employee_ref, (now or now_local()).date())

    @staticmethod
    def _range(start: Any, end: Any) -> tuple[Optional[date], Optional[date]]:
        start_d = parse_optional_date(start, "start_date")
        end_d = parse_optional_date(end, "end_date")
        if start_d and end_d and start_d > end_d:
            raise ValidationError("Start date must be before end date")
        return start_d, end_d

    def list_employee_attendance(
        self,
        employee_ref: Any,
        *,
        start: Any = None,
        end: Any = None,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Attendance]:
        employee = self._require_employee(employee_ref)
        start_d, end_d = self._range(start, end)
        rows = self._attendance.list(
            employee_ref=employee.employee_ref,
            start=start_d,
            end=end_d,
            status=require_enum(status, AttendanceStatus, "status") if status else None,
        )
        return paginate(list(rows), page, limit)

    def summary(self, employee_ref: Any, *, start: Any = None, end: Any = None) -> dict:
        employee = self._require_employee(employee_ref)
        start_d, end_d = self._range(start, end)
        rows = self._attendance.list(employee_ref=employee.employee_ref, start=start_d, end=end_d)

        by_status = {s.value.lower(): 0 for s in AttendanceStatus}
        late = early = work = overtime = worked_days = 0
        for r in rows:
            by_status[r.status.value.lower()] += 1
            late += 1 if r.anomalies.get("is_late") else 0
            early += 1 if r.anomalies.get("is_early_departure") else 0
            work += r.work_duration_minutes
            overtime += r.overtime_minutes
            worked_days += 1 if r.work_duration_minutes > 0 else 0

        return {
            "employee_id": employee.employee_ref,
            "start_date": start_d,
            "end_date": end_d,
            "total_days": len(rows),
            "by_status": by_status,
            "late_count": late,
            "early_departure_count": early,
            "total_work_minutes": work,
            "total_overtime_minutes": overtime,
            "total_work_hours": _hours(work),
            "total_overtime_hours": _hours(overtime),
            "average_work_hours": round(work / worked_days / 60, 2) if worked_days else 0.0,
        }

    def request_correction(
        self, attendance_id: int, data: dict, *, user_id: str, employee_ref: Optional[int] = None
    ) -> Attendance:
        """File a correction. When ``employee_ref`` is given the record must belong to that employee."""
        record = self._require(attendance_id)
        if employee_ref is not None and record.employee_ref != employee_ref:
            raise AuthorizationError("You can only request corrections for your own attendance")
        current = record.correction_request or {}
        if current.get("status") == RequestStatus.PENDING.value:
            raise ValidationError("Correction already requested for this attendance record")

        reason = require_non_empty(data.get("reason"), "Reason")
        corrected_in = data.get("corrected_check_in")
        corrected_out = data.get("corrected_check_out")
        if not corrected_in and not corrected_out:
            raise ValidationError("At least one corrected time is required")

        check_in = parse_iso_datetime(corrected_in, "corrected_check_in") if corrected_in else None
        check_out = parse_iso_datetime(corrected_out, "corrected_check_out") if corrected_out else None
        effective_in = check_in or record.check_in_time
        effective_out = check_out or record.check_out_time
        if effective_in and effective_out and effective_out <= effective_in:
            raise ValidationError("Corrected check-out must be after check-in")

        request_entry = {
            "requested_by": user_id,
            "requested_at": now_local().isoformat(),
            "reason": reason,
            "corrected_check_in": check_in.isoformat() if check_in else None,
            "corrected_check_out": check_out.isoformat() if check_out else None,
            "status": RequestStatus.PENDING.value,
            "reviewed_by": None,
            "reviewed_at": None,
            "review_notes": None,
        }
        updated = replace(record, correction_request=request_entry, updated_by=user_id, updated_at=now_local())
        self._attendance.update(updated)
        logger.info("Attendance correction requested for record %s", record.attendance_id)
        return updated

    def review_correction(
        self, attendance_id: int, *, status: Any, notes: Optional[str] = None, user_id: str
    ) -> Attendance:
        record = self._require(attendance_id)
        request_entry = record.correction_request
        if not request_entry:
            raise ValidationError("No correction request found for this attendance record")
        if request_entry.get("status") != RequestStatus.PENDING.value:
            raise ValidationError("Correction request already reviewed")

        decision = require_enum(status, RequestStatus, "status")
        if decision not in (RequestStatus.APPROVED, RequestStatus.REJECTED):
            raise ValidationError("Status must be APPROVED or REJECTED")

        reviewed = {
            **request_entry,
            "status": decision.value,
            "reviewed_by": user_id,
            "reviewed_at": now_local().isoformat(),
            "review_notes": notes,
        }
        changes: dict[str, Any] = {"correction_request": reviewed}

        if decision == RequestStatus.APPROVED:
            check_in_time, check_out_time = record.check_in_time, record.check_out_time
            if request_entry.get("corrected_check_in"):
                check_in_time = parse_iso_datetime(request_entry["corrected_check_in"])
                changes["check_in_time"] = check_in_time
                changes["check_in"] = {
                    **record.check_in,
                    "time": check_in_time.isoformat(),
                    "verified": True,
                    "verified_by": user_id,
                }
            if request_entry.get("corrected_check_out"):
                check_out_time = parse_iso_datetime(request_entry["corrected_check_out"])
                changes["check_out_time"] = check_out_time
                changes["check_out"] = {
                    **record.check_out,
                    "time": check_out_time.isoformat(),
                    "verified": True,
                    "verified_by": user_id,
                }
            if check_in_time and check_out_time:
                changes["work_duration_minutes"] = max(minutes_between(check_in_time, check_out_time), 0)
                changes["anomalies"] = {**record.anomalies, "is_incomplete": False}

        updated = replace(record, **changes, updated_by=user_id, updated_at=now_local())
        self._attendance.update(updated)
        logger.info("Attendance correction %s for record %s", decision.value.lower(), record.attendance_id)
        return updated

    def _scoped_refs(self, branch_id: Optional[int], division_id: Optional[int]) -> Optional[List[int]]:
        if branch_id is None and division_id is None:
            return None
        return [e.employee_ref for e in self._employees.list(branch_id=branch_id, division_id=division_id)]

    def anomalies(
        self,
        *,
        anomaly_type: Optional[str] = None,
        start: Any = None,
        end: Any = None,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Attendance]:
        flag = _ANOMALY_FLAG[require_enum(anomaly_type, AnomalyType, "anomaly type")] if anomaly_type else None
        start_d, end_d = self._range(start, end)
        rows = self._attendance.list(
            employee_refs=self._scoped_refs(branch_id, division_id),
            start=start_d,
            end=end_d,
        )
        rows = [r for r in rows if r.has_anomaly(flag)]
        return paginate(rows, page, limit)

    def export_rows(
        self,
        *,
        employee_ref: Any = None,
        start: Any = None,
        end: Any = None,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
    ) -> List[dict]:
        """Flat rows for the CSV export, oldest first."""
        start_d, end_d = self._range(start, end)
        if employee_ref is not None:
            refs = [self._require_employee(employee_ref).employee_ref]
        else:
            refs = self._scoped_refs(branch_id, division_id)
        rows = self._attendance.list(employee_refs=refs, start=start_d, end=end_d)

        names: dict[int, tuple[str, str]] = {}
        out = []
        for r in sorted(rows, key=lambda a: (a.date, a.employee_ref)):
            if r.employee_ref not in names:
                e = self._employees.get_by_id(r.employee_ref)
                names[r.employee_ref] = (e.employee_id, e.full_name) if e else (str(r.employee_ref), "")
            code, full_name = names[r.employee_ref]
            out.append(
                {
                    "date": r.date.isoformat(),
                    "employee_id": code,
                    "full_name": full_name,
                    "status": r.status.value,
                    "check_in": r.check_in_time.strftime("%H:%M:%S") if r.check_in_time else "",
                    "check_out": r.check_out_time.strftime("%H:%M:%S") if r.check_out_time else "",
                    "work_hours": _hours(r.work_duration_minutes),
                    "overtime_hours": _hours(r.overtime_minutes),
                    "late_minutes": r.late_minutes,
                    "early_departure_minutes": r.early_departure_minutes,
                    "anomalies": ";".join(f for f in ANOMALY_FLAGS if r.anomalies.get(f)),
                }
            )
        return out
