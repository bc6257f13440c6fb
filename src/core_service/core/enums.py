from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles carried in the bearer token."""

    ADMIN = "admin"
    MANAGER = "manager"
    HR = "hr"
    FINANCE = "finance"
    EMPLOYEE = "employee"


class BranchType(str, Enum):
    HEAD_OFFICE = "HEAD_OFFICE"
    REGIONAL = "REGIONAL"
    BRANCH = "BRANCH"


class BranchStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    CLOSED = "CLOSED"


class DocumentType(str, Enum):
    LICENSE = "LICENSE"
    PERMIT = "PERMIT"
    CERTIFICATE = "CERTIFICATE"
    CONTRACT = "CONTRACT"
    OTHER = "OTHER"


class DivisionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    ARCHIVED = "ARCHIVED"


class PositionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    VACANT = "VACANT"
    FILLED = "FILLED"


class EntityType(str, Enum):
    DIVISION = "DIVISION"
    POSITION = "POSITION"


class ChangeType(str, Enum):
    """Kinds of organizational change kept in the audit trail."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ACTIVATE = "ACTIVATE"
    DEACTIVATE = "DEACTIVATE"
    TRANSFER = "TRANSFER"
    RESTRUCTURE = "RESTRUCTURE"


class EmploymentType(str, Enum):
    PERMANENT = "PERMANENT"
    CONTRACT = "CONTRACT"
    PROBATION = "PROBATION"
    INTERN = "INTERN"
    PART_TIME = "PART_TIME"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"
    TERMINATED = "TERMINATED"
    SUSPENDED = "SUSPENDED"


class VerificationStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class EmployeeAction(str, Enum):
    """Actions recorded in the employee history trail."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    DOCUMENT_ADDED = "DOCUMENT_ADDED"
    DOCUMENT_UPDATED = "DOCUMENT_UPDATED"
    DOCUMENT_VERIFIED = "DOCUMENT_VERIFIED"
    ASSIGNMENT_CHANGE = "ASSIGNMENT_CHANGE"
    STATUS_CHANGE = "STATUS_CHANGE"
    USER_ACCOUNT_LINKED = "USER_ACCOUNT_LINKED"
    SKILL_ADDED = "SKILL_ADDED"
    TRAINING_ADDED = "TRAINING_ADDED"
    PERFORMANCE_EVALUATION = "PERFORMANCE_EVALUATION"
    CAREER_DEVELOPMENT_UPDATE = "CAREER_DEVELOPMENT_UPDATE"
    CONTRACT_ADDED = "CONTRACT_ADDED"


class ScheduleType(str, Enum):
    REGULAR = "REGULAR"
    SHIFT = "SHIFT"
    FLEXIBLE = "FLEXIBLE"
    CUSTOM = "CUSTOM"


class ScheduleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    DRAFT = "DRAFT"


class AssignmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"


class Weekday(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


class HolidayType(str, Enum):
    NATIONAL = "NATIONAL"
    RELIGIOUS = "RELIGIOUS"
    COMPANY = "COMPANY"
    REGIONAL = "REGIONAL"


class HalfDayPortion(str, Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AttendanceStatus(str, Enum):
    """Attendance status stored per employee per day."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    ON_LEAVE = "ON_LEAVE"
    HOLIDAY = "HOLIDAY"
    WEEKEND = "WEEKEND"


class AnomalyType(str, Enum):
    LATE = "LATE"
    EARLY_DEPARTURE = "EARLY_DEPARTURE"
    OUTSIDE_GEOFENCE = "OUTSIDE_GEOFENCE"
    INCOMPLETE = "INCOMPLETE"
    OVERTIME = "OVERTIME"


class RequestStatus(str, Enum):
    """Approval workflow status (corrections, leave)."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveType(str, Enum):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    MATERNITY = "MATERNITY"
    PATERNITY = "PATERNITY"
    BEREAVEMENT = "BEREAVEMENT"
    UNPAID = "UNPAID"
    RELIGIOUS = "RELIGIOUS"
    MARRIAGE = "MARRIAGE"
    EMERGENCY = "EMERGENCY"
    OTHER = "OTHER"


class BalanceAction(str, Enum):
    ANNUAL_ALLOCATION = "ANNUAL_ALLOCATION"
    CARRYOVER = "CARRYOVER"
    MONTHLY_ACCRUAL = "MONTHLY_ACCRUAL"
    ADJUSTMENT = "ADJUSTMENT"
    LEAVE_TAKEN = "LEAVE_TAKEN"
    LEAVE_CANCELLED = "LEAVE_CANCELLED"


class AdministrativeLevel(str, Enum):
    PROVINCE = "PROVINCE"
    CITY = "CITY"
    DISTRICT = "DISTRICT"
    SUBDISTRICT = "SUBDISTRICT"


class AreaType(str, Enum):
    INNER_CITY = "INNER_CITY"
    OUT_OF_CITY = "OUT_OF_CITY"
    REMOTE_AREA = "REMOTE_AREA"


class ServiceType(str, Enum):
    REGULAR = "REGULAR"
    EXPRESS = "EXPRESS"
    SAME_DAY = "SAME_DAY"
    NEXT_DAY = "NEXT_DAY"
    ECONOMY = "ECONOMY"


class AreaAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    BOUNDARY_CHANGE = "BOUNDARY_CHANGE"
    ASSIGNMENT_CHANGE = "ASSIGNMENT_CHANGE"
