from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass
from typing import Callable, ContextManager, Tuple

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .branches.mysql_branch_repository import MySQLBranchRepository
from .branches.service import BranchService
from .core.constants import CARRYOVER_EXPIRY_DAY, CARRYOVER_EXPIRY_MONTH, DEFAULT_GEOFENCE_RADIUS_METERS
from .database.connection import DatabaseConnection, DBConfig
from .divisions.mysql_division_repository import MySQLDivisionRepository
from .divisions.service import DivisionService
from .employees.mysql_employee_history_repository import MySQLEmployeeHistoryRepository
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .employees.service import EmployeeService
from .holidays.mysql_holiday_repository import MySQLHolidayRepository
from .holidays.service import HolidayService
from .leave.calculator.working_days_calculator import WorkingDaysCalculator
from .leave.mysql_leave_repository import MySQLLeaveBalanceRepository, MySQLLeaveRepository
from .leave.service import LeaveService
from .org_changes.mysql_org_change_repository import MySQLOrgChangeRepository
from .org_changes.service import OrgChangeService
from .positions.mysql_position_repository import MySQLPositionRepository
from .positions.service import PositionService
from .schedules.mysql_schedule_repository import MySQLEmployeeScheduleRepository, MySQLWorkScheduleRepository
from .schedules.service import ScheduleService
from .service_areas.assignment_service import BranchServiceAreaService
from .service_areas.mysql_branch_area_repository import MySQLBranchServiceAreaRepository
from .service_areas.mysql_pricing_repository import MySQLServiceAreaPricingRepository
from .service_areas.mysql_service_area_repository import MySQLServiceAreaHistoryRepository, MySQLServiceAreaRepository
from .service_areas.pricing_service import ServiceAreaPricingService
from .service_areas.service import ServiceAreaService


@dataclass(frozen=True)
class Container:
    branch_service: BranchService
    org_change_service: OrgChangeService
    division_service: DivisionService
    position_service: PositionService
    employee_service: EmployeeService
    schedule_service: ScheduleService
    holiday_service: HolidayService
    attendance_service: AttendanceService
    leave_service: LeaveService
    service_area_service: ServiceAreaService
    pricing_service: ServiceAreaPricingService
    branch_area_service: BranchServiceAreaService


def build_services(
    *,
    branches,
    org_changes,
    divisions,
    positions,
    employees,
    employee_history,
    work_schedules,
    employee_schedules,
    holidays,
    attendance,
    leaves,
    leave_balances,
    service_areas,
    service_area_history,
    service_area_pricing,
    branch_service_areas,
    geofence_radius: float = DEFAULT_GEOFENCE_RADIUS_METERS,
    carryover_expiry: Tuple[int, int] = (CARRYOVER_EXPIRY_MONTH, CARRYOVER_EXPIRY_DAY),
    transaction: Callable[[], ContextManager] = nullcontext,
) -> Container:
    """Wire services on top of any set of repositories (MySQL or in-memory)."""
    org_change_service = OrgChangeService(org_changes)
    schedule_service = ScheduleService(work_schedules, employee_schedules, employees)
    holiday_service = HolidayService(holidays)
    service_area_service = ServiceAreaService(
        service_areas, service_area_history, service_area_pricing, branch_service_areas, transaction=transaction
    )

    return Container(
        branch_service=BranchService(branches),
        org_change_service=org_change_service,
        division_service=DivisionService(divisions, branches, positions, org_change_service),
        position_service=PositionService(positions, divisions, employees, org_change_service),
        employee_service=EmployeeService(employees, employee_history, branches, divisions, positions),
        schedule_service=schedule_service,
        holiday_service=holiday_service,
        attendance_service=AttendanceService(
            attendance,
            employees,
            schedule_service,
            strategy_factory=AttendanceStrategyFactory(),
            default_radius=geofence_radius,
        ),
        leave_service=LeaveService(
            leaves,
            leave_balances,
            employees,
            holiday_service,
            calculator=WorkingDaysCalculator(),
            carryover_expiry=tuple(carryover_expiry),
            transaction=transaction,
        ),
        service_area_service=service_area_service,
        pricing_service=ServiceAreaPricingService(service_area_pricing, service_areas),
        branch_area_service=BranchServiceAreaService(
            branch_service_areas, service_areas, branches, service_area_service
        ),
    )


def build_container(
    *,
    db_config: dict,
    geofence_radius: float = DEFAULT_GEOFENCE_RADIUS_METERS,
    carryover_expiry: Tuple[int, int] = (CARRYOVER_EXPIRY_MONTH, CARRYOVER_EXPIRY_DAY),
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return build_services(
        branches=MySQLBranchRepository(conn),
        org_changes=MySQLOrgChangeRepository(conn),
        divisions=MySQLDivisionRepository(conn),
        positions=MySQLPositionRepository(conn),
        employees=MySQLEmployeeRepository(conn),
        employee_history=MySQLEmployeeHistoryRepository(conn),
        work_schedules=MySQLWorkScheduleRepository(conn),
        employee_schedules=MySQLEmployeeScheduleRepository(conn),
        holidays=MySQLHolidayRepository(conn),
        attendance=MySQLAttendanceRepository(conn),
        leaves=MySQLLeaveRepository(conn),
        leave_balances=MySQLLeaveBalanceRepository(conn),
        service_areas=MySQLServiceAreaRepository(conn),
        service_area_history=MySQLServiceAreaHistoryRepository(conn),
        service_area_pricing=MySQLServiceAreaPricingRepository(conn),
        branch_service_areas=MySQLBranchServiceAreaRepository(conn),
        geofence_radius=geofence_radius,
        carryover_expiry=carryover_expiry,
        transaction=conn.transaction,
    )
