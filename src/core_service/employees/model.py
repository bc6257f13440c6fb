from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import EmployeeAction, EmployeeStatus, EmploymentType


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee and the sub-records kept on the profile."""

    employee_ref: int
    employee_id: str
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None
    join_date: Optional[date] = None
    user_id: Optional[str] = None
    branch_id: Optional[int] = None
    division_id: Optional[int] = None
    position_id: Optional[int] = None
    manager_ref: Optional[int] = None
    employment_type: EmploymentType = EmploymentType.PERMANENT
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    address: dict = field(default_factory=dict)
    emergency_contacts: list = field(default_factory=list)
    documents: list = field(default_factory=list)
    skills: list = field(default_factory=list)
    trainings: list = field(default_factory=list)
    evaluations: list = field(default_factory=list)
    career_plans: list = field(default_factory=list)
    contracts: list = field(default_factory=list)
    assignment_history: list = field(default_factory=list)
    status_history: list = field(default_factory=list)
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class EmployeeHistory:
    """Audit entry appended on every employee mutation."""

    history_id: int
    employee_ref: int
    change_type: EmployeeAction
    description: str
    previous_value: Any = None
    new_value: Any = None
    changed_by: Optional[str] = None
    timestamp: Optional[datetime] = None
