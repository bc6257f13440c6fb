from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, time
from typing import Any, Optional

from ..branches.repository import BranchRepository
from ..common.datetime_utils import now_local, parse_iso_date, parse_optional_date
from ..common.pagination import Page, paginate
from ..common.serialization import diff_fields, to_jsonable
from ..common.validators import (
    optional_int,
    require_dict,
    require_enum,
    require_fields,
    require_non_empty,
    require_non_negative,
    require_range,
)
from ..core.enums import EmployeeAction, EmployeeStatus, EmploymentType, VerificationStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..divisions.repository import DivisionRepository
from ..positions.repository import PositionRepository
from .model import Employee, EmployeeHistory
from .repository import EmployeeHistoryRepository, EmployeeRepository

logger = logging.getLogger(__name__)

_EDITABLE = ("first_name", "last_name", "email", "phone", "gender", "address", "emergency_contacts", "manager_ref")
_DATE_FIELDS = ("birth_date", "join_date")
_PROFICIENCY = ("BEGINNER", "INTERMEDIATE", "ADVANCED", "EXPERT")


def _sub_id() -> str:
    return uuid.uuid4().hex


class EmployeeService:
    def __init__(
        self,
        employees: EmployeeRepository,
        history: EmployeeHistoryRepository,
        branches: BranchRepository,
        divisions: DivisionRepository,
        positions: PositionRepository,
    ):
        self._employees = employees
        self._history = history
        self._branches = branches
        self._divisions = divisions
        self._positions = positions

    # -- helpers -----------------------------------------------------------

    def _require(self, employee_ref: int) -> Employee:
        employee = self._employees.get_by_id(int(employee_ref))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _record(
        self,
        employee: Employee,
        action: EmployeeAction,
        description: str,
        *,
        user_id: Optional[str],
        previous: Any = None,
        new: Any = None,
    ) -> None:
        self._history.create(
            EmployeeHistory(
                history_id=0,
                employee_ref=employee.employee_ref,
                change_type=action,
                description=description,
                previous_value=to_jsonable(previous),
                new_value=to_jsonable(new),
                changed_by=user_id,
                timestamp=now_local(),
            )
        )

    def _check_assignment(self, branch_id: Any, division_id: Any, position_id: Any) -> tuple:
        branch = division = position = None
        if branch_id is not None:
            branch = self._branches.get_by_id(int(branch_id))
            if not branch:
                raise ValidationError(f"Branch with ID {branch_id} not found")
        if division_id is not None:
            division = self._divisions.get_by_id(int(division_id))
            if not division:
                raise ValidationError(f"Division with ID {division_id} not found")
            if branch and division.branch_id is not None and division.branch_id != branch.branch_id:
                raise ValidationError("Division does not belong to the selected branch")
        if position_id is not None:
            position = self._positions.get_by_id(int(position_id))
            if not position:
                raise ValidationError(f"Position with ID {position_id} not found")
            if division and position.division_id != division.division_id:
                raise ValidationError("Position does not belong to the selected division")
        return (
            branch.branch_id if branch else None,
            division.division_id if division else None,
            position.position_id if position else None,
        )

    def _check_manager(self, manager_ref: Any, employee_ref: Optional[int] = None) -> Optional[int]:
        ref = optional_int(manager_ref, "manager_ref")
        if ref is None:
            return None
        if ref == employee_ref:
            raise ValidationError("Employee cannot be their own manager")
        if not self._employees.get_by_id(ref):
            raise NotFoundError(f"Manager with ID {ref} not found")
        return ref

    def _save(self, employee: Employee, *, actor: Optional[str], **changes) -> Employee:
        updated = replace(employee, **changes, updated_by=actor, updated_at=now_local())
        self._employees.update(updated)
        return updated

    @staticmethod
    def _label(employee: Employee) -> str:
        return f"{employee.employee_id} ({employee.full_name})"

    # -- CRUD ----------------------------------------------------------------

    def create_employee(self, data: dict, *, user_id: str) -> Employee:
        require_fields(data, ("employee_id", "first_name", "last_name", "join_date"))
        employee_id = require_non_empty(data["employee_id"], "Employee ID")
        if self._employees.get_by_employee_id(employee_id):
            raise ValidationError("Employee ID already exists")

        branch_id, division_id, position_id = self._check_assignment(
            data.get("branch_id"), data.get("division_id"), data.get("position_id")
        )
        join_date = parse_iso_date(data["join_date"], "join_date")

        first_name = require_non_empty(data["first_name"], "First name")
        last_name = require_non_empty(data["last_name"], "Last name")
        now = now_local()

        assignments = []
        if position_id is not None:
            assignments.append(
                {
                    "assignment_id": _sub_id(),
                    "branch_id": branch_id,
                    "division_id": division_id,
                    "position_id": position_id,
                    "start_date": join_date.isoformat(),
                    "end_date": None,
                    "is_active": True,
                    "notes": "Initial assignment",
                }
            )

        employee = Employee(
            employee_ref=0,
            employee_id=employee_id,
            first_name=first_name,
            last_name=last_name,
            full_name=f"{first_name} {last_name}",
            email=data.get("email"),
            phone=data.get("phone"),
            gender=data.get("gender"),
            birth_date=parse_optional_date(data.get("birth_date"), "birth_date"),
            join_date=join_date,
            user_id=str(data["user_id"]) if data.get("user_id") else None,
            branch_id=branch_id,
            division_id=division_id,
            position_id=position_id,
            manager_ref=self._check_manager(data.get("manager_ref")),
            employment_type=require_enum(
                data.get("employment_type", EmploymentType.PERMANENT), EmploymentType, "employment type"
            ),
            status=EmployeeStatus.ACTIVE,
            address=data.get("address") or {},
            emergency_contacts=list(data.get("emergency_contacts") or []),
            assignment_history=assignments,
            status_history=[
                {"status": EmployeeStatus.ACTIVE.value, "start_date": join_date.isoformat(), "reason": "Joined"}
            ],
            created_by=user_id,
            updated_by=user_id,
            created_at=now,
            updated_at=now,
        )
        if employee.user_id and self._employees.get_by_user_id(employee.user_id):
            raise ConflictError("User account is already linked to another employee")

        employee = replace(employee, employee_ref=self._employees.create(employee))
        self._record(
            employee,
            EmployeeAction.CREATE,
            f"Employee {self._label(employee)} created",
            user_id=user_id,
            new={"employee_id": employee.employee_id, "full_name": employee.full_name},
        )
        logger.info("Employee %s created", employee.employee_id)
        return employee

    def get_employee(self, employee_ref: int) -> Employee:
        return self._require(employee_ref)

    def get_by_employee_id(self, employee_id: str) -> Employee:
        employee = self._employees.get_by_employee_id(employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def get_by_user_id(self, user_id: str) -> Employee:
        employee = self._employees.get_by_user_id(str(user_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def list_employees(
        self,
        *,
        branch_id: Optional[int] = None,
        division_id: Optional[int] = None,
        position_id: Optional[int] = None,
        status: Optional[str] = None,
        employment_type: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[Employee]:
        rows = self._employees.list(
            branch_id=branch_id,
            division_id=division_id,
            position_id=position_id,
            status=require_enum(status, EmployeeStatus, "status") if status else None,
            employment_type=(
                require_enum(employment_type, EmploymentType, "employment type") if employment_type else None
            ),
            search=search.strip() if search else None,
        )
        return paginate(list(rows), page, limit)

    def update_employee(self, employee_ref: int, data: dict, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        changes: dict[str, Any] = {}

        if data.get("employee_id") is not None:
            new_id = require_non_empty(data["employee_id"], "Employee ID")
            other = self._employees.get_by_employee_id(new_id)
            if other and other.employee_ref != employee.employee_ref:
                raise ValidationError("Employee ID already exists")
            changes["employee_id"] = new_id

        for key in _EDITABLE:
            if key in data:
                changes[key] = data[key]
        for key in _DATE_FIELDS:
            if key in data:
                changes[key] = parse_optional_date(data[key], key)
        if "employment_type" in data:
            changes["employment_type"] = require_enum(data["employment_type"], EmploymentType, "employment type")
        if "manager_ref" in changes:
            changes["manager_ref"] = self._check_manager(changes["manager_ref"], employee.employee_ref)

        if "first_name" in changes or "last_name" in changes:
            first = require_non_empty(changes.get("first_name", employee.first_name), "First name")
            last = require_non_empty(changes.get("last_name", employee.last_name), "Last name")
            changes.update(first_name=first, last_name=last, full_name=f"{first} {last}")

        before = {k: getattr(employee, k) for k in changes}
        diff = diff_fields(before, changes)
        if not diff:
            return employee

        updated = self._save(employee, actor=user_id, **changes)
        self._record(
            updated,
            EmployeeAction.UPDATE,
            f"Employee {self._label(updated)} updated",
            user_id=user_id,
            previous={c["field"]: c["old"] for c in diff},
            new={c["field"]: c["new"] for c in diff},
        )
        return updated

    def delete_employee(self, employee_ref: int, *, user_id: str) -> None:
        employee = self._require(employee_ref)
        if not self._employees.delete(employee.employee_ref):
            raise ValidationError("Failed to delete employee")
        self._record(
            employee,
            EmployeeAction.DELETE,
            f"Employee {self._label(employee)} deleted",
            user_id=user_id,
            previous={"employee_id": employee.employee_id, "full_name": employee.full_name},
        )
        logger.info("Employee %s deleted by %s", employee.employee_id, user_id)

    # -- documents -----------------------------------------------------------

    def add_document(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Document")
        require_fields(data, ("type", "number", "file_url"))
        issued = parse_optional_date(data.get("issued_date"), "issued_date")
        expiry = parse_optional_date(data.get("expiry_date"), "expiry_date")
        if issued and expiry and expiry < issued:
            raise ValidationError("Expiry date cannot be before issued date")

        doc = {
            "document_id": _sub_id(),
            "type": require_non_empty(data["type"], "Document type").upper(),
            "number": str(data["number"]).strip(),
            "issued_by": data.get("issued_by"),
            "issued_date": issued.isoformat() if issued else None,
            "expiry_date": expiry.isoformat() if expiry else None,
            "file_url": data["file_url"],
            "verification_status": VerificationStatus.PENDING.value,
            "verified_by": None,
            "verified_at": None,
            "notes": data.get("notes"),
        }
        updated = self._save(employee, actor=user_id, documents=[*employee.documents, doc])
        self._record(
            updated,
            EmployeeAction.DOCUMENT_ADDED,
            f"Document {doc['type']} added to employee {self._label(updated)}",
            user_id=user_id,
            new=doc,
        )
        return updated

    def _find_document(self, employee: Employee, document_id: str) -> tuple[int, dict]:
        for idx, doc in enumerate(employee.documents):
            if doc.get("document_id") == document_id:
                return idx, doc
        raise NotFoundError("Document not found")

    def update_document(self, employee_ref: int, document_id: str, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Document")
        idx, doc = self._find_document(employee, document_id)

        new_doc = dict(doc)
        for key in ("number", "issued_by", "file_url", "notes"):
            if key in data:
                new_doc[key] = data[key]
        for key in ("issued_date", "expiry_date"):
            if key in data:
                value = parse_optional_date(data[key], key)
                new_doc[key] = value.isoformat() if value else None
        if "file_url" in data or "number" in data:
            # changed evidence needs a fresh review
            new_doc["verification_status"] = VerificationStatus.PENDING.value

        documents = list(employee.documents)
        documents[idx] = new_doc
        updated = self._save(employee, actor=user_id, documents=documents)
        self._record(
            updated,
            EmployeeAction.DOCUMENT_UPDATED,
            f"Document {doc.get('type')} updated for employee {self._label(updated)}",
            user_id=user_id,
            previous=doc,
            new=new_doc,
        )
        return updated

    def verify_document(
        self,
        employee_ref: int,
        document_id: str,
        *,
        status: Any,
        notes: Optional[str] = None,
        user_id: str,
    ) -> Employee:
        employee = self._require(employee_ref)
        verification = require_enum(status, VerificationStatus, "verification status")
        if verification == VerificationStatus.PENDING:
            raise ValidationError("Verification status must be VERIFIED or REJECTED")
        idx, doc = self._find_document(employee, document_id)

        new_doc = {
            **doc,
            "verification_status": verification.value,
            "verified_by": user_id,
            "verified_at": now_local().isoformat(),
            "notes": notes if notes is not None else doc.get("notes"),
        }
        documents = list(employee.documents)
        documents[idx] = new_doc
        updated = self._save(employee, actor=user_id, documents=documents)
        self._record(
            updated,
            EmployeeAction.DOCUMENT_VERIFIED,
            f"Document {doc.get('type')} {verification.value.lower()} for employee {self._label(updated)}",
            user_id=user_id,
            previous={"verification_status": doc.get("verification_status")},
            new={"verification_status": verification.value},
        )
        return updated

    # -- assignment / status / account ----------------------------------------

    def change_assignment(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Assignment")
        require_fields(data, ("branch_id", "division_id", "position_id"))
        branch_id, division_id, position_id = self._check_assignment(
            data["branch_id"], data["division_id"], data["position_id"]
        )
        start = parse_optional_date(data.get("start_date"), "start_date") or now_local().date()

        history = []
        for item in employee.assignment_history:
            if item.get("is_active"):
                item = {**item, "is_active": False, "end_date": start.isoformat()}
            history.append(item)
        history.append(
            {
                "assignment_id": _sub_id(),
                "branch_id": branch_id,
                "division_id": division_id,
                "position_id": position_id,
                "start_date": start.isoformat(),
                "end_date": None,
                "is_active": True,
                "notes": data.get("notes"),
            }
        )

        previous = {
            "branch_id": employee.branch_id,
            "division_id": employee.division_id,
            "position_id": employee.position_id,
        }
        updated = self._save(
            employee,
            actor=user_id,
            branch_id=branch_id,
            division_id=division_id,
            position_id=position_id,
            assignment_history=history,
        )
        self._record(
            updated,
            EmployeeAction.ASSIGNMENT_CHANGE,
            f"Employee {self._label(updated)} assigned to new position",
            user_id=user_id,
            previous=previous,
            new={"branch_id": branch_id, "division_id": division_id, "position_id": position_id},
        )
        return updated

    def change_status(
        self,
        employee_ref: int,
        *,
        status: Any,
        reason: Optional[str] = None,
        effective_date: Any = None,
        user_id: str,
    ) -> Employee:
        employee = self._require(employee_ref)
        new_status = require_enum(status, EmployeeStatus, "status")
        if new_status == employee.status:
            raise ValidationError(f"Employee is already {new_status.value}")
        start = parse_optional_date(effective_date, "effective_date") or now_local().date()

        history = []
        for item in employee.status_history:
            if item.get("end_date") is None:
                item = {**item, "end_date": start.isoformat()}
            history.append(item)
        history.append(
            {
                "status": new_status.value,
                "start_date": start.isoformat(),
                "end_date": None,
                "reason": reason,
                "changed_by": user_id,
            }
        )

        updated = self._save(employee, actor=user_id, status=new_status, status_history=history)
        self._record(
            updated,
            EmployeeAction.STATUS_CHANGE,
            f"Employee {self._label(updated)} status changed from {employee.status.value} to {new_status.value}",
            user_id=user_id,
            previous={"status": employee.status.value},
            new={"status": new_status.value},
        )
        return updated

    def link_user(self, employee_ref: int, account_id: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        account = require_non_empty(account_id, "User ID")
        other = self._employees.get_by_user_id(account)
        if other and other.employee_ref != employee.employee_ref:
            raise ConflictError("User account is already linked to another employee")

        updated = self._save(employee, actor=user_id, user_id=account)
        self._record(
            updated,
            EmployeeAction.USER_ACCOUNT_LINKED,
            f"Employee {self._label(updated)} linked to user account",
            user_id=user_id,
            previous={"user_id": employee.user_id},
            new={"user_id": account},
        )
        return updated

    # -- profile sub-records -------------------------------------------------

    def add_skill(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Skill")
        name = require_non_empty(data.get("name"), "Skill name")
        if any(s.get("name", "").lower() == name.lower() for s in employee.skills):
            raise ValidationError(f"Skill {name} already exists for this employee")
        level = require_non_empty(data.get("proficiency_level", "BEGINNER"), "Proficiency level").upper()
        if level not in _PROFICIENCY:
            raise ValidationError(f"Invalid proficiency level. Must be one of: {', '.join(_PROFICIENCY)}")

        skill = {
            "skill_id": _sub_id(),
            "name": name,
            "category": data.get("category"),
            "proficiency_level": level,
            "years_of_experience": require_non_negative(data.get("years_of_experience", 0), "Years of experience"),
            "notes": data.get("notes"),
            "is_verified": False,
        }
        updated = self._save(employee, actor=user_id, skills=[*employee.skills, skill])
        self._record(
            updated, EmployeeAction.SKILL_ADDED, f"Skill {name} added to employee {self._label(updated)}",
            user_id=user_id, new=skill,
        )
        return updated

    def add_training(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Training")
        require_fields(data, ("name", "start_date"))
        start = parse_iso_date(data["start_date"], "start_date")
        end = parse_optional_date(data.get("end_date"), "end_date")
        if end and end < start:
            raise ValidationError("Training end date cannot be before start date")

        training = {
            "training_id": _sub_id(),
            "name": require_non_empty(data["name"], "Training name"),
            "provider": data.get("provider"),
            "start_date": start.isoformat(),
            "end_date": end.isoformat() if end else None,
            "status": str(data.get("status", "PLANNED")).upper(),
            "certificate_url": data.get("certificate_url"),
            "score": data.get("score"),
        }
        updated = self._save(employee, actor=user_id, trainings=[*employee.trainings, training])
        self._record(
            updated, EmployeeAction.TRAINING_ADDED,
            f"Training {training['name']} added to employee {self._label(updated)}",
            user_id=user_id, new=training,
        )
        return updated

    def add_evaluation(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Evaluation")
        require_fields(data, ("evaluation_date", "evaluation_type", "overall_rating"))
        evaluation = {
            "evaluation_id": _sub_id(),
            "evaluation_date": parse_iso_date(data["evaluation_date"], "evaluation_date").isoformat(),
            "evaluation_type": require_non_empty(data["evaluation_type"], "Evaluation type").upper(),
            "evaluator": data.get("evaluator") or user_id,
            "position_id": employee.position_id,
            "overall_rating": require_range(data["overall_rating"], "Overall rating", 1, 5),
            "strengths": list(data.get("strengths") or []),
            "areas_for_improvement": list(data.get("areas_for_improvement") or []),
            "goals": list(data.get("goals") or []),
            "notes": data.get("notes"),
            "acknowledgement": {"acknowledged": False, "acknowledged_at": None, "comments": None},
        }
        updated = self._save(employee, actor=user_id, evaluations=[*employee.evaluations, evaluation])
        self._record(
            updated, EmployeeAction.PERFORMANCE_EVALUATION,
            f"Performance evaluation added for employee {self._label(updated)}",
            user_id=user_id, new=evaluation,
        )
        return updated

    def add_career_plan(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Career plan")
        target_position_id = data.get("target_position_id")
        if target_position_id is not None and not self._positions.get_by_id(int(target_position_id)):
            raise ValidationError(f"Position with ID {target_position_id} not found")

        target_date = parse_optional_date(data.get("target_date"), "target_date")
        plan = {
            "plan_id": _sub_id(),
            "target_position_id": int(target_position_id) if target_position_id is not None else None,
            "target_date": target_date.isoformat() if target_date else None,
            "development_areas": list(data.get("development_areas") or []),
            "action_items": list(data.get("action_items") or []),
            "mentor": data.get("mentor"),
            "status": str(data.get("status", "ACTIVE")).upper(),
            "notes": data.get("notes"),
        }
        updated = self._save(employee, actor=user_id, career_plans=[*employee.career_plans, plan])
        self._record(
            updated, EmployeeAction.CAREER_DEVELOPMENT_UPDATE,
            f"Career development plan updated for employee {self._label(updated)}",
            user_id=user_id, new=plan,
        )
        return updated

    def add_contract(self, employee_ref: int, data: Any, *, user_id: str) -> Employee:
        employee = self._require(employee_ref)
        data = require_dict(data, "Contract")
        require_fields(data, ("contract_type", "start_date"))
        start = parse_iso_date(data["start_date"], "start_date")
        end = parse_optional_date(data.get("end_date"), "end_date")
        if end and end <= start:
            raise ValidationError("Contract end date must be after start date")

        contract = {
            "contract_id": _sub_id(),
            "contract_number": data.get("contract_number"),
            "contract_type": require_enum(data["contract_type"], EmploymentType, "contract type").value,
            "start_date": start.isoformat(),
            "end_date": end.isoformat() if end else None,
            "salary": require_non_negative(data["salary"], "Salary") if data.get("salary") is not None else None,
            "file_url": data.get("file_url"),
            "notes": data.get("notes"),
        }
        updated = self._save(employee, actor=user_id, contracts=[*employee.contracts, contract])
        self._record(
            updated, EmployeeAction.CONTRACT_ADDED,
            f"Contract added for employee {self._label(updated)}",
            user_id=user_id, new=contract,
        )
        return updated

    # -- history -------------------------------------------------------------

    def get_history(
        self,
        employee_ref: int,
        *,
        change_type: Optional[str] = None,
        start: Any = None,
        end: Any = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[EmployeeHistory]:
        employee = self._require(employee_ref)
        start_d = parse_optional_date(start, "start date")
        end_d = parse_optional_date(end, "end date")
        if start_d and end_d and start_d > end_d:
            raise ValidationError("Start date must be before or equal to end date")

        rows = self._history.list_for_employee(
            employee.employee_ref,
            change_type=require_enum(change_type, EmployeeAction, "change type") if change_type else None,
            start=datetime.combine(start_d, time.min) if start_d else None,
            end=datetime.combine(end_d, time.max) if end_d else None,
        )
        return paginate(list(rows), page, limit)
