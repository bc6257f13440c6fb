from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from types import SimpleNamespace
from typing import Optional

import pytest

from core_service.container import build_services
from core_service.core.enums import AssignmentStatus


def _like(search: Optional[str], *values) -> bool:
    if not search:
        return True
    needle = search.lower()
    return any(needle in str(v or "").lower() for v in values)


class InMemoryStore:
    key = "id"

    def __init__(self):
        self.rows: dict[int, object] = {}
        self._next_id = 1

    def get_by_id(self, item_id):
        return self.rows.get(int(item_id))

    def create(self, item) -> int:
        new_id = self._next_id
        self._next_id += 1
        self.rows[new_id] = replace(item, **{self.key: new_id})
        return new_id

    def update(self, item) -> bool:
        item_id = getattr(item, self.key)
        if item_id not in self.rows:
            return False
        self.rows[item_id] = item
        return True

    def delete(self, item_id) -> bool:
        return self.rows.pop(int(item_id), None) is not None

    def _all(self):
        return list(self.rows.values())


class InMemoryBranches(InMemoryStore):
    key = "branch_id"

    def get_by_code(self, code):
        return next((b for b in self._all() if b.code == code), None)

    def list(self, *, type=None, status=None, parent_id=None, search=None):
        rows = [
            b
            for b in self._all()
            if (type is None or b.type == type)
            and (status is None or b.status == status)
            and (parent_id is None or b.parent_id == parent_id)
            and _like(search, b.code, b.name)
        ]
        return sorted(rows, key=lambda b: b.path)

    def list_children(self, parent_id):
        return sorted((b for b in self._all() if b.parent_id == parent_id), key=lambda b: b.code)

    def list_descendants(self, path):
        return sorted((b for b in self._all() if b.path.startswith(f"{path}.")), key=lambda b: b.level)


class InMemoryOrgChanges(InMemoryStore):
    key = "change_id"

    def list(self, *, entity_type=None, entity_id=None, change_type=None, start=None, end=None, search=None, limit=None):
        rows = [
            c
            for c in self._all()
            if (entity_type is None or c.entity_type == entity_type)
            and (entity_id is None or c.entity_id == entity_id)
            and (change_type is None or c.change_type == change_type)
            and (start is None or c.changed_at >= start)
            and (end is None or c.changed_at <= end)
            and _like(search, c.reason, c.changes)
        ]
        rows.sort(key=lambda c: (c.changed_at, c.change_id), reverse=True)
        return rows[:limit] if limit else rows


class InMemoryDivisions(InMemoryStore):
    key = "division_id"

    def get_by_code(self, code):
        return next((d for d in self._all() if d.code == code), None)

    def list(self, *, branch_id=None, parent_id=None, status=None, search=None):
        rows = [
            d
            for d in self._all()
            if (branch_id is None or d.branch_id == branch_id)
            and (parent_id is None or d.parent_id == parent_id)
            and (status is None or d.status == status)
            and _like(search, d.code, d.name)
        ]
        return sorted(rows, key=lambda d: d.path)

    def list_children(self, parent_id):
        return sorted((d for d in self._all() if d.parent_id == parent_id), key=lambda d: d.code)

    def list_descendants(self, path):
        return sorted((d for d in self._all() if d.path.startswith(f"{path}.")), key=lambda d: d.level)


class InMemoryPositions(InMemoryStore):
    key = "position_id"

    def get_by_code(self, code):
        return next((p for p in self._all() if p.code == code), None)

    def list(self, *, division_id=None, report_to_id=None, status=None, search=None):
        rows = [
            p
            for p in self._all()
            if (division_id is None or p.division_id == division_id)
            and (report_to_id is None or p.report_to_id == report_to_id)
            and (status is None or p.status == status)
            and _like(search, p.code, p.title)
        ]
        return sorted(rows, key=lambda p: (p.level, p.code))


class InMemoryEmployees(InMemoryStore):
    key = "employee_ref"

    def get_by_employee_id(self, employee_id):
        return next((e for e in self._all() if e.employee_id == employee_id), None)

    def get_by_user_id(self, user_id):
        return next((e for e in self._all() if e.user_id == user_id), None)

    def list(self, *, branch_id=None, division_id=None, position_id=None, status=None, employment_type=None, search=None):
        rows = [
            e
            for e in self._all()
            if (branch_id is None or e.branch_id == branch_id)
            and (division_id is None or e.division_id == division_id)
            and (position_id is None or e.position_id == position_id)
            and (status is None or e.status == status)
            and (employment_type is None or e.employment_type == employment_type)
            and _like(search, e.employee_id, e.full_name, e.email)
        ]
        return sorted(rows, key=lambda e: e.employee_id)


class InMemoryEmployeeHistory(InMemoryStore):
    key = "history_id"

    def list_for_employee(self, employee_ref, *, change_type=None, start=None, end=None):
        rows = [
            h
            for h in self._all()
            if h.employee_ref == employee_ref
            and (change_type is None or h.change_type == change_type)
            and (start is None or h.timestamp >= start)
            and (end is None or h.timestamp <= end)
        ]
        return sorted(rows, key=lambda h: (h.timestamp, h.history_id), reverse=True)


class InMemoryWorkSchedules(InMemoryStore):
    key = "schedule_id"

    def get_by_code(self, code):
        return next((s for s in self._all() if s.code == code), None)

    def list(self, *, type=None, status=None, branch_id=None, division_id=None):
        rows = [
            s
            for s in self._all()
            if (type is None or s.type == type)
            and (status is None or s.status == status)
            and (branch_id is None or branch_id in s.applicable_branches)
            and (division_id is None or division_id in s.applicable_divisions)
        ]
        return sorted(rows, key=lambda s: s.code)


class InMemoryEmployeeSchedules(InMemoryStore):
    key = "assignment_id"

    def list(self, *, employee_ref=None, schedule_id=None, status=None, effective_on=None):
        rows = [
            a
            for a in self._all()
            if (employee_ref is None or a.employee_ref == employee_ref)
            and (schedule_id is None or a.schedule_id == schedule_id)
            and (status is None or a.status == status)
            and (effective_on is None or (a.start_date <= effective_on and (a.end_date is None or a.end_date >= effective_on)))
        ]
        rows.sort(key=lambda a: a.start_date, reverse=True)
        return sorted(rows, key=lambda a: a.employee_ref)

    def find_overlapping(self, *, employee_ref, start_date, end_date, exclude_id=None):
        for a in self._all():
            if (
                a.employee_ref == employee_ref
                and a.status == AssignmentStatus.ACTIVE
                and a.start_date <= (end_date or date.max)
                and (a.end_date is None or a.end_date >= start_date)
                and a.assignment_id != exclude_id
            ):
                return a
        return None


class InMemoryHolidays(InMemoryStore):
    key = "holiday_id"

    def find(self, day, name):
        return next((h for h in self._all() if h.date == day and h.name == name), None)

    def list(self, *, start=None, end=None, type=None, status=None, is_recurring=None):
        rows = [
            h
            for h in self._all()
            if (start is None or h.date >= start)
            and (end is None or h.date <= end)
            and (type is None or h.type == type)
            and (status is None or h.status == status)
            and (is_recurring is None or h.is_recurring == is_recurring)
        ]
        return sorted(rows, key=lambda h: (h.date, h.name))


class InMemoryAttendance(InMemoryStore):
    key = "attendance_id"

    def get_for_employee_and_date(self, employee_ref, day):
        return next((a for a in self._all() if a.employee_ref == employee_ref and a.date == day), None)

    def list(self, *, employee_ref=None, employee_refs=None, start=None, end=None, status=None):
        refs = set(employee_refs) if employee_refs is not None else None
        rows = [
            a
            for a in self._all()
            if (employee_ref is None or a.employee_ref == employee_ref)
            and (refs is None or a.employee_ref in refs)
            and (start is None or a.date >= start)
            and (end is None or a.date <= end)
            and (status is None or a.status == status)
        ]
        rows.sort(key=lambda a: a.employee_ref)
        return sorted(rows, key=lambda a: a.date, reverse=True)


class InMemoryLeaves(InMemoryStore):
    key = "leave_id"

    def list(self, *, employee_ref=None, status=None, type=None, start=None, end=None):
        rows = [
            lv
            for lv in self._all()
            if (employee_ref is None or lv.employee_ref == employee_ref)
            and (status is None or lv.status == status)
            and (type is None or lv.type == type)
            and (start is None or lv.end_date >= start)
            and (end is None or lv.start_date <= end)
        ]
        return sorted(rows, key=lambda lv: (lv.start_date, lv.leave_id), reverse=True)

    def find_overlapping(self, *, employee_ref, start, end, statuses):
        statuses = set(statuses)
        for lv in self._all():
            if lv.employee_ref == employee_ref and lv.start_date <= end and lv.end_date >= start and lv.status in statuses:
                return lv
        return None


class InMemoryLeaveBalances(InMemoryStore):
    key = "balance_id"

    def get(self, employee_ref, year):
        return next((b for b in self._all() if b.employee_ref == employee_ref and b.year == year), None)

    def list(self, *, year=None, employee_refs=None):
        refs = set(employee_refs) if employee_refs is not None else None
        rows = [
            b for b in self._all() if (year is None or b.year == year) and (refs is None or b.employee_ref in refs)
        ]
        return sorted(rows, key=lambda b: (b.employee_ref, b.year))


class InMemoryServiceAreas(InMemoryStore):
    key = "area_id"

    def get_by_code(self, code):
        return next((a for a in self._all() if a.code == code), None)

    def list(self, *, level=None, area_type=None, status=None, province=None, city=None, search=None):
        rows = [
            a
            for a in self._all()
            if (level is None or a.level == level)
            and (area_type is None or a.area_type == area_type)
            and (status is None or a.status == status)
            and (province is None or a.administrative.get("province") == province)
            and (city is None or a.administrative.get("city") == city)
            and _like(search, a.code, a.name)
        ]
        return sorted(rows, key=lambda a: a.code)


class InMemoryServiceAreaHistory(InMemoryStore):
    key = "history_id"

    def list_for_area(self, area_id, *, action=None):
        rows = [h for h in self._all() if h.area_id == area_id and (action is None or h.action == action)]
        return sorted(rows, key=lambda h: (h.performed_at, h.history_id), reverse=True)


class InMemoryPricing(InMemoryStore):
    key = "pricing_id"

    def get_for(self, area_id, service_type):
        return next((p for p in self._all() if p.area_id == area_id and p.service_type == service_type), None)

    def list(self, *, area_id=None, service_type=None, status=None):
        rows = [
            p
            for p in self._all()
            if (area_id is None or p.area_id == area_id)
            and (service_type is None or p.service_type == service_type)
            and (status is None or p.status == status)
        ]
        return sorted(rows, key=lambda p: (p.area_id, p.service_type.value))


class InMemoryBranchAreas(InMemoryStore):
    key = "assignment_id"

    def get_for(self, branch_id, area_id):
        return next((a for a in self._all() if a.branch_id == branch_id and a.area_id == area_id), None)

    def list(self, *, branch_id=None, area_id=None, status=None):
        rows = [
            a
            for a in self._all()
            if (branch_id is None or a.branch_id == branch_id)
            and (area_id is None or a.area_id == area_id)
            and (status is None or a.status == status)
        ]
        return sorted(rows, key=lambda a: (a.priority, not a.is_primary, a.assignment_id))


class InMemoryTransaction:
    """Snapshots every store and restores them when the block raises."""

    def __init__(self, stores):
        self._stores = list(stores)

    @contextmanager
    def __call__(self):
        snapshot = [(s, dict(s.rows), s._next_id) for s in self._stores]
        try:
            yield
        except Exception:
            for store, rows, next_id in snapshot:
                store.rows = rows
                store._next_id = next_id
            raise


@pytest.fixture
def repos():
    return SimpleNamespace(
        branches=InMemoryBranches(),
        org_changes=InMemoryOrgChanges(),
        divisions=InMemoryDivisions(),
        positions=InMemoryPositions(),
        employees=InMemoryEmployees(),
        employee_history=InMemoryEmployeeHistory(),
        work_schedules=InMemoryWorkSchedules(),
        employee_schedules=InMemoryEmployeeSchedules(),
        holidays=InMemoryHolidays(),
        attendance=InMemoryAttendance(),
        leaves=InMemoryLeaves(),
        leave_balances=InMemoryLeaveBalances(),
        service_areas=InMemoryServiceAreas(),
        service_area_history=InMemoryServiceAreaHistory(),
        service_area_pricing=InMemoryPricing(),
        branch_service_areas=InMemoryBranchAreas(),
    )


@pytest.fixture
def container(repos):
    return build_services(**vars(repos), transaction=InMemoryTransaction(vars(repos).values()))


@pytest.fixture
def org(container):
    branch = container.branch_service.create_branch({"code": "HQ", "name": "Head Office", "type": "HEAD_OFFICE"}, user_id="admin")
    division = container.division_service.create_division(
        {"code": "OPS", "name": "Operations", "branch_id": branch.branch_id}, user_id="admin"
    )
    position = container.position_service.create_position(
        {"code": "STAFF", "title": "Staff", "division_id": division.division_id}, user_id="admin"
    )
    return SimpleNamespace(branch=branch, division=division, position=position)


@pytest.fixture
def employee(container, org):
    return container.employee_service.create_employee(
        {
            "employee_id": "EMP001",
            "first_name": "Budi",
            "last_name": "Santoso",
            "email": "budi@example.com",
            "join_date": "2023-01-09",
            "user_id": "emp-user",
            "branch_id": org.branch.branch_id,
            "division_id": org.division.division_id,
            "position_id": org.position.position_id,
        },
        user_id="admin",
    )
