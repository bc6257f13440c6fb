from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user, current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.constants import DEFAULT_MAX_CARRY_OVER
from ..core.enums import Role
from .service import with_available

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_APPROVERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_ON_BEHALF = {Role.ADMIN, Role.HR}


def register(app: Flask, container: Container) -> None:
    service = container.leave_service
    employees = container.employee_service

    def _own_ref() -> int:
        return employees.get_by_user_id(current_user_id()).employee_ref

    @app.route("/api/leaves", methods=["POST"], endpoint="leaves_request")
    @token_required
    def request_leave():
        data = json_body()
        if data.get("employee_id") is None or current_user().role not in _ON_BEHALF:
            data["employee_id"] = _own_ref()
        return created(service.request_leave(data, user_id=current_user_id()))

    @app.route("/api/leaves", methods=["GET"], endpoint="leaves_list")
    @token_required
    @roles_required(*_READERS)
    def list_leaves():
        page, limit = paging_args()
        return paged(
            service.list_leaves(
                status=request.args.get("status"),
                type=request.args.get("type"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/leaves/me", methods=["GET"], endpoint="leaves_me")
    @token_required
    def my_leaves():
        page, limit = paging_args()
        return paged(
            service.list_employee_leaves(
                _own_ref(),
                status=request.args.get("status"),
                type=request.args.get("type"),
                year=int_arg("year"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/leaves/employee/<int:employee_ref>", methods=["GET"], endpoint="leaves_employee")
    @token_required
    @roles_required(*_READERS)
    def employee_leaves(employee_ref: int):
        page, limit = paging_args()
        return paged(
            service.list_employee_leaves(
                employee_ref,
                status=request.args.get("status"),
                type=request.args.get("type"),
                year=int_arg("year"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/leaves/<int:leave_id>", methods=["GET"], endpoint="leaves_get")
    @token_required
    def get_leave(leave_id: int):
        return ok(service.get_leave(leave_id))

    @app.route("/api/leaves/<int:leave_id>/approval", methods=["PUT"], endpoint="leaves_approval")
    @token_required
    @roles_required(*_APPROVERS)
    def approve_or_reject(leave_id: int):
        data = json_body()
        return ok(
            service.approve_or_reject(
                leave_id,
                status=data.get("status"),
                notes=data.get("notes"),
                approver_role=current_user().role.value.upper(),
                user_id=current_user_id(),
            )
        )

    @app.route("/api/leaves/<int:leave_id>/cancel", methods=["PUT"], endpoint="leaves_cancel")
    @token_required
    def cancel_leave(leave_id: int):
        return ok(service.cancel_leave(leave_id, reason=json_body().get("reason"), user_id=current_user_id()))

    @app.route("/api/leaves/balance/me", methods=["GET"], endpoint="leave_balance_me")
    @token_required
    def my_balance():
        return ok(service.get_balance(_own_ref(), int_arg("year")))

    @app.route("/api/leaves/balance/<int:employee_ref>", methods=["GET"], endpoint="leave_balance_get")
    @token_required
    @roles_required(*_READERS)
    def get_balance(employee_ref: int):
        return ok(service.get_balance(employee_ref, int_arg("year")))

    @app.route("/api/leaves/balance/initialize", methods=["POST"], endpoint="leave_balance_init")
    @token_required
    @roles_required(Role.ADMIN, Role.HR)
    def initialize_balance():
        return created(with_available(service.initialize_balance(json_body(), user_id=current_user_id())))

    @app.route("/api/leaves/balance/adjust", methods=["POST"], endpoint="leave_balance_adjust")
    @token_required
    @roles_required(Role.ADMIN, Role.HR)
    def adjust_balance():
        return ok(with_available(service.adjust_balance(json_body(), user_id=current_user_id())))

    @app.route("/api/leaves/accruals/calculate", methods=["POST"], endpoint="leave_accruals")
    @token_required
    @roles_required(Role.ADMIN, Role.HR)
    def calculate_accruals():
        data = json_body()
        return ok(
            service.calculate_accruals(
                data.get("year"),
                data.get("month"),
                employee_refs=data.get("employee_ids") or None,
                user_id=current_user_id(),
            )
        )

    @app.route("/api/leaves/carryover", methods=["POST"], endpoint="leave_carryover")
    @token_required
    @roles_required(Role.ADMIN, Role.HR)
    def process_carryover():
        data = json_body()
        balances = service.process_carryover(
            data.get("from_year"),
            data.get("to_year"),
            max_carry_over=data.get("max_carry_over", DEFAULT_MAX_CARRY_OVER),
            employee_refs=data.get("employee_ids") or None,
            user_id=current_user_id(),
        )
        return ok([with_available(b) for b in balances], message=f"Carryover processed for {len(balances)} employees")
