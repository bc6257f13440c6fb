from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_WRITERS = (Role.ADMIN, Role.HR)


def register(app: Flask, container: Container) -> None:
    service = container.schedule_service
    employees = container.employee_service

    @app.route("/api/schedules/work-schedule", methods=["POST"], endpoint="schedules_create")
    @token_required
    @roles_required(*_WRITERS)
    def create_schedule():
        return created(service.create_schedule(json_body(), user_id=current_user_id()))

    @app.route("/api/schedules/work-schedule", methods=["GET"], endpoint="schedules_list")
    @token_required
    @roles_required(*_READERS)
    def list_schedules():
        page, limit = paging_args()
        return paged(
            service.list_schedules(
                type=request.args.get("type"),
                status=request.args.get("status"),
                branch_id=int_arg("branch_id"),
                division_id=int_arg("division_id"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/schedules/work-schedule/<int:schedule_id>", methods=["GET"], endpoint="schedules_get")
    @token_required
    @roles_required(*_READERS)
    def get_schedule(schedule_id: int):
        return ok(service.get_schedule(schedule_id))

    @app.route("/api/schedules/work-schedule/<int:schedule_id>", methods=["PUT"], endpoint="schedules_update")
    @token_required
    @roles_required(*_WRITERS)
    def update_schedule(schedule_id: int):
        return ok(service.update_schedule(schedule_id, json_body(), user_id=current_user_id()))

    @app.route(
        "/api/schedules/work-schedule/<int:schedule_id>/assignments",
        methods=["GET"],
        endpoint="schedules_assignments",
    )
    @token_required
    @roles_required(*_READERS)
    def schedule_assignments(schedule_id: int):
        return ok(service.list_assignments_for_schedule(schedule_id))

    @app.route("/api/schedules/employee-schedule", methods=["POST"], endpoint="employee_schedules_assign")
    @token_required
    @roles_required(*_WRITERS)
    def assign_schedule():
        return created(service.assign_schedule(json_body(), user_id=current_user_id()))

    @app.route("/api/schedules/employee-schedule", methods=["GET"], endpoint="employee_schedules_list")
    @token_required
    @roles_required(*_READERS)
    def list_employee_schedules():
        page, limit = paging_args()
        return paged(
            service.list_employee_schedules(
                employee_ref=int_arg("employee_id"),
                schedule_id=int_arg("schedule_id"),
                status=request.args.get("status"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/schedules/employee-schedule/me", methods=["GET"], endpoint="employee_schedules_me")
    @token_required
    def my_schedule():
        employee = employees.get_by_user_id(current_user_id())
        return ok(service.employee_schedule_for(employee.employee_ref, request.args.get("date")))

    @app.route(
        "/api/schedules/employee-schedule/employee/<int:employee_ref>",
        methods=["GET"],
        endpoint="employee_schedules_active",
    )
    @token_required
    @roles_required(*_READERS)
    def active_schedule(employee_ref: int):
        return ok(service.employee_schedule_for(employee_ref, request.args.get("date")))

    @app.route(
        "/api/schedules/employee-schedule/<int:assignment_id>",
        methods=["GET"],
        endpoint="employee_schedules_get",
    )
    @token_required
    @roles_required(*_READERS)
    def get_employee_schedule(assignment_id: int):
        return ok(service.get_employee_schedule(assignment_id))

    @app.route(
        "/api/schedules/employee-schedule/<int:assignment_id>",
        methods=["PUT"],
        endpoint="employee_schedules_update",
    )
    @token_required
    @roles_required(*_WRITERS)
    def update_employee_schedule(assignment_id: int):
        return ok(service.update_employee_schedule(assignment_id, json_body(), user_id=current_user_id()))
