from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_WRITERS = (Role.ADMIN, Role.HR)


def register(app: Flask, container: Container) -> None:
    service = container.employee_service

    @app.route("/api/employees", methods=["POST"], endpoint="employees_create")
    @token_required
    @roles_required(*_WRITERS)
    def create_employee():
        return created(service.create_employee(json_body(), user_id=current_user_id()))

    @app.route("/api/employees", methods=["GET"], endpoint="employees_list")
    @token_required
    @roles_required(*_READERS)
    def list_employees():
        page, limit = paging_args()
        return paged(
            service.list_employees(
                branch_id=int_arg("branch_id"),
                division_id=int_arg("division_id"),
                position_id=int_arg("position_id"),
                status=request.args.get("status"),
                employment_type=request.args.get("employment_type"),
                search=request.args.get("search"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/employees/me", methods=["GET"], endpoint="employees_me")
    @token_required
    def my_profile():
        return ok(service.get_by_user_id(current_user_id()))

    @app.route("/api/employees/employee-id/<employee_id>", methods=["GET"], endpoint="employees_by_code")
    @token_required
    @roles_required(*_READERS)
    def employee_by_employee_id(employee_id: str):
        return ok(service.get_by_employee_id(employee_id))

    @app.route("/api/employees/user/<user_id>", methods=["GET"], endpoint="employees_by_user")
    @token_required
    @roles_required(*_READERS)
    def employee_by_user(user_id: str):
        return ok(service.get_by_user_id(user_id))

    @app.route("/api/employees/<int:employee_ref>", methods=["GET"], endpoint="employees_get")
    @token_required
    @roles_required(*_READERS)
    def get_employee(employee_ref: int):
        return ok(service.get_employee(employee_ref))

    @app.route("/api/employees/<int:employee_ref>", methods=["PUT"], endpoint="employees_update")
    @token_required
    @roles_required(*_WRITERS)
    def update_employee(employee_ref: int):
        return ok(service.update_employee(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>", methods=["DELETE"], endpoint="employees_delete")
    @token_required
    @roles_required(Role.ADMIN)
    def delete_employee(employee_ref: int):
        service.delete_employee(employee_ref, user_id=current_user_id())
        return ok(message="Employee deleted successfully")

    @app.route("/api/employees/<int:employee_ref>/documents", methods=["POST"], endpoint="employees_add_document")
    @token_required
    @roles_required(*_WRITERS)
    def add_document(employee_ref: int):
        return created(service.add_document(employee_ref, json_body(), user_id=current_user_id()))

    @app.route(
        "/api/employees/<int:employee_ref>/documents/<document_id>",
        methods=["PUT"],
        endpoint="employees_update_document",
    )
    @token_required
    @roles_required(*_WRITERS)
    def update_document(employee_ref: int, document_id: str):
        return ok(service.update_document(employee_ref, document_id, json_body(), user_id=current_user_id()))

    @app.route(
        "/api/employees/<int:employee_ref>/documents/<document_id>/verify",
        methods=["PATCH"],
        endpoint="employees_verify_document",
    )
    @token_required
    @roles_required(*_WRITERS)
    def verify_document(employee_ref: int, document_id: str):
        data = json_body()
        return ok(
            service.verify_document(
                employee_ref,
                document_id,
                status=data.get("status"),
                notes=data.get("notes"),
                user_id=current_user_id(),
            )
        )

    @app.route("/api/employees/<int:employee_ref>/assignment", methods=["POST"], endpoint="employees_assignment")
    @token_required
    @roles_required(*_WRITERS)
    def change_assignment(employee_ref: int):
        return ok(service.change_assignment(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/status", methods=["PATCH"], endpoint="employees_status")
    @token_required
    @roles_required(*_WRITERS)
    def change_status(employee_ref: int):
        data = json_body()
        return ok(
            service.change_status(
                employee_ref,
                status=data.get("status"),
                reason=data.get("reason"),
                effective_date=data.get("effective_date"),
                user_id=current_user_id(),
            )
        )

    @app.route("/api/employees/<int:employee_ref>/link-user", methods=["PATCH"], endpoint="employees_link_user")
    @token_required
    @roles_required(Role.ADMIN)
    def link_user(employee_ref: int):
        return ok(service.link_user(employee_ref, json_body().get("user_id"), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/skills", methods=["POST"], endpoint="employees_add_skill")
    @token_required
    @roles_required(*_WRITERS)
    def add_skill(employee_ref: int):
        return created(service.add_skill(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/trainings", methods=["POST"], endpoint="employees_add_training")
    @token_required
    @roles_required(*_WRITERS)
    def add_training(employee_ref: int):
        return created(service.add_training(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/evaluations", methods=["POST"], endpoint="employees_add_evaluation")
    @token_required
    @roles_required(Role.ADMIN, Role.HR, Role.MANAGER)
    def add_evaluation(employee_ref: int):
        return created(service.add_evaluation(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/career-plans", methods=["POST"], endpoint="employees_add_plan")
    @token_required
    @roles_required(Role.ADMIN, Role.HR, Role.MANAGER)
    def add_career_plan(employee_ref: int):
        return created(service.add_career_plan(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/contracts", methods=["POST"], endpoint="employees_add_contract")
    @token_required
    @roles_required(*_WRITERS)
    def add_contract(employee_ref: int):
        return created(service.add_contract(employee_ref, json_body(), user_id=current_user_id()))

    @app.route("/api/employees/<int:employee_ref>/history", methods=["GET"], endpoint="employees_history")
    @token_required
    @roles_required(*_READERS)
    def employee_history(employee_ref: int):
        page, limit = paging_args()
        return paged(
            service.get_history(
                employee_ref,
                change_type=request.args.get("change_type"),
                start=request.args.get("start"),
                end=request.args.get("end"),
                page=page,
                limit=limit,
            )
        )
