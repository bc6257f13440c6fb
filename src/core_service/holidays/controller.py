from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_WRITERS = (Role.ADMIN, Role.HR)


def register(app: Flask, container: Container) -> None:
    service = container.holiday_service

    @app.route("/api/holidays", methods=["POST"], endpoint="holidays_create")
    @token_required
    @roles_required(*_WRITERS)
    def create_holiday():
        return created(service.create_holiday(json_body(), user_id=current_user_id()))

    @app.route("/api/holidays", methods=["GET"], endpoint="holidays_list")
    @token_required
    def list_holidays():
        page, limit = paging_args()
        return paged(
            service.list_holidays(
                year=int_arg("year"),
                start=request.args.get("start_date"),
                end=request.args.get("end_date"),
                type=request.args.get("type"),
                status=request.args.get("status"),
                branch_id=int_arg("branch_id"),
                division_id=int_arg("division_id"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/holidays/generate-recurring", methods=["POST"], endpoint="holidays_generate")
    @token_required
    @roles_required(*_WRITERS)
    def generate_recurring():
        holidays = service.generate_recurring(json_body().get("year"), user_id=current_user_id())
        return created(holidays, message=f"{len(holidays)} holidays generated")

    @app.route("/api/holidays/<int:holiday_id>", methods=["GET"], endpoint="holidays_get")
    @token_required
    def get_holiday(holiday_id: int):
        return ok(service.get_holiday(holiday_id))

    @app.route("/api/holidays/<int:holiday_id>", methods=["PUT"], endpoint="holidays_update")
    @token_required
    @roles_required(*_WRITERS)
    def update_holiday(holiday_id: int):
        return ok(service.update_holiday(holiday_id, json_body(), user_id=current_user_id()))

    @app.route("/api/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="holidays_delete")
    @token_required
    @roles_required(*_WRITERS)
    def delete_holiday(holiday_id: int):
        service.delete_holiday(holiday_id, user_id=current_user_id())
        return ok(message="Holiday deleted successfully")
