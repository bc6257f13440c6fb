from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_WRITERS = (Role.ADMIN, Role.HR)


def register(app: Flask, container: Container) -> None:
    service = container.position_service

    @app.route("/api/positions", methods=["POST"], endpoint="positions_create")
    @token_required
    @roles_required(*_WRITERS)
    def create_position():
        return created(service.create_position(json_body(), user_id=current_user_id()))

    @app.route("/api/positions", methods=["GET"], endpoint="positions_list")
    @token_required
    @roles_required(*_READERS)
    def list_positions():
        page, limit = paging_args()
        return paged(
            service.list_positions(
                division_id=int_arg("division_id"),
                status=request.args.get("status"),
                search=request.args.get("search"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/positions/org-chart", methods=["GET"], endpoint="positions_org_chart")
    @token_required
    @roles_required(*_READERS)
    def org_chart():
        return ok(service.get_org_chart(int_arg("division_id")))

    @app.route("/api/positions/division/<int:division_id>", methods=["GET"], endpoint="positions_by_division")
    @token_required
    @roles_required(*_READERS)
    def positions_by_division(division_id: int):
        return ok(service.get_by_division(division_id))

    @app.route("/api/positions/<int:position_id>", methods=["GET"], endpoint="positions_get")
    @token_required
    @roles_required(*_READERS)
    def get_position(position_id: int):
        return ok(service.get_position(position_id))

    @app.route("/api/positions/<int:position_id>/reporting-chain", methods=["GET"], endpoint="positions_chain")
    @token_required
    @roles_required(*_READERS)
    def reporting_chain(position_id: int):
        return ok(service.get_reporting_chain(position_id))

    @app.route("/api/positions/<int:position_id>", methods=["PUT"], endpoint="positions_update")
    @token_required
    @roles_required(*_WRITERS)
    def update_position(position_id: int):
        return ok(service.update_position(position_id, json_body(), user_id=current_user_id()))

    @app.route("/api/positions/<int:position_id>", methods=["DELETE"], endpoint="positions_delete")
    @token_required
    @roles_required(Role.ADMIN)
    def delete_position(position_id: int):
        service.delete_position(position_id, user_id=current_user_id())
        return ok(message="Position deleted successfully")

    @app.route("/api/positions/<int:position_id>/status", methods=["PATCH"], endpoint="positions_status")
    @token_required
    @roles_required(*_WRITERS)
    def change_position_status(position_id: int):
        data = json_body()
        return ok(
            service.change_status(
                position_id,
                status=data.get("status"),
                reason=data.get("reason"),
                user_id=current_user_id(),
            )
        )

    @app.route("/api/positions/<int:position_id>/salary-range", methods=["PATCH"], endpoint="positions_salary")
    @token_required
    @roles_required(Role.ADMIN, Role.HR, Role.FINANCE)
    def update_salary_range(position_id: int):
        return ok(service.update_salary_range(position_id, json_body(), user_id=current_user_id()))
