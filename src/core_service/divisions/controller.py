from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_WRITERS = (Role.ADMIN, Role.MANAGER)


def register(app: Flask, container: Container) -> None:
    service = container.division_service

    @app.route("/api/divisions", methods=["POST"], endpoint="divisions_create")
    @token_required
    @roles_required(*_WRITERS)
    def create_division():
        return created(service.create_division(json_body(), user_id=current_user_id()))

    @app.route("/api/divisions", methods=["GET"], endpoint="divisions_list")
    @token_required
    @roles_required(*_READERS)
    def list_divisions():
        page, limit = paging_args()
        return paged(
            service.list_divisions(
                branch_id=int_arg("branch_id"),
                parent_id=int_arg("parent_id"),
                status=request.args.get("status"),
                search=request.args.get("search"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/divisions/hierarchy", methods=["GET"], endpoint="divisions_hierarchy")
    @token_required
    @roles_required(*_READERS)
    def division_hierarchy():
        return ok(service.get_hierarchy(int_arg("branch_id")))

    @app.route("/api/divisions/branch/<int:branch_id>", methods=["GET"], endpoint="divisions_by_branch")
    @token_required
    @roles_required(*_READERS)
    def divisions_by_branch(branch_id: int):
        return ok(service.get_by_branch(branch_id))

    @app.route("/api/divisions/code/<code>", methods=["GET"], endpoint="divisions_by_code")
    @token_required
    @roles_required(*_READERS)
    def division_by_code(code: str):
        return ok(service.get_division_by_code(code))

    @app.route("/api/divisions/<int:division_id>", methods=["GET"], endpoint="divisions_get")
    @token_required
    @roles_required(*_READERS)
    def get_division(division_id: int):
        return ok(service.get_division(division_id))

    @app.route("/api/divisions/<int:division_id>/children", methods=["GET"], endpoint="divisions_children")
    @token_required
    @roles_required(*_READERS)
    def division_children(division_id: int):
        return ok(service.get_children(division_id))

    @app.route("/api/divisions/<int:division_id>/descendants", methods=["GET"], endpoint="divisions_descendants")
    @token_required
    @roles_required(*_READERS)
    def division_descendants(division_id: int):
        return ok(service.get_descendants(division_id))

    @app.route("/api/divisions/<int:division_id>", methods=["PUT"], endpoint="divisions_update")
    @token_required
    @roles_required(*_WRITERS)
    def update_division(division_id: int):
        return ok(service.update_division(division_id, json_body(), user_id=current_user_id()))

    @app.route("/api/divisions/<int:division_id>", methods=["DELETE"], endpoint="divisions_delete")
    @token_required
    @roles_required(Role.ADMIN)
    def delete_division(division_id: int):
        service.delete_division(division_id, user_id=current_user_id())
        return ok(message="Division deleted successfully")

    @app.route("/api/divisions/<int:division_id>/status", methods=["PATCH"], endpoint="divisions_status")
    @token_required
    @roles_required(*_WRITERS)
    def change_division_status(division_id: int):
        data = json_body()
        return ok(
            service.change_status(
                division_id,
                status=data.get("status"),
                reason=data.get("reason"),
                user_id=current_user_id(),
            )
        )

    @app.route("/api/divisions/<int:division_id>/budget", methods=["PATCH"], endpoint="divisions_budget")
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER, Role.FINANCE)
    def update_division_budget(division_id: int):
        return ok(service.update_budget(division_id, json_body(), user_id=current_user_id()))

    @app.route("/api/divisions/<int:division_id>/metrics", methods=["PATCH"], endpoint="divisions_metrics")
    @token_required
    @roles_required(*_WRITERS)
    def update_division_metrics(division_id: int):
        return ok(service.update_metrics(division_id, json_body(), user_id=current_user_id()))

    @app.route("/api/divisions/<int:division_id>/transfer", methods=["PATCH"], endpoint="divisions_transfer")
    @token_required
    @roles_required(Role.ADMIN)
    def transfer_division(division_id: int):
        data = json_body()
        return ok(
            service.transfer_to_branch(
                division_id,
                data.get("branch_id"),
                user_id=current_user_id(),
                reason=data.get("reason"),
            )
        )
