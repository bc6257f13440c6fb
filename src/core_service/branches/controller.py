from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)


def register(app: Flask, container: Container) -> None:
    service = container.branch_service

    @app.route("/api/branches", methods=["POST"], endpoint="branches_create")
    @token_required
    @roles_required(Role.ADMIN)
    def create_branch():
        branch = service.create_branch(json_body(), user_id=current_user_id())
        return created(branch, message="Branch created successfully")

    @app.route("/api/branches", methods=["GET"], endpoint="branches_list")
    @token_required
    @roles_required(*_READERS)
    def list_branches():
        page, limit = paging_args()
        result = service.list_branches(
            type=request.args.get("type"),
            status=request.args.get("status"),
            parent_id=int_arg("parent_id"),
            search=request.args.get("search"),
            page=page,
            limit=limit,
        )
        return paged(result)

    @app.route("/api/branches/search", methods=["GET"], endpoint="branches_search")
    @token_required
    @roles_required(*_READERS)
    def search_branches():
        return ok(service.search_branches(request.args.get("q", "")))

    @app.route("/api/branches/hierarchy", methods=["GET"], endpoint="branches_hierarchy")
    @token_required
    @roles_required(*_READERS)
    def branch_hierarchy():
        return ok(service.get_hierarchy(int_arg("root_id")))

    @app.route("/api/branches/<int:branch_id>", methods=["GET"], endpoint="branches_get")
    @token_required
    @roles_required(*_READERS)
    def get_branch(branch_id: int):
        return ok(service.get_branch(branch_id))

    @app.route("/api/branches/<int:branch_id>", methods=["PUT"], endpoint="branches_update")
    @token_required
    @roles_required(Role.ADMIN)
    def update_branch(branch_id: int):
        return ok(service.update_branch(branch_id, json_body(), user_id=current_user_id()))

    @app.route("/api/branches/<int:branch_id>", methods=["DELETE"], endpoint="branches_delete")
    @token_required
    @roles_required(Role.ADMIN)
    def delete_branch(branch_id: int):
        service.delete_branch(branch_id, user_id=current_user_id())
        return ok(message="Branch deleted successfully")

    @app.route("/api/branches/<int:branch_id>/status", methods=["PATCH"], endpoint="branches_status")
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def update_branch_status(branch_id: int):
        data = json_body()
        branch = service.update_status(
            branch_id,
            status=data.get("status"),
            reason=data.get("status_reason"),
            user_id=current_user_id(),
        )
        return ok(branch)

    @app.route("/api/branches/<int:branch_id>/metrics", methods=["PATCH"], endpoint="branches_metrics")
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def update_branch_metrics(branch_id: int):
        return ok(service.update_metrics(branch_id, json_body(), user_id=current_user_id()))

    @app.route("/api/branches/<int:branch_id>/resources", methods=["PATCH"], endpoint="branches_resources")
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def update_branch_resources(branch_id: int):
        return ok(service.update_resources(branch_id, json_body(), user_id=current_user_id()))

    @app.route("/api/branches/<int:branch_id>/operational-hours", methods=["PUT"], endpoint="branches_hours")
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def update_branch_hours(branch_id: int):
        hours = json_body().get("operational_hours")
        return ok(service.update_operational_hours(branch_id, hours, user_id=current_user_id()))

    @app.route("/api/branches/<int:branch_id>/documents", methods=["POST"], endpoint="branches_add_document")
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def add_branch_document(branch_id: int):
        return created(service.add_document(branch_id, json_body(), user_id=current_user_id()))

    @app.route(
        "/api/branches/<int:branch_id>/documents/<document_id>",
        methods=["DELETE"],
        endpoint="branches_remove_document",
    )
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER)
    def remove_branch_document(branch_id: int, document_id: str):
        return ok(service.remove_document(branch_id, document_id, user_id=current_user_id()))
