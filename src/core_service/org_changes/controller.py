from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import roles_required, token_required
from ..common.responses import ok
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)


def register(app: Flask, container: Container) -> None:
    service = container.org_change_service

    @app.route("/api/organizational-changes/recent", methods=["GET"], endpoint="org_changes_recent")
    @token_required
    @roles_required(*_READERS)
    def recent_changes():
        return ok(service.get_recent(request.args.get("limit", 10)))

    @app.route("/api/organizational-changes/search", methods=["GET"], endpoint="org_changes_search")
    @token_required
    @roles_required(*_READERS)
    def search_changes():
        return ok(service.search(request.args.get("q", "")))

    @app.route("/api/organizational-changes/date-range", methods=["GET"], endpoint="org_changes_range")
    @token_required
    @roles_required(*_READERS)
    def changes_by_date_range():
        return ok(service.get_by_date_range(request.args.get("start"), request.args.get("end")))

    @app.route("/api/organizational-changes/type/<change_type>", methods=["GET"], endpoint="org_changes_by_type")
    @token_required
    @roles_required(*_READERS)
    def changes_by_type(change_type: str):
        return ok(service.get_by_type(change_type))

    @app.route(
        "/api/organizational-changes/entity/<entity_type>/<int:entity_id>",
        methods=["GET"],
        endpoint="org_changes_by_entity",
    )
    @token_required
    @roles_required(*_READERS)
    def changes_by_entity(entity_type: str, entity_id: int):
        return ok(service.get_by_entity(entity_type, entity_id))

    @app.route("/api/organizational-changes/<int:change_id>", methods=["GET"], endpoint="org_changes_get")
    @token_required
    @roles_required(*_READERS)
    def get_change(change_id: int):
        return ok(service.get_change(change_id))
