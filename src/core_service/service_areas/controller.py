from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import current_user_id, roles_required, token_required
from ..common.datetime_utils import parse_optional_date
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")


def register(app: Flask, container: Container) -> None:
    areas = container.service_area_service
    pricing = container.pricing_service
    assignments = container.branch_area_service

    @app.route("/api/service-areas", methods=["POST"], endpoint="service_areas_create")
    @token_required
    @roles_required(Role.ADMIN)
    def create_area():
        return created(areas.create_area(json_body(), user_id=current_user_id()), message="Service area created")

    @app.route("/api/service-areas", methods=["GET"], endpoint="service_areas_list")
    @token_required
    @roles_required(*_READERS)
    def list_areas():
        page, limit = paging_args()
        return paged(
            areas.list_areas(
                level=request.args.get("level"),
                area_type=request.args.get("area_type"),
                status=request.args.get("status"),
                province=request.args.get("province"),
                city=request.args.get("city"),
                search=request.args.get("search"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/service-areas/find-by-point", methods=["GET"], endpoint="service_areas_by_point")
    @token_required
    def find_by_point():
        return ok(areas.find_by_point(request.args.get("longitude"), request.args.get("latitude")))

    @app.route("/api/service-areas/find-near-point", methods=["GET"], endpoint="service_areas_near_point")
    @token_required
    def find_near_point():
        return ok(
            areas.find_near_point(
                request.args.get("longitude"),
                request.args.get("latitude"),
                request.args.get("max_distance", 5000),
            )
        )

    @app.route("/api/service-areas/<int:area_id>", methods=["GET"], endpoint="service_areas_get")
    @token_required
    @roles_required(*_READERS)
    def get_area(area_id: int):
        return ok(areas.get_area(area_id))

    @app.route("/api/service-areas/<int:area_id>", methods=["PUT"], endpoint="service_areas_update")
    @token_required
    @roles_required(Role.ADMIN)
    def update_area(area_id: int):
        return ok(areas.update_area(area_id, json_body(), user_id=current_user_id()))

    @app.route("/api/service-areas/<int:area_id>", methods=["DELETE"], endpoint="service_areas_delete")
    @token_required
    @roles_required(Role.ADMIN)
    def delete_area(area_id: int):
        areas.delete_area(area_id, force=_flag("force"), user_id=current_user_id())
        return ok(message="Service area deleted successfully")

    @app.route("/api/service-areas/<int:area_id>/history", methods=["GET"], endpoint="service_areas_history")
    @token_required
    @roles_required(*_READERS)
    def area_history(area_id: int):
        return ok(areas.get_history(area_id, action=request.args.get("action")))

    @app.route("/api/service-areas/<int:area_id>/pricing", methods=["GET"], endpoint="service_areas_pricing")
    @token_required
    @roles_required(*_READERS)
    def area_pricing(area_id: int):
        return ok(pricing.list_pricing(area_id=area_id, status=request.args.get("status")))

    @app.route("/api/service-areas/<int:area_id>/branches", methods=["GET"], endpoint="service_areas_branches")
    @token_required
    @roles_required(*_READERS)
    def area_branches(area_id: int):
        return ok(assignments.list_by_area(area_id))

    @app.route("/api/service-areas/<int:area_id>/branch", methods=["GET"], endpoint="service_areas_branch")
    @token_required
    def branch_for_area(area_id: int):
        return ok(assignments.branch_for_area(area_id))

    @app.route("/api/service-area-pricing", methods=["POST"], endpoint="pricing_create")
    @token_required
    @roles_required(Role.ADMIN)
    def create_pricing():
        return created(pricing.create_pricing(json_body(), user_id=current_user_id()), message="Pricing created")

    @app.route("/api/service-area-pricing", methods=["GET"], endpoint="pricing_list")
    @token_required
    @roles_required(*_READERS)
    def list_pricing():
        return ok(
            pricing.list_pricing(
                area_id=int_arg("area_id"),
                service_type=request.args.get("service_type"),
                status=request.args.get("status"),
            )
        )

    @app.route("/api/service-area-pricing/calculate", methods=["POST"], endpoint="pricing_calculate")
    @token_required
    def calculate_price():
        data = json_body()
        return ok(
            pricing.calculate_price(
                data.get("area_id"),
                data.get("service_type"),
                data.get("distance_km", 0),
                data.get("weight_kg", 0),
                parse_optional_date(data.get("date"), "date"),
            )
        )

    @app.route("/api/service-area-pricing/<int:pricing_id>", methods=["GET"], endpoint="pricing_get")
    @token_required
    @roles_required(*_READERS)
    def get_pricing(pricing_id: int):
        return ok(pricing.get_pricing(pricing_id))

    @app.route("/api/service-area-pricing/<int:pricing_id>", methods=["PUT"], endpoint="pricing_update")
    @token_required
    @roles_required(Role.ADMIN)
    def update_pricing(pricing_id: int):
        return ok(pricing.update_pricing(pricing_id, json_body(), user_id=current_user_id()))

    @app.route("/api/service-area-pricing/<int:pricing_id>", methods=["DELETE"], endpoint="pricing_delete")
    @token_required
    @roles_required(Role.ADMIN)
    def delete_pricing(pricing_id: int):
        pricing.delete_pricing(pricing_id, user_id=current_user_id())
        return ok(message="Pricing deleted successfully")

    @app.route("/api/branch-service-areas", methods=["POST"], endpoint="branch_areas_assign")
    @token_required
    @roles_required(Role.ADMIN)
    def assign_branch():
        return created(assignments.assign(json_body(), user_id=current_user_id()), message="Branch assigned")

    @app.route("/api/branch-service-areas/find-by-point", methods=["GET"], endpoint="branch_areas_by_point")
    @token_required
    def branch_for_point():
        return ok(assignments.branch_for_point(request.args.get("longitude"), request.args.get("latitude")))

    @app.route("/api/branch-service-areas/branch/<int:branch_id>", methods=["GET"], endpoint="branch_areas_by_branch")
    @token_required
    @roles_required(*_READERS)
    def list_by_branch(branch_id: int):
        return ok(assignments.list_by_branch(branch_id))

    @app.route("/api/branch-service-areas/<int:assignment_id>", methods=["GET"], endpoint="branch_areas_get")
    @token_required
    @roles_required(*_READERS)
    def get_assignment(assignment_id: int):
        return ok(assignments.get_assignment(assignment_id))

    @app.route("/api/branch-service-areas/<int:assignment_id>", methods=["PUT"], endpoint="branch_areas_update")
    @token_required
    @roles_required(Role.ADMIN)
    def update_assignment(assignment_id: int):
        return ok(assignments.update_assignment(assignment_id, json_body(), user_id=current_user_id()))

    @app.route("/api/branch-service-areas/<int:assignment_id>", methods=["DELETE"], endpoint="branch_areas_remove")
    @token_required
    @roles_required(Role.ADMIN)
    def remove_assignment(assignment_id: int):
        assignments.remove_assignment(assignment_id, user_id=current_user_id())
        return ok(message="Assignment removed successfully")
