from __future__ import annotations

from typing import Any

from flask import jsonify, request

from ..core.exceptions import ValidationError
from .pagination import Page, normalize_paging
from .serialization import to_jsonable


def ok(data: Any = None, *, status: int = 200, message: str | None = None):
    body: dict = {"success": True, "data": to_jsonable(data)}
    if message:
        body["message"] = message
    return jsonify(body), status


def created(data: Any = None, *, message: str | None = None):
    return ok(data, status=201, message=message)


def paged(page: Page):
    return jsonify({"success": True, "data": to_jsonable(page.items), "pagination": page.meta()}), 200


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def paging_args() -> tuple[int, int]:
    return normalize_paging(request.args.get("page"), request.args.get("limit"))


def int_arg(name: str) -> int | None:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
