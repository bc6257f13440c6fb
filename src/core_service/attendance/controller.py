from __future__ import annotations

import csv
import io
from datetime import date

from flask import Flask, request

from ..auth.decorators import current_user, current_user_id, roles_required, token_required
from ..common.responses import created, int_arg, json_body, ok, paged, paging_args
from ..container import Container
from ..core.enums import Role
from .service import EXPORT_FIELDS

_READERS = (Role.ADMIN, Role.MANAGER, Role.HR)
_ON_BEHALF = {Role.ADMIN, Role.HR}


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    employees = container.employee_service

    def _own_ref() -> int:
        return employees.get_by_user_id(current_user_id()).employee_ref

    def _target_ref(data: dict) -> int:
        """HR and admins may punch for another employee; everyone else punches for themselves."""
        if data.get("employee_id") is not None and current_user().role in _ON_BEHALF:
            return data["employee_id"]
        return _own_ref()

    def _write_csv(rows, *, filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @token_required
    def check_in():
        data = json_body()
        return created(service.check_in(_target_ref(data), data, user_id=current_user_id()), message="Checked in")

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @token_required
    def check_out():
        data = json_body()
        return ok(service.check_out(_target_ref(data), data, user_id=current_user_id()), message="Checked out")

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @token_required
    def today():
        return ok(service.get_today(_own_ref()))

    @app.route("/api/attendance/me", methods=["GET"], endpoint="attendance_me")
    @token_required
    def my_attendance():
        page, limit = paging_args()
        return paged(
            service.list_employee_attendance(
                _own_ref(),
                start=request.args.get("start_date"),
                end=request.args.get("end_date"),
                status=request.args.get("status"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/attendance/me/summary", methods=["GET"], endpoint="attendance_me_summary")
    @token_required
    def my_summary():
        return ok(service.summary(_own_ref(), start=request.args.get("start_date"), end=request.args.get("end_date")))

    @app.route("/api/attendance/employee/<int:employee_ref>", methods=["GET"], endpoint="attendance_employee")
    @token_required
    @roles_required(*_READERS)
    def employee_attendance(employee_ref: int):
        page, limit = paging_args()
        return paged(
            service.list_employee_attendance(
                employee_ref,
                start=request.args.get("start_date"),
                end=request.args.get("end_date"),
                status=request.args.get("status"),
                page=page,
                limit=limit,
            )
        )

    @app.route(
        "/api/attendance/employee/<int:employee_ref>/summary",
        methods=["GET"],
        endpoint="attendance_employee_summary",
    )
    @token_required
    @roles_required(*_READERS)
    def employee_summary(employee_ref: int):
        return ok(
            service.summary(employee_ref, start=request.args.get("start_date"), end=request.args.get("end_date"))
        )

    @app.route("/api/attendance/anomalies", methods=["GET"], endpoint="attendance_anomalies")
    @token_required
    @roles_required(*_READERS)
    def anomalies():
        page, limit = paging_args()
        return paged(
            service.anomalies(
                anomaly_type=request.args.get("anomaly_type"),
                start=request.args.get("start_date"),
                end=request.args.get("end_date"),
                branch_id=int_arg("branch_id"),
                division_id=int_arg("division_id"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/attendance/export.csv", methods=["GET"], endpoint="attendance_export")
    @token_required
    @roles_required(*_READERS)
    def export_csv():
        start = request.args.get("start_date") or date.today().replace(day=1).isoformat()
        end = request.args.get("end_date") or date.today().isoformat()
        rows = service.export_rows(
            employee_ref=int_arg("employee_id"),
            start=start,
            end=end,
            branch_id=int_arg("branch_id"),
            division_id=int_arg("division_id"),
        )
        return _write_csv(rows, filename=f"attendance_{start}_{end}.csv")

    @app.route("/api/attendance/<int:attendance_id>", methods=["GET"], endpoint="attendance_get")
    @token_required
    @roles_required(*_READERS)
    def get_attendance(attendance_id: int):
        return ok(service.get_attendance(attendance_id))

    @app.route("/api/attendance/<int:attendance_id>/correction", methods=["POST"], endpoint="attendance_correction")
    @token_required
    def request_correction(attendance_id: int):
        owner = None if current_user().role in _ON_BEHALF else _own_ref()
        return ok(
            service.request_correction(attendance_id, json_body(), user_id=current_user_id(), employee_ref=owner)
        )

    @app.route(
        "/api/attendance/<int:attendance_id>/correction/review",
        methods=["PUT"],
        endpoint="attendance_correction_review",
    )
    @token_required
    @roles_required(Role.ADMIN, Role.MANAGER, Role.HR)
    def review_correction(attendance_id: int):
        data = json_body()
        return ok(
            service.review_correction(
                attendance_id,
                status=data.get("status"),
                notes=data.get("review_notes"),
                user_id=current_user_id(),
            )
        )
