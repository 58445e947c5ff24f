from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import api_route, current_principal, json_body, query_date
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError

_MARKERS = (Role.ADMIN, Role.INSTRUCTOR)


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="api_attendance_manual")
    @api_route(*_MARKERS)
    def mark_manual():
        data = json_body()
        principal = current_principal()
        record = service.mark_manual(
            current_role=principal.role,
            principal_id=principal.user_id,
            attendance_id=data.get("attendanceId"),
            status=data.get("status"),
            notes=data.get("notes"),
            excuse_reason=data.get("excuseReason"),
        )
        return jsonify({"success": True, "data": record.to_dict()})

    @app.route("/api/attendance/bulk-manual", methods=["POST"], endpoint="api_attendance_bulk_manual")
    @api_route(*_MARKERS)
    def bulk_manual():
        updates = json_body().get("updates")
        if not isinstance(updates, list) or not all(isinstance(u, dict) for u in updates):
            raise ValidationError("updates must be a list of objects")

        principal = current_principal()
        results = service.bulk_mark_manual(current_role=principal.role, principal_id=principal.user_id, updates=updates)
        return jsonify(
            {
                "success": True,
                "updated": sum(1 for r in results if r.success),
                "failed": sum(1 for r in results if not r.success),
                "results": [r.to_dict() for r in results],
            }
        )

    @app.route(
        "/api/attendance/by-occurrence/<int:schedule_id>", methods=["GET"], endpoint="api_attendance_by_occurrence"
    )
    @api_route(*_MARKERS)
    def by_occurrence(schedule_id: int):
        rows = service.list_by_occurrence(schedule_id, query_date("date"))
        return jsonify({"success": True, "data": [r.to_dict() for r in rows]})

    @app.route(
        "/api/attendance/by-occurrence/<int:schedule_id>.csv",
        methods=["GET"],
        endpoint="api_attendance_by_occurrence_csv",
    )
    @api_route(*_MARKERS)
    def by_occurrence_csv(schedule_id: int):
        on_date = query_date("date")
        body = service.export_occurrence_csv(schedule_id, on_date)
        suffix = on_date.strftime("%Y%m%d") if on_date else "next"
        return app.response_class(
            body.encode("utf-8-sig"),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=attendance_{schedule_id}_{suffix}.csv"},
        )

    @app.route(
        "/api/attendance/by-occurrence/<int:schedule_id>/stats",
        methods=["GET"],
        endpoint="api_attendance_by_occurrence_stats",
    )
    @api_route(*_MARKERS)
    def by_occurrence_stats(schedule_id: int):
        return jsonify({"success": True, "data": service.occurrence_stats(schedule_id, query_date("date"))})
