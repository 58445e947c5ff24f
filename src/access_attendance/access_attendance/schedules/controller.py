from __future__ import annotations

from flask import Flask, jsonify

from ..common.datetime_utils import parse_iso_date
from ..common.validators import require_positive_id
from ..common.web import api_route, current_principal, json_body
from ..container import Container
from ..core.enums import Role
from .service import schedule_to_dict

_EDITORS = (Role.ADMIN, Role.INSTRUCTOR)


def register(app: Flask, container: Container) -> None:
    service = container.schedule_service

    @app.route("/api/schedules", methods=["POST"], endpoint="api_schedules_create")
    @api_route(*_EDITORS)
    def create_schedule():
        principal = current_principal()
        result = service.create_schedule(current_role=principal.role, principal_id=principal.user_id, data=json_body())
        return jsonify({"success": True, "data": result}), 201

    @app.route("/api/schedules/<int:schedule_id>", methods=["GET"], endpoint="api_schedules_get")
    @api_route(*_EDITORS)
    def get_schedule(schedule_id: int):
        return jsonify({"success": True, "data": schedule_to_dict(service.get(schedule_id))})

    @app.route("/api/schedules/<int:schedule_id>/deactivate", methods=["POST"], endpoint="api_schedules_deactivate")
    @api_route(*_EDITORS)
    def deactivate_schedule(schedule_id: int):
        principal = current_principal()
        service.deactivate(current_role=principal.role, principal_id=principal.user_id, schedule_id=schedule_id)
        return jsonify({"success": True})

    @app.route("/api/schedule-occurrence", methods=["POST"], endpoint="api_schedule_occurrence")
    @api_route(*_EDITORS)
    def open_occurrence():
        data = json_body()
        occurrence_date = data.get("occurrenceDate")
        result = service.materialize_occurrence(
            current_role=current_principal().role,
            schedule_id=require_positive_id(data.get("scheduleId"), "scheduleId"),
            occurrence_date=parse_iso_date(occurrence_date) if occurrence_date else None,
        )
        return jsonify({"success": True, "data": result})
