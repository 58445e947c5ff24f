from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_text, require_positive_id
from ..common.web import api_route, json_body, query_date, query_int
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_PAGE_SIZE
from ..core.enums import Role

_GATE_ROLES = (Role.ADMIN, Role.SECURITY)


def register(app: Flask, container: Container) -> None:
    tracker = container.access_tracker
    clock = container.clock

    @app.route("/api/access/check-in", methods=["POST"], endpoint="api_access_check_in")
    @api_route(*_GATE_ROLES)
    def check_in():
        data = json_body()
        person_id = require_positive_id(data.get("personId"), "personId")
        record = tracker.open_session(person_id, clock.parse(data.get("at")))
        return jsonify({"success": True, "data": record.to_dict()}), 201

    @app.route("/api/access/check-out", methods=["POST"], endpoint="api_access_check_out")
    @api_route(*_GATE_ROLES)
    def check_out():
        data = json_body()
        person_id = require_positive_id(data.get("personId"), "personId")
        record = tracker.close_session(person_id, clock.parse(data.get("at")))
        return jsonify({"success": True, "data": record.to_dict()})

    @app.route("/api/access/force-close", methods=["POST"], endpoint="api_access_force_close")
    @api_route(Role.ADMIN)
    def force_close():
        data = json_body()
        person_id = require_positive_id(data.get("personId"), "personId")
        record = tracker.force_close(person_id, clock.parse(data.get("at")), reason=optional_text(data.get("reason")))
        return jsonify({"success": True, "data": record.to_dict()})

    @app.route("/api/access/current", methods=["GET"], endpoint="api_access_current")
    @api_route(*_GATE_ROLES)
    def current():
        return jsonify({"success": True, "data": tracker.current_occupancy()})

    @app.route("/api/access/history", methods=["GET"], endpoint="api_access_history")
    @api_route(*_GATE_ROLES)
    def history():
        person_id = request.args.get("personId")
        result = tracker.history(
            page=query_int("page", 1),
            limit=query_int("limit", DEFAULT_HISTORY_PAGE_SIZE),
            on_date=query_date("date"),
            person_id=require_positive_id(person_id, "personId") if person_id else None,
        )
        return jsonify({"success": True, **result})

    @app.route("/api/access/stats", methods=["GET"], endpoint="api_access_stats")
    @api_route(*_GATE_ROLES)
    def stats():
        on_date = query_date("date") or clock.today()
        return jsonify({"success": True, "data": tracker.stats(on_date)})
