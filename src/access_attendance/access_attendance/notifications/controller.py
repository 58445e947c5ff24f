from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify

from ..common.web import api_route, current_principal, json_body, query_int
from ..container import Container
from ..core.constants import DEFAULT_NOTIFICATION_LIMIT, NOTIFICATION_MAX_AGE_HOURS
from ..core.enums import Role
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    sink = container.notification_sink
    clock = container.clock

    def _purge_stale() -> None:
        sink.purge_older_than(clock.now() - timedelta(hours=NOTIFICATION_MAX_AGE_HOURS))

    @app.route("/api/notifications", methods=["GET"], endpoint="api_notifications")
    @api_route(Role.INSTRUCTOR)
    def recent():
        _purge_stale()
        items = sink.recent(current_principal().user_id, limit=query_int("limit", DEFAULT_NOTIFICATION_LIMIT))
        return jsonify({"success": True, "data": [n.to_dict() for n in items]})

    @app.route("/api/notifications/mark-read", methods=["POST"], endpoint="api_notifications_mark_read")
    @api_route(Role.INSTRUCTOR)
    def mark_read():
        ids = json_body().get("notificationIds")
        if not isinstance(ids, list) or not ids:
            raise ValidationError("notificationIds must be a non-empty list")
        removed = sink.mark_read(current_principal().user_id, [str(i) for i in ids])
        return jsonify({"success": True, "removed": removed})

    @app.route("/api/notifications/stats", methods=["GET"], endpoint="api_notifications_stats")
    @api_route(Role.INSTRUCTOR)
    def stats():
        _purge_stale()
        return jsonify({"success": True, "data": sink.stats(current_principal().user_id, now=clock.now())})
