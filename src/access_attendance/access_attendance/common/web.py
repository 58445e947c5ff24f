from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import g, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, DomainError, NotFoundError, ValidationError
from .app_logger import get_logger
from .datetime_utils import parse_iso_date

logger = get_logger("http")

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: Role


def error_response(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 500


def api_route(*roles: Role):
    """JSON endpoint guard.

    Requires a principal in the session (401 otherwise) holding one of
    ``roles`` when given (403 otherwise), and maps domain errors to JSON.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return error_response("Authentication required", 401)
            try:
                role = Role(str(session.get("role") or "").lower())
            except ValueError:
                return error_response("Unknown role", 403)
            if roles and role not in roles:
                return error_response("You are not allowed to perform this action", 403)

            g.principal = Principal(user_id=int(session["user_id"]), role=role)
            try:
                return view(*args, **kwargs)
            except DomainError as e:
                status = status_for(e)
                if status == 500:
                    logger.exception("Unhandled domain error on %s", request.path)
                    return error_response("Internal error", 500)
                return error_response(str(e), status)
            except Exception:
                logger.exception("Unexpected error on %s", request.path)
                return error_response("Internal error", 500)

        return wrapper

    return decorator


def current_principal() -> Principal:
    return g.principal


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def query_date(name: str = "date") -> Optional[date]:
    value = request.args.get(name)
    return parse_iso_date(value) if value else None


def query_int(name: str, default: int) -> int:
    value: Any = request.args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
