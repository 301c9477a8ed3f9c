from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceType, Grade
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .datetime_utils import parse_optional_date
from .validators import optional_int, require_enum

logger = logging.getLogger(__name__)

ADMIN_SESSION_KEY = "is_admin"

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        payload: dict[str, Any] = {"error": str(error)}
        errors = getattr(error, "errors", None)
        if errors:
            payload["errors"] = errors
        return jsonify(payload), status_for(error)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        logger.warning("%s %s -> %s", request.method, request.path, error.code)
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "서버 오류가 발생했습니다."}), 500


def is_admin() -> bool:
    return bool(session.get(ADMIN_SESSION_KEY))


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_admin():
            raise AuthorizationError("관리자 권한이 필요합니다.")
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def query_int(name: str) -> Optional[int]:
    return optional_int(request.args.get(name), name)


def query_grade(name: str = "grade") -> Optional[Grade]:
    value = request.args.get(name)
    if not value:
        return None
    return require_enum(Grade, value, "유효하지 않은 학년입니다.")


def query_type(name: str = "type") -> Optional[AttendanceType]:
    value = request.args.get(name)
    if not value:
        return None
    return require_enum(AttendanceType, value, "출석 타입은 학년(grade) 또는 부서(department)만 가능합니다.")


def query_date(name: str):
    return parse_optional_date(request.args.get(name))


def query_page(default_limit: int = DEFAULT_PAGE_SIZE) -> tuple[int, int]:
    page = query_int("page")
    limit = query_int("limit")
    page = 1 if page is None else page
    limit = default_limit if limit is None else limit
    if page < 1 or limit < 1:
        raise ValidationError("page와 limit은 1 이상이어야 합니다.")
    return page, limit
