from __future__ import annotations

import logging
import traceback
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.settings import settings

logger = logging.getLogger(__name__)


def _default_code(status_code: int) -> str:
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        413: "payload_too_large",
        429: "rate_limited",
    }
    return mapping.get(status_code, "http_error")


def _default_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Request failed"


def _normalize_details(details: Any) -> dict:
    if details is None:
        return {}
    if isinstance(details, dict):
        return details
    if isinstance(details, list):
        return {"errors": details}
    return {"detail": str(details)}


def _build_response(
    status_code: int,
    code: str,
    error: str,
    details: Any | None = None,
    message: str | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {
        "error": error,
        "code": code,
        "details": _normalize_details(details),
    }
    if message:
        payload["message"] = message
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def _parse_http_exception_detail(detail: Any, status_code: int) -> tuple[str, str, dict, str | None]:
    code = _default_code(status_code)
    error = _default_message(status_code)

    if isinstance(detail, dict):
        code = detail.get("code") or code
        error = detail.get("error") or detail.get("detail") or error
        message = detail.get("message")
        details = _normalize_details(detail.get("details"))
        return code, error, details, message

    if isinstance(detail, list):
        return code, error, {"errors": detail}, None

    if isinstance(detail, str):
        return code, detail, {}, None

    return code, error, {"detail": str(detail)}, None


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, error, details, message = _parse_http_exception_detail(exc.detail, exc.status_code)
    response = _build_response(exc.status_code, code, error, details, message)
    headers = getattr(exc, "headers", None)
    if headers:
        response.headers.update(headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    error = "Validation failed"
    if errors:
        first = errors[0] or {}
        loc = first.get("loc") or []
        msg = first.get("msg") or "Validation failed"
        msg = msg.removeprefix("Value error, ")
        # Drop the request section (body/query/path) from the location
        loc_parts = [str(part) for part in loc if part not in {"body", "query", "path"}]
        if loc_parts:
            error = f"{'.'.join(loc_parts)}: {msg}"
        else:
            error = str(msg)
    return _build_response(
        status_code=400,
        code="validation_error",
        error=error,
        details={"errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    details: dict[str, Any] = {}
    if not settings.is_production:
        details["trace"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return _build_response(
        status_code=500,
        code="internal_server_error",
        error="Internal server error",
        details=details,
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    details = getattr(exc, "detail", None)
    response = _build_response(
        status_code=429,
        code="rate_limited",
        error=_default_message(429),
        details=details,
    )
    headers = getattr(exc, "headers", None)
    if isinstance(headers, dict):
        response.headers.update(headers)
    return response


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
