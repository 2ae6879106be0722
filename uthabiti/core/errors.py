from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

TECHNICAL_ERROR_MESSAGE = "A technical error occurred. Please try again later."


class ServiceError(ValueError):
    """Base class for failures a service reports back to the caller.

    ``next_view`` names the screen the client should fall back to, mirroring the
    redirect target of a form-post workflow.
    """

    status_code = 400
    code = "bad_request"

    def __init__(self, message: str, *, next_view: str | None = None, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.next_view = next_view
        self.details = details or {}


class ValidationFailure(ServiceError):
    status_code = 422
    code = "validation_error"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class PolicyViolation(ServiceError):
    status_code = 400
    code = "policy_violation"


class AuthenticationFailed(ServiceError):
    status_code = 401
    code = "unauthorized"


class AccessDenied(ServiceError):
    status_code = 403
    code = "forbidden"


def _default_code(status_code: int) -> str:
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        422: "unprocessable_entity",
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
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    payload = {
        "code": code,
        "message": message,
        "data": None,
        "details": _normalize_details(details),
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    details = dict(exc.details)
    if exc.next_view:
        details["next_view"] = exc.next_view
    return _build_response(exc.status_code, exc.code, exc.message, details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _default_code(exc.status_code)
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("message") or _default_message(exc.status_code)
        return _build_response(exc.status_code, detail.get("code") or code, message, detail.get("details"))
    if isinstance(detail, str):
        return _build_response(exc.status_code, code, detail, {"detail": detail})
    return _build_response(exc.status_code, code, _default_message(exc.status_code), detail)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Validation failed"
    if errors:
        first = errors[0] or {}
        loc = first.get("loc") or []
        msg = first.get("msg") or "Validation failed"
        loc_parts = [str(part) for part in loc if part not in {"body", "query", "path"}]
        message = f"{'.'.join(loc_parts)}: {msg}" if loc_parts else str(msg)
    return _build_response(
        status_code=422,
        code="validation_error",
        message=message,
        details={"errors": errors},
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    response = _build_response(
        status_code=429,
        code="rate_limited",
        message=_default_message(429),
        details=getattr(exc, "detail", None),
    )
    headers = getattr(exc, "headers", None)
    if isinstance(headers, dict):
        response.headers.update(headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _build_response(
        status_code=500,
        code="internal_server_error",
        message=TECHNICAL_ERROR_MESSAGE,
        details={},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
