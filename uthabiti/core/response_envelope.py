from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

_SKIPPED_HEADERS = {"content-length", "content-type"}


def _success_code(status_code: int) -> str:
    return {200: "ok", 201: "created", 202: "accepted"}.get(status_code, "ok")


def _success_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Success"


def flash(data: Any = None, *, message: str, next_view: str | None = None, status_code: int = 200) -> dict[str, Any]:
    """Build an already-enveloped success payload carrying a user-facing message.

    Operations that used to answer with a redirect plus a flash message return
    this instead: ``message`` is the flash text and ``details.next_view`` the
    screen the client should show next.
    """
    details: dict[str, Any] = {}
    if next_view:
        details["next_view"] = next_view
    return {
        "code": _success_code(status_code),
        "message": message,
        "data": jsonable_encoder(data),
        "details": details,
    }


def _is_enveloped(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    return "code" in payload and "message" in payload and ("data" in payload or "details" in payload)


def _copy_headers(source: Response, target: Response) -> Response:
    for key, value in source.headers.items():
        if key.lower() in _SKIPPED_HEADERS:
            continue
        target.headers[key] = value
    return target


class ResponseEnvelopeMiddleware(BaseHTTPMiddleware):
    """Wrap plain 2xx JSON bodies in the ``{code, message, data, details}`` envelope."""

    async def dispatch(self, request, call_next) -> Response:
        response = await call_next(request)
        if not 200 <= response.status_code < 300:
            return response

        if response.status_code == 204:
            envelope = {"code": "ok", "message": _success_message(200), "data": None, "details": {}}
            return _copy_headers(response, JSONResponse(status_code=200, content=envelope))

        if response.headers.get("content-type", "").split(";")[0] != "application/json":
            return response

        body = b""
        async for chunk in response.body_iterator:
            body += chunk
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            return _copy_headers(response, Response(content=body, status_code=response.status_code))

        if _is_enveloped(payload):
            payload.setdefault("data", None)
            payload.setdefault("details", {})
            content = payload
        else:
            content = {
                "code": _success_code(response.status_code),
                "message": _success_message(response.status_code),
                "data": payload,
                "details": {},
            }
        return _copy_headers(response, JSONResponse(status_code=response.status_code, content=content))


def register_response_envelope(app) -> None:
    app.add_middleware(ResponseEnvelopeMiddleware)
