"""Request correlation middleware."""

from __future__ import annotations

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storeintel.core.logging import get_logger, set_request_id

log = get_logger("storeintel.web")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Set request_id for each incoming request and echo it back.

    A caller-supplied ``X-Request-ID`` is reused so logs line up across
    services; otherwise a fresh one is generated.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = set_request_id(request.headers.get(REQUEST_ID_HEADER) or None)

        log.debug(
            "request_received",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            },
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response


__all__ = ["RequestIdMiddleware", "REQUEST_ID_HEADER"]
