"""Prometheus metrics middleware for FastAPI."""

from __future__ import annotations

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storeintel.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect request count, latency and concurrency per endpoint."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        endpoint = normalize_path(request.url.path)

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - start_time
            )
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()


def normalize_path(path: str) -> str:
    """Replace id-like path segments with ``{id}`` to bound label cardinality.

    Examples:
        /api/v1/stores/42/summary -> /api/v1/stores/{id}/summary
        /api/v1/stock/summary?store_id=s1 -> /api/v1/stock/summary

    """
    path = path.split("?")[0]
    return "/".join(
        "{id}" if part and (part.isdigit() or _UUID_RE.match(part)) else part
        for part in path.split("/")
    )
