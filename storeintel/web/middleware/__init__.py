"""FastAPI middleware."""

from __future__ import annotations

from storeintel.web.middleware.prometheus import PrometheusMiddleware
from storeintel.web.middleware.request_id import RequestIdMiddleware

__all__ = ["PrometheusMiddleware", "RequestIdMiddleware"]
