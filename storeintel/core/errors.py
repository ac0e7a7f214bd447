"""Error taxonomy for the intelligence engine.

Every error carries a stable ``code`` (used in the JSON error envelope), the
HTTP status it maps to, and whether the caller may safely retry.
"""

from __future__ import annotations


class StoreIntelligenceError(Exception):
    """Base class for all engine errors."""

    code = "store_intelligence_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidParameter(StoreIntelligenceError):
    """A required parameter (the store identifier) is missing."""

    code = "invalid_parameter"
    status_code = 400


class NotFound(StoreIntelligenceError):
    """The requested store does not exist."""

    code = "not_found"
    status_code = 404


class DataSourceError(StoreIntelligenceError):
    """The underlying read failed or timed out.

    The engine never writes, so retrying is always safe.
    """

    code = "data_source_error"
    status_code = 503
    retryable = True


__all__ = ["StoreIntelligenceError", "InvalidParameter", "NotFound", "DataSourceError"]
