"""
Error taxonomy for the Fleetwatch backend.

Every error carries the HTTP status it maps to and an optional list of
field-level details; the FastAPI handlers in ``fleetwatch.main`` turn them
into ``{"success": false, "error": ..., "details": ..., "timestamp": ...}``.
"""
from typing import Any, Dict, List, Optional


class FleetwatchError(Exception):
    """Base exception for all errors surfaced to API callers"""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        self.message = message
        self.details = details or []
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(FleetwatchError):
    """Bad input shape or range"""

    status_code = 400


class NotFoundError(FleetwatchError):
    """Unknown VIN or alert id"""

    status_code = 404


class ConflictError(FleetwatchError):
    """Duplicate VIN. Reported as 400 to keep the existing client contract."""

    status_code = 400


class UpstreamUnavailable(FleetwatchError):
    """The store failed or could not be reached. The message is generic."""

    status_code = 500


class RateLimitExceeded(FleetwatchError):
    status_code = 429

    def __init__(self, message: str, retry_after: str):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["retryAfter"] = self.retry_after
        return body


class CacheRefreshFailure(FleetwatchError):
    """Raised by a view failing during the background cache warm-up; logged, never returned"""
