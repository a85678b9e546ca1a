from fastapi import Request
from typing import Callable

from fleetwatch.exceptions import RateLimitExceeded


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(name: str) -> Callable[[Request], None]:
    """Dependency enforcing the named limit from ``app.state.rate_limiters``.

    When rate limiting is disabled the app carries no limiters and this is a no-op.
    """
    def check(request: Request):
        limiters = getattr(request.app.state, "rate_limiters", None)
        if not limiters:
            return
        limiter = limiters[name]
        if limiter.is_rate_limited(_client_key(request)):
            raise RateLimitExceeded(limiter.message, limiter.retry_after)

    return check
