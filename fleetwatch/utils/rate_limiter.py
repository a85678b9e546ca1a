import time
from collections import defaultdict
from typing import Callable, Dict, Optional


class RateLimiter:
    def __init__(self, max_requests: int = 500, window: int = 900, message: str = "Too many requests from this IP",
                 retry_after: str = "15 minutes", clock: Callable[[], float] = time.time):
        self.max_requests = max_requests
        self.window = window
        self.message = message
        self.retry_after = retry_after
        self._clock = clock
        self.requests = defaultdict(list)

    def is_rate_limited(self, key: str) -> bool:
        now = self._clock()
        window_start = now - self.window

        # Clean old requests
        self.requests[key] = [req_time for req_time in self.requests[key] if req_time > window_start]

        if len(self.requests[key]) >= self.max_requests:
            return True

        self.requests[key].append(now)
        return False


# name -> (max requests, window seconds, message, retry after)
RATE_LIMITS = {
    "general": (500, 15 * 60, "Too many requests from this IP", "15 minutes"),
    "read": (200, 60, "Too many read requests from this IP", "1 minute"),
    "create": (20, 5 * 60, "Too many create requests from this IP", "5 minutes"),
    "update": (30, 5 * 60, "Too many update requests from this IP", "5 minutes"),
    "delete": (5, 10 * 60, "Too many delete requests from this IP", "10 minutes"),
    "heavy": (10, 10 * 60, "Too many heavy operations from this IP", "10 minutes"),
    "health": (1, 60, "Too many health check requests from this IP", "1 minute"),
}


def build_rate_limiters(clock: Optional[Callable[[], float]] = None) -> Dict[str, RateLimiter]:
    """One limiter per named policy, owned by a single app instance"""
    limiters = {}
    for name, (max_requests, window, message, retry_after) in RATE_LIMITS.items():
        limiters[name] = RateLimiter(max_requests, window, message, retry_after, clock=clock or time.time)
    return limiters
