from fastapi import Request
import logging
import time

logger = logging.getLogger(__name__)


async def request_logging_middleware(request: Request, call_next):
    """Log method, path, status and elapsed time for every request"""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response
