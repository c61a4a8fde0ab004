import logging
import time
from typing import Callable

from fastapi import Request

from campus_rbac.core.security import BRANCH_HEADER

logger = logging.getLogger(__name__)


async def request_logging_middleware(request: Request, call_next: Callable):
    """Logs method, path, branch, status and duration of every request."""
    start_time = time.perf_counter()

    response = await call_next(request)

    duration = time.perf_counter() - start_time
    logger.info(
        "[%s] %s branch=%s - %s - %.3fs",
        request.method, request.url.path, request.headers.get(BRANCH_HEADER, "-"), response.status_code, duration,
    )
    if response.status_code == 403:
        logger.warning("Access denied: %s %s", request.method, request.url.path)

    return response
