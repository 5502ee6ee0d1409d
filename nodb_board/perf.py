# nodb_board/perf.py
import logging
import time
from contextlib import asynccontextmanager

from fastapi import Request

logger = logging.getLogger(__name__)


@asynccontextmanager
async def async_perf_log(operation: str, logger: logging.Logger = logger):
    """Times an async block, logging failures with their elapsed time"""
    start: float = time.perf_counter()
    logger.debug(f"Starting: {operation}")
    try:
        yield
    except BaseException as e:
        elapsed: float = time.perf_counter() - start
        logger.warning(f"Aborted: {operation} after {elapsed:.3f}s - {e!r}")
        raise
    elapsed = time.perf_counter() - start
    logger.info(f"Completed: {operation} in {elapsed:.3f}s")


# Access log for every request
async def performance_middleware(request: Request, call_next):
    start_time: float = time.perf_counter()
    client = request.client.host if request.client else "-"

    try:
        response = await call_next(request)
    except Exception as e:
        elapsed: float = time.perf_counter() - start_time
        logger.error(
            f"{client} {request.method} {request.url.path} "
            f"failed: {e} Time: {elapsed:.3f}s"
        )
        raise

    elapsed = time.perf_counter() - start_time
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    logger.log(
        level,
        f"{client} {request.method} {request.url.path} "
        f"Status: {response.status_code} Time: {elapsed:.3f}s",
    )
    response.headers["X-Process-Time"] = f"{elapsed:.3f}"
    return response
