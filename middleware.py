import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        method = request.method
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            # traceback is logged by the app's error handler
            logger.info("%s %s 500 %.1fms", method, path, (time.time() - start_time) * 1000)
            raise

        logger.info(
            "%s %s %d %.1fms",
            method,
            path,
            response.status_code,
            (time.time() - start_time) * 1000,
        )
        return response
