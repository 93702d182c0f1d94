import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from .friendly_msg import get_friendly_message
from .responses import send_error

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Last line of defence for errors raised outside route handlers."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(f"Unhandled server error: {e}")
            return send_error(get_friendly_message(e), status_code=500)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
