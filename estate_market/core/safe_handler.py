import logging
from functools import wraps

import jwt
from fastapi import Request
from sqlalchemy.exc import IntegrityError, NoResultFound

from .errors import AppError
from .friendly_msg import get_friendly_message

logger = logging.getLogger(__name__)

# mapped to a response by core.exception_handler
PASSTHROUGH_ERRORS = (AppError, IntegrityError, NoResultFound, jwt.PyJWTError)


def safe_handler(func):
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request | None = None
        for arg in list(args) + list(kwargs.values()):
            if isinstance(arg, Request):
                request = arg
                break

        try:
            return await func(*args, **kwargs)
        except PASSTHROUGH_ERRORS as e:
            if request:
                client_ip = request.client.host if request.client else "unknown"
                trace_id = request.headers.get("X-Request-ID", "none")
                logger.info(
                    f"[Handled] TraceID={trace_id} | {type(e).__name__} in "
                    f"{func.__name__} | Path: {request.url.path} | Client: {client_ip}"
                )
            raise
        except Exception as e:
            if request:
                client_ip = request.client.host if request.client else "unknown"
                path = request.url.path
                trace_id = request.headers.get("X-Request-ID", "none")
                logger.error(
                    f"[Unhandled Error] TraceID={trace_id} | in {func.__name__} | Path: {path} | "
                    f"Client: {client_ip} | Error: {e}",
                    exc_info=True,
                )
            else:
                logger.error(
                    f"[Unhandled Error] in {func.__name__}: {e}", exc_info=True
                )
            raise AppError.internal(get_friendly_message(e)) from e

    return wrapper
