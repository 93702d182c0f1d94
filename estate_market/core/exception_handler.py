import logging
import traceback

import jwt
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import AppError
from .friendly_msg import get_friendly_message
from .responses import send_error
from .settings import settings

logger = logging.getLogger(__name__)


class AppErrorHandler:
    async def __call__(self, request: Request, exc: AppError):
        logger.warning(
            "[%s] %s %s -> %s: %s",
            exc.kind,
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
        stack = None
        cause = exc.__cause__
        if exc.status_code >= 500 and cause is not None and settings.is_development:
            stack = "".join(
                traceback.format_exception(type(cause), cause, cause.__traceback__)
            )
        return send_error(
            exc.message, status_code=exc.status_code, errors=exc.details, stack=stack
        )


class ValidationErrorHandler:
    async def __call__(self, request: Request, exc: RequestValidationError):

        errors = []

        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part != "body"]
            errors.append(
                {
                    "field": ".".join(loc),
                    "message": str(err.get("msg")),
                    "type": err.get("type"),
                }
            )

        return send_error("Validation failed", status_code=400, errors=errors)


class IntegrityErrorHandler:
    async def __call__(self, request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s: %s", request.url.path, exc.orig)
        return send_error("Duplicate field value entered", status_code=409)


class NoResultFoundHandler:
    async def __call__(self, request: Request, exc: NoResultFound):
        return send_error("Resource not found", status_code=404)


class TokenErrorHandler:
    async def __call__(self, request: Request, exc: jwt.PyJWTError):
        if isinstance(exc, jwt.ExpiredSignatureError):
            return send_error("Token expired", status_code=401)
        return send_error("Invalid token", status_code=401)


class HTTPErrorHandler:
    async def __call__(self, request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        return send_error(message, status_code=exc.status_code)


class UnhandledErrorHandler:
    async def __call__(self, request: Request, exc: Exception):
        logger.exception(
            "Unhandled server error on %s %s", request.method, request.url.path
        )
        if settings.is_production:
            message = get_friendly_message(exc)
        else:
            message = str(exc) or get_friendly_message(exc)
        stack = None
        if settings.is_development:
            stack = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return send_error(message, status_code=500, stack=stack)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, AppErrorHandler())
    app.add_exception_handler(RequestValidationError, ValidationErrorHandler())
    app.add_exception_handler(IntegrityError, IntegrityErrorHandler())
    app.add_exception_handler(NoResultFound, NoResultFoundHandler())
    app.add_exception_handler(jwt.PyJWTError, TokenErrorHandler())
    app.add_exception_handler(StarletteHTTPException, HTTPErrorHandler())
    app.add_exception_handler(Exception, UnhandledErrorHandler())
