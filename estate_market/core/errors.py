from typing import Any


class AppError(Exception):
    """The one domain error type; carries the HTTP status it maps to."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        *,
        kind: str = "bad_request",
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind
        self.details = details

    def __repr__(self):
        return f"<AppError {self.status_code} {self.kind}: {self.message}>"

    @classmethod
    def bad_request(cls, message: str, details: Any = None) -> "AppError":
        return cls(message, 400, kind="bad_request", details=details)

    @classmethod
    def unauthorized(cls, message: str = "Not authenticated") -> "AppError":
        return cls(message, 401, kind="unauthorized")

    @classmethod
    def forbidden(cls, message: str = "Access denied") -> "AppError":
        return cls(message, 403, kind="forbidden")

    @classmethod
    def not_found(cls, message: str = "Resource not found") -> "AppError":
        return cls(message, 404, kind="not_found")

    @classmethod
    def conflict(cls, message: str, details: Any = None) -> "AppError":
        return cls(message, 409, kind="conflict", details=details)

    @classmethod
    def payment_gateway(cls, message: str = "Payment provider error") -> "AppError":
        return cls(message, 502, kind="payment_gateway")

    @classmethod
    def upstream(cls, message: str) -> "AppError":
        return cls(message, 502, kind="upstream")

    @classmethod
    def internal(cls, message: str) -> "AppError":
        return cls(message, 500, kind="internal")
