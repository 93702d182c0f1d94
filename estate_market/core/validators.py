import uuid
from datetime import timedelta

import jwt

from .date_helper import utcnow
from .errors import AppError
from .settings import settings

ACCESS = "access"
REFRESH = "refresh"


def _secret_for(token_type: str) -> str:
    if token_type == REFRESH:
        return settings.JWT_REFRESH_SECRET_KEY
    return settings.JWT_SECRET_KEY


def encode_token(user, token_type: str = ACCESS) -> str:
    now = utcnow()
    if token_type == REFRESH:
        exp = now + timedelta(days=settings.REFRESH_EXPIRE_DAYS)
    else:
        exp = now + timedelta(minutes=settings.ACCESS_EXPIRE_MINUTES)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "type": token_type,
        # distinguishes two tokens minted for the same user in the same second
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": exp,
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.ALGORITHM)


def decode_token(token: str, token_type: str = ACCESS) -> dict:
    """Verify signature, expiry and token type.

    PyJWT errors propagate and are mapped to 401 by the exception handlers.
    """
    payload = jwt.decode(
        token, _secret_for(token_type), algorithms=[settings.ALGORITHM]
    )
    if payload.get("type") != token_type:
        raise AppError.unauthorized("Invalid token type")
    return payload


def decode_http_access_token(token: str) -> uuid.UUID:
    payload = decode_token(token, ACCESS)
    user_id = payload.get("sub")
    if not user_id:
        raise AppError.unauthorized("Token missing user ID")
    try:
        return uuid.UUID(user_id)
    except ValueError:
        raise AppError.unauthorized("Invalid user ID format in token")


def access_expiry_label() -> str:
    return f"{settings.ACCESS_EXPIRE_MINUTES}m"
