from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.models.models import User

from .database import get_db_async
from .errors import AppError
from .validators import decode_http_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def jwt_protect(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
):
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AppError.unauthorized("Not authenticated")
    return decode_http_access_token(credentials.credentials)


async def get_current_user(
    user_id=Depends(jwt_protect), db: AsyncSession = Depends(get_db_async)
) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalars().first()

    if not user:
        raise AppError.unauthorized("User no longer exists")
    if not user.is_active:
        raise AppError.forbidden("Account is deactivated")

    return user
