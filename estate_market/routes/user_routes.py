import uuid

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.core.database import get_db_async
from estate_market.core.get_current_user import get_current_user
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.models.models import User
from estate_market.schemas.schema import UserUpdateSchema
from estate_market.services.user_service import UserService

router = APIRouter(tags=["Users"])


@cbv(router)
class UserRoutes:
    @router.get("/")
    @safe_handler
    async def list_users(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        users, meta = await UserService(db).list_users(
            current_user, request.query_params
        )
        return send_response(users, message="Users retrieved", meta=meta)

    @router.get("/{user_id}")
    @safe_handler
    async def get_user(
        self,
        request: Request,
        user_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        user = await UserService(db).get_user(user_id)
        return send_response(user, message="User retrieved")

    @router.put("/{user_id}")
    @safe_handler
    async def update_user(
        self,
        request: Request,
        user_id: uuid.UUID,
        data: UserUpdateSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        user = await UserService(db).update_user(current_user, user_id, data)
        return send_response(user, message="User updated successfully")
