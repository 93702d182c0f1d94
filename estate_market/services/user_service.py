import logging
import uuid

from estate_market.core.check_permission import CheckRolePermission
from estate_market.core.errors import AppError
from estate_market.core.mapper import ORMMapper
from estate_market.core.paginate import PaginatePage
from estate_market.models.enums import UserRole
from estate_market.repos.user_repo import UserRepo
from estate_market.schemas.schema import UserOut
from estate_market.services.property_filters import parse_enum

logger = logging.getLogger(__name__)

ADMIN_ONLY_FIELDS = ("role", "is_active")


class UserService:
    def __init__(self, db):
        self.repo: UserRepo = UserRepo(db)
        self.paginate: PaginatePage = PaginatePage()
        self.permission: CheckRolePermission = CheckRolePermission()

    async def list_users(self, current_user, params) -> tuple[list[UserOut], dict]:
        await self.permission.check_staff(current_user)

        page, limit = self.paginate.clamp(params.get("page"), params.get("limit"))
        search = (params.get("search") or "").strip() or None
        items, total = await self.repo.list_users(
            role=parse_enum(UserRole, params.get("role")),
            search=search,
            offset=self.paginate.offset(page, limit),
            limit=limit,
        )
        return ORMMapper.many(items, UserOut), self.paginate.meta(total, page, limit)

    async def get_user(self, user_id: uuid.UUID) -> UserOut:
        user = await self.repo.by_id(user_id)
        if not user:
            raise AppError.not_found("User not found")
        return ORMMapper.one(user, UserOut)

    async def update_user(self, current_user, user_id: uuid.UUID, data) -> UserOut:
        is_admin = current_user.role == UserRole.ADMIN
        if current_user.id != user_id and not is_admin:
            raise AppError.forbidden("You can only update your own profile")

        user = await self.repo.by_id(user_id)
        if not user:
            raise AppError.not_found("User not found")

        changes = data.model_dump(exclude_unset=True)
        if not is_admin and any(field in changes for field in ADMIN_ONLY_FIELDS):
            raise AppError.forbidden("Only an administrator can change role or status")

        if changes.get("name"):
            user.name = changes["name"].strip()
        if "phone" in changes:
            user.phone = changes["phone"]
        if "avatar" in changes:
            user.avatar = str(changes["avatar"]) if changes["avatar"] else None
        if changes.get("role") is not None:
            user.role = changes["role"]
        if changes.get("is_active") is not None:
            user.is_active = changes["is_active"]
            if not user.is_active:
                user.refresh_token = None

        await self.repo.save(user)
        logger.info(f"User {user.id} updated by {current_user.id}")
        return ORMMapper.one(user, UserOut)
