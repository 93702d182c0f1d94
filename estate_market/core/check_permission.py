from estate_market.models.enums import UserRole

from .errors import AppError


class CheckRolePermission:
    async def check_admin(self, current_user):
        if current_user.role != UserRole.ADMIN:
            raise AppError.forbidden("Access denied.")

    async def check_roles(self, current_user, *roles: UserRole):
        if current_user.role not in roles:
            raise AppError.forbidden(
                "Access denied. Requires role: " + ", ".join(r.value for r in roles)
            )

    async def check_landlord_or_admin(self, current_user):
        await self.check_roles(current_user, UserRole.LANDLORD, UserRole.ADMIN)

    async def check_staff(self, current_user):
        await self.check_roles(current_user, UserRole.ADMIN, UserRole.SUPPORT)

    def is_staff(self, current_user) -> bool:
        return current_user.role in (UserRole.ADMIN, UserRole.SUPPORT)

    async def check_owner_or_admin(self, current_user, owner_id):
        if current_user.role != UserRole.ADMIN and current_user.id != owner_id:
            raise AppError.forbidden("You do not have permission for this resource")
