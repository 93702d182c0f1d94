import uuid
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from estate_market.models.enums import UserRole
from estate_market.models.models import User


class UserRepo:
    def __init__(self, db):
        self.db = db

    async def by_id(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        email_payload = email.strip().lower()
        result = await self.db.execute(select(User).where(User.email == email_payload))
        return result.scalar_one_or_none()

    async def get_by_verification_digest(self, digest: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.email_verification_token == digest)
        )
        return result.scalars().first()

    async def get_by_reset_digest(self, digest: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.password_reset_token == digest)
        )
        return result.scalars().first()

    async def create(self, user: User) -> User:
        self.db.add(user)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return user

    async def save(self, user: User) -> User:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return user

    async def list_users(
        self,
        *,
        role: UserRole | None = None,
        search: str | None = None,
        offset: int = 0,
        limit: int = 12,
    ) -> tuple[list[User], int]:
        criteria = []
        if role is not None:
            criteria.append(User.role == role)
        if search:
            criteria.append(
                or_(
                    User.name.icontains(search, autoescape=True),
                    User.email.icontains(search, autoescape=True),
                )
            )

        total = await self.db.scalar(
            select(func.count()).select_from(User).where(*criteria)
        )
        result = await self.db.execute(
            select(User)
            .where(*criteria)
            .order_by(User.created_at.desc(), User.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def count_by_role(self) -> dict[str, int]:
        result = await self.db.execute(
            select(User.role, func.count()).group_by(User.role)
        )
        return {role.value: count for role, count in result.all()}
