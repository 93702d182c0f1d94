import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from estate_market.models.models import Activity


class ActivityRepo:
    """Append-only; entries are never updated or deleted."""

    def __init__(self, db):
        self.db = db

    async def add(self, activity: Activity) -> Activity:
        self.db.add(activity)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return activity

    async def search(
        self, criteria: list, offset: int = 0, limit: int = 12
    ) -> tuple[list[Activity], int]:
        total = await self.db.scalar(
            select(func.count()).select_from(Activity).where(*criteria)
        )
        result = await self.db.execute(
            select(Activity)
            .where(*criteria)
            .order_by(Activity.created_at.desc(), Activity.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def recent(self, limit: int = 10, user_id: uuid.UUID | None = None):
        criteria = [Activity.user_id == user_id] if user_id is not None else []
        items, _ = await self.search(criteria, 0, limit)
        return items
