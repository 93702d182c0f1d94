import uuid
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError

from estate_market.models.enums import MaintenancePriority, MaintenanceStatus
from estate_market.models.models import MaintenanceRequest, Property

PRIORITY_RANK = case(
    (MaintenanceRequest.priority == MaintenancePriority.HIGH, 3),
    (MaintenanceRequest.priority == MaintenancePriority.MEDIUM, 2),
    else_=1,
)


class MaintenanceRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(
        self, request_id: uuid.UUID, *, fresh: bool = False
    ) -> Optional[MaintenanceRequest]:
        stmt = select(MaintenanceRequest).where(MaintenanceRequest.id == request_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self.db.add(request)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(request.id, fresh=True)

    async def save(self, request: MaintenanceRequest) -> MaintenanceRequest:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(request.id, fresh=True)

    def scoped(self, tenant_id=None, landlord_id=None) -> list:
        criteria = []
        if tenant_id is not None:
            criteria.append(MaintenanceRequest.tenant_id == tenant_id)
        if landlord_id is not None:
            owned = select(Property.id).where(Property.owner_id == landlord_id)
            criteria.append(MaintenanceRequest.property_id.in_(owned))
        return criteria

    async def search(
        self,
        *,
        criteria: list,
        sort_by: str = "createdAt",
        ascending: bool = False,
        offset: int = 0,
        limit: int = 12,
    ) -> tuple[list[MaintenanceRequest], int]:
        columns = {
            "createdAt": MaintenanceRequest.created_at,
            "reportedAt": MaintenanceRequest.reported_at,
            "priority": PRIORITY_RANK,
        }
        column = columns.get(sort_by, MaintenanceRequest.created_at)
        ordering = column.asc() if ascending else column.desc()

        total = await self.db.scalar(
            select(func.count()).select_from(MaintenanceRequest).where(*criteria)
        )
        result = await self.db.execute(
            select(MaintenanceRequest)
            .where(*criteria)
            .order_by(ordering, MaintenanceRequest.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def recent(
        self, *, limit: int = 5, tenant_id=None, landlord_id=None
    ) -> list[MaintenanceRequest]:
        result = await self.db.execute(
            select(MaintenanceRequest)
            .where(*self.scoped(tenant_id, landlord_id))
            .order_by(MaintenanceRequest.created_at.desc(), MaintenanceRequest.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def pending_queue(self, limit: int = 20) -> list[MaintenanceRequest]:
        result = await self.db.execute(
            select(MaintenanceRequest)
            .where(MaintenanceRequest.status == MaintenanceStatus.PENDING)
            .order_by(MaintenanceRequest.reported_at.asc(), MaintenanceRequest.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_pending(self, *, tenant_id=None, landlord_id=None) -> int:
        total = await self.db.scalar(
            select(func.count())
            .select_from(MaintenanceRequest)
            .where(
                MaintenanceRequest.status == MaintenanceStatus.PENDING,
                *self.scoped(tenant_id, landlord_id),
            )
        )
        return total or 0

    async def count_pending_by_priority(self) -> dict[str, int]:
        result = await self.db.execute(
            select(MaintenanceRequest.priority, func.count())
            .where(MaintenanceRequest.status == MaintenanceStatus.PENDING)
            .group_by(MaintenanceRequest.priority)
        )
        counts = {p.value: 0 for p in MaintenancePriority}
        counts.update({p.value: count for p, count in result.all()})
        return counts
