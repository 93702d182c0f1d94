import uuid
from typing import Optional

from sqlalchemy import distinct, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from estate_market.models.enums import PropertyStatus
from estate_market.models.models import Property, PropertyAmenity


class PropertyRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(
        self, property_id: uuid.UUID, *, fresh: bool = False
    ) -> Optional[Property]:
        stmt = select(Property).where(Property.id == property_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, prop: Property) -> Property:
        self.db.add(prop)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(prop.id, fresh=True)

    async def save(self, prop: Property) -> Property:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(prop.id, fresh=True)

    async def delete(self, prop: Property) -> None:
        await self.db.delete(prop)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def increment_views(self, property_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            update(Property)
            .where(Property.id == property_id)
            .values(views=Property.views + 1)
        )
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return result.rowcount > 0

    async def search(
        self, criteria: list, order_by: list, offset: int, limit: int
    ) -> tuple[list[Property], int]:
        total = await self.db.scalar(
            select(func.count()).select_from(Property).where(*criteria)
        )
        result = await self.db.execute(
            select(Property)
            .where(*criteria)
            .order_by(*order_by)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def search_all(self, criteria: list, order_by: list) -> list[Property]:
        result = await self.db.execute(
            select(Property).where(*criteria).order_by(*order_by)
        )
        return list(result.scalars().all())

    async def featured(self, limit: int) -> list[Property]:
        result = await self.db.execute(
            select(Property)
            .where(
                Property.featured.is_(True),
                Property.status == PropertyStatus.AVAILABLE,
            )
            .order_by(Property.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def by_city(self, city: str, limit: int) -> list[Property]:
        result = await self.db.execute(
            select(Property)
            .where(
                Property.city.icontains(city, autoescape=True),
                Property.status == PropertyStatus.AVAILABLE,
            )
            .order_by(Property.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def by_owner(
        self, owner_id: uuid.UUID, offset: int, limit: int
    ) -> tuple[list[Property], int]:
        return await self.search(
            [Property.owner_id == owner_id],
            [Property.created_at.desc(), Property.id],
            offset,
            limit,
        )

    async def owned_ids(self, owner_id: uuid.UUID) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(Property.id).where(Property.owner_id == owner_id)
        )
        return list(result.scalars().all())

    async def count_by_status(self, owner_id: uuid.UUID | None = None) -> dict[str, int]:
        stmt = select(Property.status, func.count()).group_by(Property.status)
        if owner_id is not None:
            stmt = stmt.where(Property.owner_id == owner_id)
        result = await self.db.execute(stmt)
        return {status.value: count for status, count in result.all()}

    async def count_by_type(self, owner_id: uuid.UUID | None = None) -> dict[str, int]:
        stmt = select(Property.property_type, func.count()).group_by(
            Property.property_type
        )
        if owner_id is not None:
            stmt = stmt.where(Property.owner_id == owner_id)
        result = await self.db.execute(stmt)
        return {ptype.value: count for ptype, count in result.all()}

    async def _distinct(self, column) -> list:
        result = await self.db.execute(
            select(distinct(column))
            .where(Property.status == PropertyStatus.AVAILABLE, column.is_not(None))
            .order_by(column)
        )
        return list(result.scalars().all())

    async def facets(self) -> dict:
        amenities = await self.db.execute(
            select(distinct(PropertyAmenity.name))
            .join(Property, Property.id == PropertyAmenity.property_id)
            .where(Property.status == PropertyStatus.AVAILABLE)
            .order_by(PropertyAmenity.name)
        )
        return {
            "cities": await self._distinct(Property.city),
            "neighborhoods": await self._distinct(Property.neighborhood),
            "property_types": [
                p.value for p in await self._distinct(Property.property_type)
            ],
            "listing_types": [
                lt.value for lt in await self._distinct(Property.listing_type)
            ],
            "bedroom_options": await self._distinct(Property.bedrooms),
            "amenities": list(amenities.scalars().all()),
        }
