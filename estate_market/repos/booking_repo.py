import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import extract, func, select
from sqlalchemy.exc import SQLAlchemyError

from estate_market.models.enums import BookingStatus, PaymentStatus
from estate_market.models.models import Booking


class BookingRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(
        self, booking_id: uuid.UUID, *, fresh: bool = False
    ) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id)
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_session_id(self, session_id: str) -> Optional[Booking]:
        result = await self.db.execute(
            select(Booking).where(Booking.checkout_session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def create(self, booking: Booking) -> Booking:
        self.db.add(booking)
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(booking.id, fresh=True)

    async def save(self, booking: Booking) -> Booking:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return await self.get_by_id(booking.id, fresh=True)

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        *,
        as_landlord: bool = False,
        status: BookingStatus | None = None,
        offset: int = 0,
        limit: int = 12,
    ) -> tuple[list[Booking], int]:
        owner_column = Booking.landlord_id if as_landlord else Booking.tenant_id
        criteria = [owner_column == user_id]
        if status is not None:
            criteria.append(Booking.status == status)

        total = await self.db.scalar(
            select(func.count()).select_from(Booking).where(*criteria)
        )
        result = await self.db.execute(
            select(Booking)
            .where(*criteria)
            .order_by(Booking.created_at.desc(), Booking.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def property_held_by_other(
        self, property_id: uuid.UUID, booking_id: uuid.UUID
    ) -> bool:
        held = await self.db.scalar(
            select(func.count())
            .select_from(Booking)
            .where(
                Booking.property_id == property_id,
                Booking.id != booking_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
        )
        return bool(held)

    async def count_by_status(
        self,
        *,
        tenant_id: uuid.UUID | None = None,
        landlord_id: uuid.UUID | None = None,
    ) -> dict[str, int]:
        stmt = select(Booking.status, func.count()).group_by(Booking.status)
        if tenant_id is not None:
            stmt = stmt.where(Booking.tenant_id == tenant_id)
        if landlord_id is not None:
            stmt = stmt.where(Booking.landlord_id == landlord_id)
        result = await self.db.execute(stmt)
        return {status.value: count for status, count in result.all()}

    async def revenue_by_month(
        self,
        start: datetime,
        end: datetime,
        landlord_id: uuid.UUID | None = None,
    ) -> list[tuple[int, int, Decimal, int]]:
        """(year, month, revenue, bookings) for confirmed, paid bookings
        created in ``[start, end)``."""
        year = extract("year", Booking.created_at)
        month = extract("month", Booking.created_at)
        stmt = (
            select(
                year,
                month,
                func.coalesce(func.sum(Booking.total_amount), 0),
                func.count(Booking.id),
            )
            .where(
                Booking.status == BookingStatus.CONFIRMED,
                Booking.payment_status == PaymentStatus.PAID,
                Booking.created_at >= start,
                Booking.created_at < end,
            )
            .group_by(year, month)
            .order_by(year, month)
        )
        if landlord_id is not None:
            stmt = stmt.where(Booking.landlord_id == landlord_id)
        result = await self.db.execute(stmt)
        return [
            (int(y), int(m), Decimal(str(total or 0)), int(count))
            for y, m, total, count in result.all()
        ]
