import logging
import math
from datetime import timedelta
from decimal import Decimal

from estate_market.core.check_permission import CheckRolePermission
from estate_market.core.date_helper import utcnow, year_bounds
from estate_market.core.errors import AppError
from estate_market.core.mapper import ORMMapper
from estate_market.models.enums import (
    BookingStatus,
    PropertyStatus,
    PropertyTypes,
    UserRole,
)
from estate_market.repos.activity_repo import ActivityRepo
from estate_market.repos.booking_repo import BookingRepo
from estate_market.repos.maintenance_repo import MaintenanceRepo
from estate_market.repos.property_repo import PropertyRepo
from estate_market.repos.user_repo import UserRepo
from estate_market.schemas.schema import ActivityOut, MaintenanceOut
from estate_market.services.property_filters import parse_date, parse_int

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10
RECENT_MAINTENANCE_LIMIT = 5
SUPPORT_QUEUE_LIMIT = 20


def occupancy_rate(rented: int, total: int) -> int:
    if not total:
        return 0
    return math.floor(rented / total * 100 + 0.5)


def _with_zeros(counts: dict[str, int], members) -> dict[str, int]:
    result = {member.value: 0 for member in members}
    result.update(counts)
    return result


class DashboardService:
    """Read-only summaries scoped by the caller's role."""

    def __init__(self, db):
        self.properties: PropertyRepo = PropertyRepo(db)
        self.bookings: BookingRepo = BookingRepo(db)
        self.maintenance: MaintenanceRepo = MaintenanceRepo(db)
        self.users: UserRepo = UserRepo(db)
        self.activities: ActivityRepo = ActivityRepo(db)
        self.permission: CheckRolePermission = CheckRolePermission()

    @staticmethod
    def date_range(params):
        """``from``/``to`` (inclusive days); defaults to the current calendar year."""
        start = parse_date(params.get("from"))
        end = parse_date(params.get("to"))
        default_start, default_end = year_bounds(utcnow().year)
        start = start or default_start
        end = end + timedelta(days=1) if end else default_end
        if end <= start:
            raise AppError.bad_request("'to' must not be before 'from'")
        return start, end

    async def _property_summary(self, owner_id=None) -> dict:
        by_status = _with_zeros(
            await self.properties.count_by_status(owner_id), PropertyStatus
        )
        by_type = _with_zeros(
            await self.properties.count_by_type(owner_id), PropertyTypes
        )
        total = sum(by_status.values())
        return {
            "total": total,
            "byStatus": by_status,
            "byType": by_type,
            "occupancyRate": occupancy_rate(
                by_status[PropertyStatus.RENTED.value], total
            ),
        }

    async def _revenue(self, start, end, landlord_id=None) -> dict:
        rows = await self.bookings.revenue_by_month(start, end, landlord_id)
        monthly = [
            {"year": year, "month": month, "revenue": float(total), "bookings": count}
            for year, month, total, count in rows
        ]
        return {
            "from": start,
            "to": end,
            "total": float(sum((total for _, _, total, _ in rows), Decimal(0))),
            "bookings": sum(count for _, _, _, count in rows),
            "monthly": monthly,
        }

    async def overview(self, current_user, params) -> dict:
        role = current_user.role
        if role == UserRole.ADMIN:
            return await self._admin_overview(params)
        if role == UserRole.LANDLORD:
            return await self._landlord_overview(current_user, params)
        if role == UserRole.SUPPORT:
            return await self._support_overview()
        return await self._tenant_overview(current_user)

    async def _admin_overview(self, params) -> dict:
        start, end = self.date_range(params)
        properties = await self._property_summary()
        by_role = _with_zeros(await self.users.count_by_role(), UserRole)
        return {
            "role": UserRole.ADMIN.value,
            "properties": properties,
            "occupancyRate": properties["occupancyRate"],
            "users": {"total": sum(by_role.values()), "byRole": by_role},
            "revenue": await self._revenue(start, end),
            "recentActivity": ORMMapper.many(
                await self.activities.recent(RECENT_ACTIVITY_LIMIT), ActivityOut
            ),
            "recentMaintenance": ORMMapper.many(
                await self.maintenance.recent(limit=RECENT_MAINTENANCE_LIMIT),
                MaintenanceOut,
            ),
        }

    async def _landlord_overview(self, current_user, params) -> dict:
        start, end = self.date_range(params)
        properties = await self._property_summary(current_user.id)
        bookings = await self.bookings.count_by_status(landlord_id=current_user.id)
        return {
            "role": UserRole.LANDLORD.value,
            "properties": properties,
            "occupancyRate": properties["occupancyRate"],
            "revenue": await self._revenue(start, end, current_user.id),
            "pendingBookings": bookings.get(BookingStatus.PENDING.value, 0),
            "pendingMaintenance": await self.maintenance.count_pending(
                landlord_id=current_user.id
            ),
            "recentMaintenance": ORMMapper.many(
                await self.maintenance.recent(
                    limit=RECENT_MAINTENANCE_LIMIT, landlord_id=current_user.id
                ),
                MaintenanceOut,
            ),
        }

    async def _tenant_overview(self, current_user) -> dict:
        by_status = _with_zeros(
            await self.bookings.count_by_status(tenant_id=current_user.id),
            BookingStatus,
        )
        return {
            "role": current_user.role.value,
            "bookings": {"total": sum(by_status.values()), "byStatus": by_status},
            "recentMaintenance": ORMMapper.many(
                await self.maintenance.recent(
                    limit=RECENT_MAINTENANCE_LIMIT, tenant_id=current_user.id
                ),
                MaintenanceOut,
            ),
            "recentActivity": ORMMapper.many(
                await self.activities.recent(RECENT_ACTIVITY_LIMIT, current_user.id),
                ActivityOut,
            ),
        }

    async def _support_overview(self) -> dict:
        by_priority = await self.maintenance.count_pending_by_priority()
        return {
            "role": UserRole.SUPPORT.value,
            "pendingMaintenance": sum(by_priority.values()),
            "pendingByPriority": by_priority,
            "maintenanceQueue": ORMMapper.many(
                await self.maintenance.pending_queue(SUPPORT_QUEUE_LIMIT),
                MaintenanceOut,
            ),
        }

    async def earnings(self, current_user, year=None) -> dict:
        await self.permission.check_landlord_or_admin(current_user)

        year = parse_int(year) or utcnow().year
        if not 1970 <= year <= 9998:
            raise AppError.bad_request("Invalid year")
        start, end = year_bounds(year)
        landlord_id = current_user.id if current_user.role == UserRole.LANDLORD else None
        rows = await self.bookings.revenue_by_month(start, end, landlord_id)

        monthly = [0.0] * 12
        for _, month, total, _ in rows:
            monthly[month - 1] = float(total)
        return {
            "year": year,
            "monthlyEarnings": monthly,
            "totalYearlyEarnings": float(sum((total for _, _, total, _ in rows), Decimal(0))),
            "totalBookings": sum(count for _, _, _, count in rows),
        }
