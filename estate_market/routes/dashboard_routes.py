import uuid

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.core.database import get_db_async
from estate_market.core.get_current_user import get_current_user
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.models.models import User
from estate_market.schemas.schema import MaintenanceCreate, MaintenanceUpdate
from estate_market.services.activity_service import ActivityService
from estate_market.services.dashboard_service import DashboardService
from estate_market.services.maintenance_service import MaintenanceService

router = APIRouter(tags=["Dashboard"])


@cbv(router)
class DashboardRoutes:
    @router.get("/overview")
    @safe_handler
    async def overview(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        data = await DashboardService(db).overview(current_user, request.query_params)
        return send_response(data, message="Dashboard data retrieved")

    @router.get("/earnings")
    @safe_handler
    async def earnings(
        self,
        request: Request,
        year: str | None = None,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        data = await DashboardService(db).earnings(current_user, year)
        return send_response(data, message="Earnings report retrieved")

    @router.post("/maintenance")
    @safe_handler
    async def create_maintenance(
        self,
        request: Request,
        data: MaintenanceCreate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        item = await MaintenanceService(db).create_request(current_user, data)
        return send_response(
            item, message="Maintenance request created", status_code=201
        )

    @router.get("/maintenance")
    @safe_handler
    async def list_maintenance(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        items, meta = await MaintenanceService(db).list_requests(
            current_user, request.query_params
        )
        return send_response(items, message="Maintenance requests retrieved", meta=meta)

    @router.get("/maintenance/{request_id}")
    @safe_handler
    async def get_maintenance(
        self,
        request: Request,
        request_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        item = await MaintenanceService(db).get_request(current_user, request_id)
        return send_response(item, message="Maintenance request retrieved")

    @router.patch("/maintenance/{request_id}")
    @safe_handler
    async def update_maintenance(
        self,
        request: Request,
        request_id: uuid.UUID,
        data: MaintenanceUpdate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        item = await MaintenanceService(db).update_request(
            current_user, request_id, data
        )
        return send_response(item, message="Maintenance request updated")

    @router.get("/activities")
    @safe_handler
    async def activities(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        items, meta = await ActivityService(db).list_activities(
            current_user, request.query_params
        )
        return send_response(items, message="Activities retrieved", meta=meta)
