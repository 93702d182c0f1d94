import logging
import uuid

from estate_market.core.check_permission import CheckRolePermission
from estate_market.core.errors import AppError
from estate_market.core.mapper import ORMMapper
from estate_market.core.paginate import PaginatePage
from estate_market.models.enums import (
    ActivityAction,
    EntityModel,
    MaintenancePriority,
    MaintenanceStatus,
    SortOrder,
    UserRole,
)
from estate_market.models.models import MaintenanceRequest
from estate_market.repos.maintenance_repo import MaintenanceRepo
from estate_market.repos.property_repo import PropertyRepo
from estate_market.schemas.schema import MaintenanceOut
from estate_market.services.activity_service import ActivityService
from estate_market.services.property_filters import parse_enum, parse_uuid

logger = logging.getLogger(__name__)

MAINTENANCE_SORT_FIELDS = {"createdAt", "reportedAt", "priority"}
DEFAULT_LIMIT = 10


class MaintenanceService:
    def __init__(self, db):
        self.repo: MaintenanceRepo = MaintenanceRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.paginate: PaginatePage = PaginatePage()
        self.permission: CheckRolePermission = CheckRolePermission()
        self.activity: ActivityService = ActivityService(db)

    def _can_view(self, current_user, request: MaintenanceRequest) -> bool:
        if self.permission.is_staff(current_user):
            return True
        if request.tenant_id == current_user.id:
            return True
        return request.property is not None and request.property.owner_id == current_user.id

    def _can_manage(self, current_user, request: MaintenanceRequest) -> bool:
        if self.permission.is_staff(current_user):
            return True
        return (
            current_user.role == UserRole.LANDLORD
            and request.property is not None
            and request.property.owner_id == current_user.id
        )

    async def _get_or_404(self, request_id: uuid.UUID) -> MaintenanceRequest:
        request = await self.repo.get_by_id(request_id)
        if not request:
            raise AppError.not_found("Maintenance request not found")
        return request

    async def create_request(self, current_user, data) -> MaintenanceOut:
        await self.permission.check_roles(current_user, UserRole.TENANT)
        prop = await self.property_repo.get_by_id(data.property_id)
        if not prop:
            raise AppError.not_found("Property not found")

        request = await self.repo.create(
            MaintenanceRequest(
                property_id=prop.id,
                tenant_id=current_user.id,
                title=data.title.strip(),
                description=data.description.strip(),
                priority=data.priority,
                status=MaintenanceStatus.PENDING,
                images=[str(url) for url in data.images],
            )
        )
        await self.activity.log(
            current_user.id,
            ActivityAction.MAINTENANCE_REQUESTED,
            f"Reported '{request.title}' at '{prop.title}'",
            entity_id=request.id,
            entity_model=EntityModel.MAINTENANCE_REQUEST,
        )
        return ORMMapper.one(request, MaintenanceOut)

    async def list_requests(self, current_user, params):
        page, limit = self.paginate.clamp(
            params.get("page"), params.get("limit"), default_limit=DEFAULT_LIMIT
        )

        if current_user.role == UserRole.TENANT:
            criteria = self.repo.scoped(tenant_id=current_user.id)
        elif current_user.role == UserRole.LANDLORD:
            criteria = self.repo.scoped(landlord_id=current_user.id)
        else:
            criteria = []

        status = parse_enum(MaintenanceStatus, params.get("status"))
        if status is not None:
            criteria.append(MaintenanceRequest.status == status)
        priority = parse_enum(MaintenancePriority, params.get("priority"))
        if priority is not None:
            criteria.append(MaintenanceRequest.priority == priority)
        property_id = parse_uuid(params.get("propertyId"))
        if property_id is not None:
            criteria.append(MaintenanceRequest.property_id == property_id)
        tenant_id = parse_uuid(params.get("tenantId"))
        if tenant_id is not None:
            criteria.append(MaintenanceRequest.tenant_id == tenant_id)

        sort_by = params.get("sortBy")
        if sort_by not in MAINTENANCE_SORT_FIELDS:
            sort_by = "createdAt"
        order = parse_enum(SortOrder, params.get("sortOrder")) or SortOrder.DESC

        items, total = await self.repo.search(
            criteria=criteria,
            sort_by=sort_by,
            ascending=order == SortOrder.ASC,
            offset=self.paginate.offset(page, limit),
            limit=limit,
        )
        return ORMMapper.many(items, MaintenanceOut), self.paginate.meta(total, page, limit)

    async def get_request(self, current_user, request_id: uuid.UUID) -> MaintenanceOut:
        request = await self._get_or_404(request_id)
        if not self._can_view(current_user, request):
            raise AppError.forbidden("You do not have access to this maintenance request")
        return ORMMapper.one(request, MaintenanceOut)

    async def update_request(
        self, current_user, request_id: uuid.UUID, data
    ) -> MaintenanceOut:
        request = await self._get_or_404(request_id)
        if not self._can_manage(current_user, request):
            raise AppError.forbidden("You cannot update this maintenance request")

        previous = request.status
        if data.priority is not None:
            request.priority = data.priority
        if data.status is not None and data.status != previous:
            request.change_status(data.status)
        request = await self.repo.save(request)

        if request.status != previous:
            await self.activity.log(
                current_user.id,
                ActivityAction.MAINTENANCE_STATUS_CHANGED,
                f"'{request.title}' moved from {previous.value} to {request.status.value}",
                entity_id=request.id,
                entity_model=EntityModel.MAINTENANCE_REQUEST,
            )
        return ORMMapper.one(request, MaintenanceOut)
