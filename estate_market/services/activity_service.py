import logging
import uuid

from estate_market.core.check_permission import CheckRolePermission
from estate_market.core.mapper import ORMMapper
from estate_market.core.paginate import PaginatePage
from estate_market.models.enums import ActivityAction, EntityModel
from estate_market.models.models import Activity
from estate_market.repos.activity_repo import ActivityRepo
from estate_market.schemas.schema import ActivityOut
from estate_market.services.property_filters import parse_enum, parse_uuid

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


class ActivityService:
    def __init__(self, db):
        self.repo: ActivityRepo = ActivityRepo(db)
        self.paginate: PaginatePage = PaginatePage()
        self.permission: CheckRolePermission = CheckRolePermission()

    async def log(
        self,
        user_id: uuid.UUID,
        action: ActivityAction,
        message: str,
        *,
        entity_id: uuid.UUID | None = None,
        entity_model: EntityModel | None = None,
    ) -> Activity:
        activity = Activity(
            user_id=user_id,
            action=action,
            message=message,
            entity_id=entity_id,
            entity_model=entity_model,
        )
        await self.repo.add(activity)
        logger.info(f"Activity {action.value} by {user_id}: {message}")
        return activity

    async def list_activities(self, current_user, params) -> tuple[list[ActivityOut], dict]:
        page, limit = self.paginate.clamp(
            params.get("page"), params.get("limit"), default_limit=DEFAULT_LIMIT
        )
        criteria = []

        action = parse_enum(ActivityAction, params.get("action"))
        if action is not None:
            criteria.append(Activity.action == action)

        model_name = params.get("entityModel")
        entity_model = next((m for m in EntityModel if m.value == model_name), None)
        if entity_model is not None:
            criteria.append(Activity.entity_model == entity_model)

        entity_id = parse_uuid(params.get("entityId"))
        if entity_id is not None:
            criteria.append(Activity.entity_id == entity_id)

        if self.permission.is_staff(current_user):
            user_id = parse_uuid(params.get("userId"))
            if user_id is not None:
                criteria.append(Activity.user_id == user_id)
        else:
            criteria.append(Activity.user_id == current_user.id)

        items, total = await self.repo.search(
            criteria, self.paginate.offset(page, limit), limit
        )
        return ORMMapper.many(items, ActivityOut), self.paginate.meta(total, page, limit)

