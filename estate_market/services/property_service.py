import logging
import uuid
from decimal import Decimal

from estate_market.core.check_permission import CheckRolePermission
from estate_market.core.errors import AppError
from estate_market.core.mapper import ORMMapper
from estate_market.core.paginate import PaginatePage
from estate_market.models.enums import (
    ActivityAction,
    EntityModel,
    ListingType,
    UserRole,
)
from estate_market.models.models import LISTING_CLASSES, Property
from estate_market.repos.property_repo import PropertyRepo
from estate_market.repos.user_repo import UserRepo
from estate_market.schemas.schema import LikeToggleOut, PropertyFiltersOut
from estate_market.services.activity_service import ActivityService
from estate_market.services.property_filters import PropertyFilterBuilder, parse_int

logger = logging.getLogger(__name__)

MONEY_FIELDS = {
    "rent_price",
    "security_deposit",
    "utility_deposit",
    "maintenance_fee",
    "sale_price",
    "original_price",
    "hoa_fee",
    "tax_amount",
}

SHARED_UPDATE_FIELDS = (
    "title",
    "description",
    "property_type",
    "address",
    "city",
    "neighborhood",
    "state",
    "zip_code",
    "latitude",
    "longitude",
    "bedrooms",
    "bathrooms",
    "area_size",
    "status",
    "tags",
    "featured",
)

FEATURED_DEFAULT_LIMIT = 6
FEATURED_MAX_LIMIT = 50
BY_CITY_LIMIT = 20
MY_PROPERTIES_DEFAULT_LIMIT = 10


def _column_value(field: str, value):
    if field in MONEY_FIELDS and value is not None:
        return Decimal(str(value))
    return value


class PropertyService:
    def __init__(self, db):
        self.repo: PropertyRepo = PropertyRepo(db)
        self.user_repo: UserRepo = UserRepo(db)
        self.paginate: PaginatePage = PaginatePage()
        self.permission: CheckRolePermission = CheckRolePermission()
        self.activity: ActivityService = ActivityService(db)

    async def _owned_or_404(self, property_id: uuid.UUID, user_id: uuid.UUID) -> Property:
        prop = await self.repo.get_by_id(property_id)
        if not prop or prop.owner_id != user_id:
            raise AppError.not_found("Property not found or you are not the owner")
        return prop

    async def list_properties(self, params):
        builder = PropertyFilterBuilder(params, self.paginate)
        page, limit = builder.page_and_limit()
        offset = self.paginate.offset(page, limit)

        if builder.circle() is None:
            items, total = await self.repo.search(
                builder.where(), builder.order_by(), offset, limit
            )
        else:
            candidates = await self.repo.search_all(builder.where(), builder.order_by())
            matches = [prop for prop in candidates if builder.contains(prop)]
            total = len(matches)
            items = matches[offset : offset + limit]
        return ORMMapper.listings(items), self.paginate.meta(total, page, limit)

    async def get_property(self, property_id: uuid.UUID):
        if not await self.repo.increment_views(property_id):
            raise AppError.not_found("Property not found")
        prop = await self.repo.get_by_id(property_id, fresh=True)
        if not prop:
            raise AppError.not_found("Property not found")
        return ORMMapper.listing(prop)

    async def featured(self, limit=None):
        limit = parse_int(limit) or FEATURED_DEFAULT_LIMIT
        limit = min(max(limit, 1), FEATURED_MAX_LIMIT)
        return ORMMapper.listings(await self.repo.featured(limit))

    async def by_city(self, city: str):
        city = (city or "").strip()
        if not city:
            raise AppError.bad_request("City is required")
        return ORMMapper.listings(await self.repo.by_city(city, BY_CITY_LIMIT))

    async def available_filters(self) -> PropertyFiltersOut:
        return PropertyFiltersOut(**await self.repo.facets())

    async def create_property(self, current_user, data):
        await self.permission.check_landlord_or_admin(current_user)

        listing_type = ListingType(data.listing_type)
        fields = data.model_dump(exclude={"listing_type", "amenities", "images"})
        if current_user.role != UserRole.ADMIN:
            fields["featured"] = False

        if fields.get("agent_id") and not await self.user_repo.by_id(fields["agent_id"]):
            raise AppError.bad_request("Agent not found")

        prop = LISTING_CLASSES[listing_type](
            owner_id=current_user.id,
            images=[str(url) for url in data.images],
            **{field: _column_value(field, value) for field, value in fields.items()},
        )
        prop.set_amenities(data.amenities)
        prop = await self.repo.create(prop)

        await self.activity.log(
            current_user.id,
            ActivityAction.PROPERTY_CREATED,
            f"Created {listing_type.value} listing '{prop.title}'",
            entity_id=prop.id,
            entity_model=EntityModel.PROPERTY,
        )
        return ORMMapper.listing(prop)

    async def update_property(self, current_user, property_id: uuid.UUID, data):
        prop = await self._owned_or_404(property_id, current_user.id)
        changes = data.model_dump(exclude_unset=True)
        allowed = set(SHARED_UPDATE_FIELDS) | set(prop.VARIANT_FIELDS)

        for field, value in changes.items():
            if field in allowed:
                setattr(prop, field, _column_value(field, value))
        if "images" in changes:
            prop.images = [str(url) for url in changes["images"] or []]
        if "amenities" in changes:
            prop.set_amenities(changes["amenities"])

        if (
            prop.listing_type == ListingType.RENT
            and prop.maximum_stay is not None
            and prop.minimum_stay is not None
            and prop.maximum_stay < prop.minimum_stay
        ):
            raise AppError.bad_request("Maximum stay cannot be shorter than minimum stay")

        prop = await self.repo.save(prop)
        await self.activity.log(
            current_user.id,
            ActivityAction.PROPERTY_UPDATED,
            f"Updated listing '{prop.title}'",
            entity_id=prop.id,
            entity_model=EntityModel.PROPERTY,
        )
        return ORMMapper.listing(prop)

    async def delete_property(self, current_user, property_id: uuid.UUID) -> None:
        prop = await self.repo.get_by_id(property_id)
        if not prop:
            raise AppError.not_found("Property not found")
        await self.permission.check_owner_or_admin(current_user, prop.owner_id)

        title = prop.title
        await self.repo.delete(prop)
        await self.activity.log(
            current_user.id,
            ActivityAction.PROPERTY_DELETED,
            f"Deleted listing '{title}'",
            entity_id=property_id,
            entity_model=EntityModel.PROPERTY,
        )
        logger.info(f"Property {property_id} deleted by {current_user.id}")

    async def toggle_like(self, current_user, property_id: uuid.UUID) -> LikeToggleOut:
        prop = await self.repo.get_by_id(property_id)
        if not prop:
            raise AppError.not_found("Property not found")

        liked = not prop.is_liked_by(current_user.id)
        if liked:
            prop.liked_by.append(current_user)
        else:
            prop.liked_by = [u for u in prop.liked_by if u.id != current_user.id]
        prop = await self.repo.save(prop)

        if liked:
            await self.activity.log(
                current_user.id,
                ActivityAction.PROPERTY_LIKED,
                f"Liked listing '{prop.title}'",
                entity_id=prop.id,
                entity_model=EntityModel.PROPERTY,
            )
        return LikeToggleOut(liked=liked, likes_count=len(prop.likes))

    async def my_properties(self, current_user, params):
        page, limit = self.paginate.clamp(
            params.get("page"),
            params.get("limit"),
            default_limit=MY_PROPERTIES_DEFAULT_LIMIT,
        )
        items, total = await self.repo.by_owner(
            current_user.id, self.paginate.offset(page, limit), limit
        )
        return ORMMapper.listings(items), self.paginate.meta(total, page, limit)
