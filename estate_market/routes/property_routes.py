import uuid
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.core.database import get_db_async
from estate_market.core.get_current_user import get_current_user
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.models.models import User
from estate_market.schemas.schema import PropertyCreate, PropertyUpdate
from estate_market.services.property_service import PropertyService

router = APIRouter(tags=["Properties"])


@cbv(router)
class PropertyRoutes:
    @router.get("/")
    @safe_handler
    async def list_properties(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
    ):
        items, meta = await PropertyService(db).list_properties(request.query_params)
        return send_response(items, message="Properties retrieved", meta=meta)

    @router.get("/featured")
    @safe_handler
    async def featured(
        self,
        request: Request,
        limit: str | None = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        items = await PropertyService(db).featured(limit)
        return send_response(items, message="Featured properties retrieved")

    @router.get("/filters")
    @safe_handler
    async def available_filters(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
    ):
        filters = await PropertyService(db).available_filters()
        return send_response(filters, message="Available filters retrieved")

    @router.get("/city/{city}")
    @safe_handler
    async def by_city(
        self,
        request: Request,
        city: str,
        db: AsyncSession = Depends(get_db_async),
    ):
        items = await PropertyService(db).by_city(city)
        return send_response(items, message=f"Properties in {city} retrieved")

    @router.get("/user/my-properties")
    @safe_handler
    async def my_properties(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        items, meta = await PropertyService(db).my_properties(
            current_user, request.query_params
        )
        return send_response(items, message="Your properties retrieved", meta=meta)

    @router.get("/{property_id}")
    @safe_handler
    async def get_property(
        self,
        request: Request,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        prop = await PropertyService(db).get_property(property_id)
        return send_response(prop, message="Property retrieved")

    @router.post("/")
    @safe_handler
    async def create_property(
        self,
        request: Request,
        data: Annotated[PropertyCreate, Body(discriminator="listing_type")],
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        prop = await PropertyService(db).create_property(current_user, data)
        return send_response(
            prop, message="Property created successfully", status_code=201
        )

    @router.patch("/{property_id}")
    @safe_handler
    async def update_property(
        self,
        request: Request,
        property_id: uuid.UUID,
        data: PropertyUpdate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        prop = await PropertyService(db).update_property(
            current_user, property_id, data
        )
        return send_response(prop, message="Property updated successfully")

    @router.delete("/{property_id}")
    @safe_handler
    async def delete_property(
        self,
        request: Request,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        await PropertyService(db).delete_property(current_user, property_id)
        return send_response(None, message="Property deleted successfully")

    @router.post("/{property_id}/like")
    @safe_handler
    async def toggle_like(
        self,
        request: Request,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        result = await PropertyService(db).toggle_like(current_user, property_id)
        message = "Property liked" if result.liked else "Property unliked"
        return send_response(result, message=message)
