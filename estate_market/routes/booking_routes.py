import uuid

from fastapi import APIRouter, Depends, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.core.database import get_db_async
from estate_market.core.get_current_user import get_current_user
from estate_market.core.get_provider import get_payment_gateway
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.models.models import User
from estate_market.schemas.schema import (
    BookingCancel,
    BookingCreate,
    BookingPaymentCreate,
)
from estate_market.services.booking_service import BookingService

router = APIRouter(tags=["Bookings"])


@cbv(router)
class BookingRoutes:
    @router.post("/")
    @safe_handler
    async def create_booking(
        self,
        request: Request,
        data: BookingCreate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        booking = await BookingService(db).create_booking(current_user, data)
        return send_response(
            booking, message="Booking created successfully", status_code=201
        )

    @router.post("/payment")
    @safe_handler
    async def create_payment_session(
        self,
        request: Request,
        data: BookingPaymentCreate,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
        gateway=Depends(get_payment_gateway),
    ):
        session = await BookingService(db, gateway=gateway).create_payment_session(
            current_user, data
        )
        return send_response(session, message="Payment session created")

    @router.get("/my-bookings")
    @safe_handler
    async def my_bookings(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        bookings, meta = await BookingService(db).my_bookings(
            current_user, request.query_params
        )
        return send_response(bookings, message="Bookings retrieved", meta=meta)

    @router.get("/{booking_id}")
    @safe_handler
    async def get_booking(
        self,
        request: Request,
        booking_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        booking = await BookingService(db).get_booking(current_user, booking_id)
        return send_response(booking, message="Booking retrieved")

    @router.post("/{booking_id}/cancel")
    @safe_handler
    async def cancel_booking(
        self,
        request: Request,
        booking_id: uuid.UUID,
        data: BookingCancel,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        booking = await BookingService(db).cancel_booking(
            current_user, booking_id, data.reason
        )
        return send_response(booking, message="Booking cancelled successfully")
