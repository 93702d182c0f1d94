import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal

from fastapi import BackgroundTasks

from estate_market.core.date_helper import stay_days, whole_months_between
from estate_market.core.errors import AppError
from estate_market.core.mapper import ORMMapper
from estate_market.core.paginate import PaginatePage
from estate_market.core.settings import settings
from estate_market.core.url_parser import parser
from estate_market.email_notify.email_service import email_service
from estate_market.fintechs.stripe_checkout import stripe_client
from estate_market.fire_and_forget.notifications import notifier
from estate_market.models.enums import (
    ActivityAction,
    BookingStatus,
    EntityModel,
    ListingType,
    PaymentStatus,
    PropertyStatus,
    UserRole,
)
from estate_market.models.models import Booking
from estate_market.repos.booking_repo import BookingRepo
from estate_market.repos.property_repo import PropertyRepo
from estate_market.schemas.schema import BookingOut, CheckoutSessionOut
from estate_market.services.activity_service import ActivityService
from estate_market.services.property_filters import parse_enum, parse_uuid

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BookingService:
    """Booking lifecycle.

    pending/pending -> confirmed/paid on checkout success; cancelled from any
    state except completed. Property availability only changes on payment
    success (-> rented) and on cancellation (-> available).
    """

    def __init__(self, db, gateway=None, mailer=None, notifications=None):
        self.repo: BookingRepo = BookingRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.paginate: PaginatePage = PaginatePage()
        self.activity: ActivityService = ActivityService(db)
        self.gateway = gateway or stripe_client
        self.mailer = mailer or email_service
        self.notifier = notifications or notifier

    async def _get_or_404(self, booking_id: uuid.UUID) -> Booking:
        booking = await self.repo.get_by_id(booking_id)
        if not booking:
            raise AppError.not_found("Booking not found")
        return booking

    async def create_booking(self, current_user, data) -> BookingOut:
        prop = await self.property_repo.get_by_id(data.property_id)
        if not prop:
            raise AppError.not_found("Property not found")
        if prop.status != PropertyStatus.AVAILABLE:
            raise AppError.bad_request("Property is not available for booking")
        if prop.listing_type != ListingType.RENT:
            raise AppError.bad_request("Only rental listings can be booked")
        if prop.owner_id == current_user.id:
            raise AppError.bad_request("You cannot book your own property")

        if data.check_out <= data.check_in:
            raise AppError.bad_request("Check-out date must be after check-in date")

        minimum_stay = prop.minimum_stay or 1
        if whole_months_between(data.check_in, data.check_out) < minimum_stay:
            raise AppError.bad_request(f"Minimum stay is {minimum_stay} month(s)")

        total_days = stay_days(data.check_in, data.check_out)
        rent_price = Decimal(prop.rent_price)
        booking = Booking(
            property_id=prop.id,
            tenant_id=current_user.id,
            landlord_id=prop.owner_id,
            check_in=data.check_in,
            check_out=data.check_out,
            total_days=total_days,
            total_amount=rent_price * total_days,
            security_deposit=(
                Decimal(prop.security_deposit) if prop.security_deposit else rent_price
            ),
            special_requests=data.special_requests,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
        )
        booking = await self.repo.create(booking)

        await self.activity.log(
            current_user.id,
            ActivityAction.BOOKING_CREATED,
            f"Booked '{prop.title}' for {total_days} days",
            entity_id=booking.id,
            entity_model=EntityModel.BOOKING,
        )
        return ORMMapper.one(booking, BookingOut)

    async def create_payment_session(self, current_user, data) -> CheckoutSessionOut:
        booking = await self._get_or_404(data.booking_id)
        if booking.tenant_id != current_user.id:
            raise AppError.forbidden("Only the tenant can pay for this booking")
        if (
            booking.status != BookingStatus.PENDING
            or booking.payment_status != PaymentStatus.PENDING
        ):
            raise AppError.bad_request("Booking is not awaiting payment")

        title = booking.property.title if booking.property else "property"
        currency = settings.PAYMENT_CURRENCY
        line_items = [
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {
                        "name": f"Booking for {title}",
                        "description": (
                            f"Stay from {booking.check_in:%a %b %d %Y} "
                            f"to {booking.check_out:%a %b %d %Y}"
                        ),
                    },
                    "unit_amount": to_minor_units(booking.total_amount),
                },
                "quantity": 1,
            },
            {
                "price_data": {
                    "currency": currency,
                    "product_data": {
                        "name": "Security Deposit",
                        "description": "Refundable security deposit",
                    },
                    "unit_amount": to_minor_units(booking.security_deposit),
                },
                "quantity": 1,
            },
        ]

        return_url = str(data.return_url)
        session = await self.gateway.create_checkout_session(
            line_items=line_items,
            metadata={"bookingId": str(booking.id)},
            success_url=parser.with_query(
                return_url, "success=true&session_id={CHECKOUT_SESSION_ID}"
            ),
            cancel_url=parser.with_query(return_url, "canceled=true"),
            customer_email=current_user.email,
            client_reference_id=str(booking.id),
        )

        booking.checkout_session_id = session["id"]
        await self.repo.save(booking)
        logger.info(f"Checkout session {session['id']} opened for booking {booking.id}")
        return CheckoutSessionOut(session_id=session["id"], url=session["url"])

    async def handle_payment_success(
        self, session_id: str, background_tasks: BackgroundTasks | None = None
    ) -> BookingOut:
        session = await self.gateway.retrieve_session(session_id)
        booking_id = parse_uuid((session.get("metadata") or {}).get("bookingId"))

        booking = await self.repo.get_by_id(booking_id) if booking_id else None
        if booking is None:
            booking = await self.repo.get_by_session_id(session_id)
        if booking is None:
            raise AppError.not_found("Booking not found")

        if (
            booking.status == BookingStatus.CONFIRMED
            and booking.payment_status == PaymentStatus.PAID
        ):
            logger.info(f"Booking {booking.id} already confirmed; ignoring redelivery")
            return ORMMapper.one(booking, BookingOut)
        if booking.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            logger.warning(
                f"Payment completed for {booking.status.value} booking {booking.id}; "
                "state left unchanged"
            )
            return ORMMapper.one(booking, BookingOut)

        booking.status = BookingStatus.CONFIRMED
        booking.payment_status = PaymentStatus.PAID
        booking.payment_intent_id = session.get("payment_intent")
        booking.checkout_session_id = booking.checkout_session_id or session_id
        if booking.property is not None:
            booking.property.status = PropertyStatus.RENTED
        booking = await self.repo.save(booking)

        await self.activity.log(
            booking.tenant_id,
            ActivityAction.RENT_PAYMENT_RECEIVED,
            f"Payment received for booking {booking.id}",
            entity_id=booking.id,
            entity_model=EntityModel.PAYMENT,
        )
        if booking.tenant is not None and booking.property is not None:
            self.notifier.dispatch(
                background_tasks,
                self.mailer.send_booking_confirmation,
                booking.tenant.email,
                booking.tenant.name,
                booking.property.title,
                booking.check_in,
                booking.check_out,
            )
        return ORMMapper.one(booking, BookingOut)

    async def cancel_booking(
        self, current_user, booking_id: uuid.UUID, reason: str
    ) -> BookingOut:
        booking = await self._get_or_404(booking_id)
        if not booking.involves(current_user.id):
            raise AppError.forbidden("Only the tenant or landlord can cancel this booking")
        if booking.status == BookingStatus.CANCELLED:
            raise AppError.bad_request("Booking is already cancelled")
        if booking.status == BookingStatus.COMPLETED:
            raise AppError.bad_request("Completed bookings cannot be cancelled")

        booking.status = BookingStatus.CANCELLED
        booking.cancellation_reason = reason
        if booking.property is not None and not await self.repo.property_held_by_other(
            booking.property_id, booking.id
        ):
            booking.property.status = PropertyStatus.AVAILABLE
        booking = await self.repo.save(booking)

        await self.activity.log(
            current_user.id,
            ActivityAction.BOOKING_CANCELLED,
            f"Cancelled booking {booking.id}: {reason}",
            entity_id=booking.id,
            entity_model=EntityModel.BOOKING,
        )
        return ORMMapper.one(booking, BookingOut)

    async def my_bookings(self, current_user, params):
        page, limit = self.paginate.clamp(params.get("page"), params.get("limit"))
        as_landlord = (params.get("as") or "").lower() == "landlord"
        items, total = await self.repo.list_for_user(
            current_user.id,
            as_landlord=as_landlord,
            status=parse_enum(BookingStatus, params.get("status")),
            offset=self.paginate.offset(page, limit),
            limit=limit,
        )
        return ORMMapper.many(items, BookingOut), self.paginate.meta(total, page, limit)

    async def get_booking(self, current_user, booking_id: uuid.UUID) -> BookingOut:
        booking = await self._get_or_404(booking_id)
        if not booking.involves(current_user.id) and current_user.role != UserRole.ADMIN:
            raise AppError.forbidden("You do not have access to this booking")
        return ORMMapper.one(booking, BookingOut)
