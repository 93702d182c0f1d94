import logging

from fastapi import BackgroundTasks

from estate_market.fintechs.stripe_checkout import stripe_client
from estate_market.services.booking_service import BookingService

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


class PaymentService:
    def __init__(self, db, gateway=None, mailer=None, notifications=None):
        self.gateway = gateway or stripe_client
        self.bookings: BookingService = BookingService(
            db, gateway=self.gateway, mailer=mailer, notifications=notifications
        )

    async def handle_webhook(
        self,
        payload: bytes,
        signature: str | None,
        background_tasks: BackgroundTasks | None = None,
    ) -> dict:
        event = self.gateway.construct_event(payload, signature)
        event_type = event["type"]

        if event_type != CHECKOUT_COMPLETED:
            logger.info(f"Unhandled webhook event {event_type} ({event['id']})")
            return {"received": True, "handled": False}

        session_id = event["object"].get("id")
        booking = await self.bookings.handle_payment_success(
            session_id, background_tasks
        )
        logger.info(f"Webhook {event['id']} confirmed booking {booking.id}")
        return {"received": True, "handled": True, "bookingId": str(booking.id)}

    def config(self) -> dict:
        return {"publishableKey": self.gateway.publishable_key}
