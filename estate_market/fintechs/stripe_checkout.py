import logging
from typing import Any

import stripe

from estate_market.core.asyncio_threads import asyncio_run
from estate_market.core.breaker import CircuitBreaker
from estate_market.core.errors import AppError
from estate_market.core.settings import settings

logger = logging.getLogger(__name__)


def _plain(obj) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeClient:
    """Hosted checkout sessions and signed webhook events.

    The SDK is synchronous, so every call runs in the default executor.
    """

    def __init__(
        self,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        publishable_key: str | None = None,
    ):
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET
        self.publishable_key = publishable_key or settings.STRIPE_PUBLISHABLE_KEY
        self.breaker = CircuitBreaker("stripe")

    def _require_key(self):
        if not self.secret_key:
            raise AppError.payment_gateway("Payment provider is not configured")

    async def create_checkout_session(
        self,
        *,
        line_items: list[dict],
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
        client_reference_id: str | None = None,
    ) -> dict[str, Any]:
        self._require_key()

        async def handler():
            try:
                session = await asyncio_run.run_blocking(
                    stripe.checkout.Session.create,
                    api_key=self.secret_key,
                    payment_method_types=["card"],
                    mode="payment",
                    line_items=line_items,
                    metadata=metadata,
                    success_url=success_url,
                    cancel_url=cancel_url,
                    customer_email=customer_email,
                    client_reference_id=client_reference_id,
                )
            except stripe.StripeError as e:
                logger.error(f"Stripe checkout session creation failed: {e}")
                raise AppError.payment_gateway(
                    f"Payment provider error: {e.user_message or 'checkout failed'}"
                ) from e
            return {"id": session.id, "url": session.url}

        return await self.breaker.call(handler)

    async def retrieve_session(self, session_id: str) -> dict[str, Any]:
        self._require_key()

        async def handler():
            try:
                session = await asyncio_run.run_blocking(
                    stripe.checkout.Session.retrieve, session_id, api_key=self.secret_key
                )
            except stripe.StripeError as e:
                logger.error(f"Stripe session lookup failed for {session_id}: {e}")
                raise AppError.payment_gateway("Could not retrieve checkout session") from e
            return {
                "id": session.id,
                "metadata": _plain(session.metadata),
                "payment_intent": session.payment_intent,
                "payment_status": session.payment_status,
            }

        return await self.breaker.call(handler)

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        if not self.webhook_secret:
            raise AppError.bad_request("Webhook secret is not configured")
        if not signature:
            raise AppError.bad_request("Missing Stripe-Signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret
            )
        except ValueError as e:
            raise AppError.bad_request("Invalid webhook payload") from e
        except stripe.SignatureVerificationError as e:
            raise AppError.bad_request("Invalid webhook signature") from e

        return {
            "id": event.id,
            "type": event.type,
            "object": _plain(event.data.object),
        }


stripe_client = StripeClient()
