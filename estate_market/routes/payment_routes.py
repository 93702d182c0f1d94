from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from estate_market.core.database import get_db_async
from estate_market.core.get_provider import (
    get_mailer,
    get_notifier,
    get_payment_gateway,
)
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.services.payment_service import PaymentService

router = APIRouter(tags=["Payments"])


@cbv(router)
class PaymentRoutes:
    @router.post("/webhook")
    @safe_handler
    async def webhook(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
        db: AsyncSession = Depends(get_db_async),
        gateway=Depends(get_payment_gateway),
        mailer=Depends(get_mailer),
        notifications=Depends(get_notifier),
    ):
        payload = await request.body()
        result = await PaymentService(
            db, gateway=gateway, mailer=mailer, notifications=notifications
        ).handle_webhook(payload, stripe_signature, background_tasks)
        return send_response(result, message="Webhook received")

    @router.get("/config")
    @safe_handler
    async def config(
        self,
        request: Request,
        db: AsyncSession = Depends(get_db_async),
        gateway=Depends(get_payment_gateway),
    ):
        return send_response(
            PaymentService(db, gateway=gateway).config(),
            message="Payment configuration retrieved",
        )
