"""Tests for the booking lifecycle: creation, checkout, webhook and cancellation."""

import json
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from conftest import VALID_SIGNATURE, auth_headers
from estate_market.core.errors import AppError
from estate_market.models.enums import PropertyStatus, UserRole
from estate_market.models.models import Property
from estate_market.services.booking_service import to_minor_units

RETURN_URL = "https://app.test/bookings"


def checkout_completed(session_id: str, event_id: str = "evt_1") -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "type": "checkout.session.completed",
            "data": {"object": {"id": session_id}},
        }
    ).encode()


async def property_status(database, property_id) -> PropertyStatus:
    async with database.session() as session:
        return await session.scalar(
            select(Property.status).where(Property.id == property_id)
        )


@pytest.fixture
async def rental(make_user, make_rent_property):
    landlord = await make_user(role=UserRole.LANDLORD)
    tenant = await make_user(role=UserRole.TENANT)
    prop = await make_rent_property(
        landlord, rent_price=Decimal("1500"), minimum_stay=3
    )
    return landlord, tenant, prop


async def book(client, tenant, prop, check_in="2027-03-01", check_out="2027-07-01"):
    return await client.post(
        "/api/bookings/",
        json={"propertyId": str(prop.id), "checkIn": check_in, "checkOut": check_out},
        headers=auth_headers(tenant),
    )


async def pay(client, tenant, booking_id):
    return await client.post(
        "/api/bookings/payment",
        json={"bookingId": booking_id, "returnUrl": RETURN_URL},
        headers=auth_headers(tenant),
    )


async def deliver(client, session_id, event_id="evt_1"):
    return await client.post(
        "/api/payments/webhook",
        content=checkout_completed(session_id, event_id),
        headers={"Stripe-Signature": VALID_SIGNATURE},
    )


class TestMinorUnits:
    def test_rounds_half_up(self) -> None:
        assert to_minor_units(Decimal("10.005")) == 1001
        assert to_minor_units(Decimal("183000")) == 18300000


class TestCreateBooking:
    async def test_prices_by_day(self, client, rental) -> None:
        _, tenant, prop = rental

        response = await book(client, tenant, prop)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["totalDays"] == 122
        assert data["totalAmount"] == 183000
        assert data["securityDeposit"] == 1500
        assert data["status"] == "pending"
        assert data["paymentStatus"] == "pending"
        assert data["landlordId"] == str(prop.owner_id)

    async def test_stay_shorter_than_minimum_rejected(self, client, rental) -> None:
        _, tenant, prop = rental

        response = await book(client, tenant, prop, "2027-03-01", "2027-05-01")

        assert response.status_code == 400
        assert response.json()["message"] == "Minimum stay is 3 month(s)"

    async def test_checkout_before_checkin_rejected(self, client, rental) -> None:
        _, tenant, prop = rental

        response = await book(client, tenant, prop, "2027-07-01", "2027-03-01")

        assert response.status_code == 400

    async def test_unavailable_property_rejected(
        self, client, make_user, make_rent_property
    ) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)
        tenant = await make_user(role=UserRole.TENANT)
        prop = await make_rent_property(landlord, status=PropertyStatus.RENTED)

        response = await book(client, tenant, prop)
        mine = await client.get("/api/bookings/my-bookings", headers=auth_headers(tenant))

        assert response.status_code == 400
        assert mine.json()["meta"]["total"] == 0

    async def test_sale_listing_cannot_be_booked(
        self, client, make_user, make_sale_property
    ) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)
        tenant = await make_user(role=UserRole.TENANT)
        prop = await make_sale_property(landlord)

        response = await book(client, tenant, prop)

        assert response.status_code == 400

    async def test_landlord_cannot_book_own_property(self, client, rental) -> None:
        landlord, _, prop = rental

        response = await book(client, landlord, prop)

        assert response.status_code == 400

    async def test_unknown_property_is_404(self, client, make_user) -> None:
        tenant = await make_user(role=UserRole.TENANT)

        response = await client.post(
            "/api/bookings/",
            json={
                "propertyId": str(uuid.uuid4()),
                "checkIn": "2027-03-01",
                "checkOut": "2027-07-01",
            },
            headers=auth_headers(tenant),
        )

        assert response.status_code == 404


class TestPaymentSession:
    async def test_tenant_opens_checkout(self, client, gateway, rental, database) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]

        response = await pay(client, tenant, booking_id)

        assert response.status_code == 200
        assert response.json()["data"] == {
            "sessionId": "cs_test_1",
            "url": "https://checkout.test/cs_test_1",
        }
        sent = gateway.created[0]
        assert sent["metadata"] == {"bookingId": booking_id}
        assert [item["price_data"]["unit_amount"] for item in sent["line_items"]] == [
            18300000,
            150000,
        ]
        assert sent["success_url"] == (
            f"{RETURN_URL}?success=true&session_id={{CHECKOUT_SESSION_ID}}"
        )
        assert sent["cancel_url"] == f"{RETURN_URL}?canceled=true"
        assert await property_status(database, prop.id) == PropertyStatus.AVAILABLE

    async def test_other_user_forbidden(self, client, make_user, rental) -> None:
        _, tenant, prop = rental
        stranger = await make_user(role=UserRole.TENANT)
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]

        response = await pay(client, stranger, booking_id)

        assert response.status_code == 403

    async def test_cancelled_booking_cannot_be_paid(self, client, rental) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={"reason": "Plans changed"},
            headers=auth_headers(tenant),
        )

        response = await pay(client, tenant, booking_id)

        assert response.status_code == 400

    async def test_gateway_failure_surfaces_as_502(self, client, gateway, rental) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        gateway.fail_with = AppError.payment_gateway("Card network unavailable")

        response = await pay(client, tenant, booking_id)

        assert response.status_code == 502
        assert response.json()["success"] is False


class TestPaymentWebhook:
    async def test_confirms_booking_and_rents_property(
        self, client, mailer, rental, database
    ) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        await pay(client, tenant, booking_id)

        response = await deliver(client, "cs_test_1")

        assert response.status_code == 200
        assert response.json()["data"] == {
            "received": True,
            "handled": True,
            "bookingId": booking_id,
        }
        booking = (
            await client.get(f"/api/bookings/{booking_id}", headers=auth_headers(tenant))
        ).json()["data"]
        assert booking["status"] == "confirmed"
        assert booking["paymentStatus"] == "paid"
        assert booking["paymentIntentId"] == "pi_test_1"
        assert await property_status(database, prop.id) == PropertyStatus.RENTED
        assert [entry[0] for entry in mailer.sent] == ["booking"]

    async def test_redelivery_is_idempotent(self, client, mailer, rental) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        await pay(client, tenant, booking_id)

        first = await deliver(client, "cs_test_1", "evt_1")
        second = await deliver(client, "cs_test_1", "evt_2")

        assert first.status_code == second.status_code == 200
        booking = (
            await client.get(f"/api/bookings/{booking_id}", headers=auth_headers(tenant))
        ).json()["data"]
        assert (booking["status"], booking["paymentStatus"]) == ("confirmed", "paid")
        assert [entry[0] for entry in mailer.sent] == ["booking"]

    async def test_late_payment_does_not_revive_cancelled_booking(
        self, client, rental, database
    ) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        await pay(client, tenant, booking_id)
        await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={"reason": "Found another place"},
            headers=auth_headers(tenant),
        )

        response = await deliver(client, "cs_test_1")

        assert response.status_code == 200
        booking = (
            await client.get(f"/api/bookings/{booking_id}", headers=auth_headers(tenant))
        ).json()["data"]
        assert booking["status"] == "cancelled"
        assert await property_status(database, prop.id) == PropertyStatus.AVAILABLE

    async def test_mail_failure_does_not_fail_webhook(self, client, mailer, rental) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        await pay(client, tenant, booking_id)
        mailer.fail = True

        response = await deliver(client, "cs_test_1")

        assert response.status_code == 200
        assert mailer.sent == []


class TestCancelBooking:
    async def test_cancel_frees_property(self, client, rental, database) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]
        await pay(client, tenant, booking_id)
        await deliver(client, "cs_test_1")

        response = await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={"reason": "Job relocation"},
            headers=auth_headers(tenant),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["cancellationReason"] == "Job relocation"
        assert await property_status(database, prop.id) == PropertyStatus.AVAILABLE

    async def test_cancelling_stale_booking_keeps_property_rented(
        self, client, make_user, rental, database
    ) -> None:
        _, tenant, prop = rental
        rival = await make_user(role=UserRole.TENANT)
        paid_id = (await book(client, tenant, prop)).json()["data"]["id"]
        stale_id = (await book(client, rival, prop)).json()["data"]["id"]
        await pay(client, tenant, paid_id)
        await deliver(client, "cs_test_1")
        assert await property_status(database, prop.id) == PropertyStatus.RENTED

        response = await client.post(
            f"/api/bookings/{stale_id}/cancel",
            json={"reason": "Found another place"},
            headers=auth_headers(rival),
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"
        assert await property_status(database, prop.id) == PropertyStatus.RENTED

    async def test_cancel_twice_rejected(self, client, rental) -> None:
        landlord, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]

        first = await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={"reason": "Unavailable"},
            headers=auth_headers(landlord),
        )
        second = await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={"reason": "Unavailable"},
            headers=auth_headers(tenant),
        )

        assert first.status_code == 200
        assert second.status_code == 400

    async def test_unrelated_user_forbidden(self, client, make_user, rental) -> None:
        _, tenant, prop = rental
        stranger = await make_user(role=UserRole.TENANT)
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]

        response = await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={"reason": "Spite"},
            headers=auth_headers(stranger),
        )

        assert response.status_code == 403

    async def test_reason_required(self, client, rental) -> None:
        _, tenant, prop = rental
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]

        response = await client.post(
            f"/api/bookings/{booking_id}/cancel",
            json={},
            headers=auth_headers(tenant),
        )

        assert response.status_code == 400


class TestListBookings:
    async def test_tenant_and_landlord_views(self, client, rental) -> None:
        landlord, tenant, prop = rental
        await book(client, tenant, prop)

        as_tenant = await client.get(
            "/api/bookings/my-bookings", headers=auth_headers(tenant)
        )
        as_landlord = await client.get(
            "/api/bookings/my-bookings",
            params={"as": "landlord"},
            headers=auth_headers(landlord),
        )
        landlord_as_tenant = await client.get(
            "/api/bookings/my-bookings", headers=auth_headers(landlord)
        )

        assert as_tenant.json()["meta"]["total"] == 1
        assert as_landlord.json()["meta"]["total"] == 1
        assert landlord_as_tenant.json()["meta"]["total"] == 0

    async def test_status_filter(self, client, rental) -> None:
        _, tenant, prop = rental
        await book(client, tenant, prop)

        confirmed = await client.get(
            "/api/bookings/my-bookings",
            params={"status": "confirmed"},
            headers=auth_headers(tenant),
        )

        assert confirmed.json()["data"] == []

    async def test_get_booking_requires_involvement(
        self, client, make_user, rental
    ) -> None:
        _, tenant, prop = rental
        stranger = await make_user(role=UserRole.TENANT)
        admin = await make_user(role=UserRole.ADMIN)
        booking_id = (await book(client, tenant, prop)).json()["data"]["id"]

        denied = await client.get(
            f"/api/bookings/{booking_id}", headers=auth_headers(stranger)
        )
        allowed = await client.get(
            f"/api/bookings/{booking_id}", headers=auth_headers(admin)
        )

        assert denied.status_code == 403
        assert allowed.status_code == 200
