"""Pytest configuration and fixtures."""

import json
import os
from decimal import Decimal

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest

from estate_market.app import create_app
from estate_market.core.database import Database
from estate_market.core.errors import AppError
from estate_market.core.get_provider import (
    get_image_host,
    get_mailer,
    get_notifier,
    get_payment_gateway,
)
from estate_market.core.validators import encode_token
from estate_market.fire_and_forget.notifications import Notifier
from estate_market.models.enums import (
    HousePolicy,
    OwnershipType,
    PropertyCondition,
    PropertyStatus,
    PropertyTypes,
    UserRole,
)
from estate_market.models.models import RentProperty, SaleProperty, User

DEFAULT_PASSWORD = "Secret123"
VALID_SIGNATURE = "t=1,v1=valid"


class FakeGateway:
    """Stands in for the Stripe client; sessions live in memory."""

    publishable_key = "pk_test_123"

    def __init__(self):
        self.sessions: dict[str, dict] = {}
        self.created: list[dict] = []
        self.fail_with: AppError | None = None

    async def create_checkout_session(self, **kwargs):
        if self.fail_with is not None:
            raise self.fail_with
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(kwargs)
        self.sessions[session_id] = {
            "id": session_id,
            "metadata": dict(kwargs["metadata"]),
            "payment_intent": f"pi_test_{len(self.created)}",
            "payment_status": "paid",
        }
        return {"id": session_id, "url": f"https://checkout.test/{session_id}"}

    async def retrieve_session(self, session_id: str):
        if session_id not in self.sessions:
            raise AppError.payment_gateway("Could not retrieve checkout session")
        return self.sessions[session_id]

    def construct_event(self, payload: bytes, signature):
        if signature != VALID_SIGNATURE:
            raise AppError.bad_request("Invalid webhook signature")
        event = json.loads(payload)
        return {
            "id": event["id"],
            "type": event["type"],
            "object": event["data"]["object"],
        }


class FakeMailer:
    def __init__(self):
        self.sent: list[tuple] = []
        self.fail = False

    async def _record(self, kind, *args):
        if self.fail:
            raise ConnectionError("SMTP unavailable")
        self.sent.append((kind, *args))
        return True

    async def send_verification_email(self, email, name, token):
        return await self._record("verify", email, name, token)

    async def send_password_reset_email(self, email, name, token):
        return await self._record("reset", email, name, token)

    async def send_booking_confirmation(self, email, name, title, check_in, check_out):
        return await self._record("booking", email, name, title)

    def tokens(self, kind: str) -> list[str]:
        return [entry[3] for entry in self.sent if entry[0] == kind]


class FakeImageHost:
    def __init__(self):
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    async def upload_image(self, content: bytes, folder: str):
        public_id = f"{folder}/img{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return {"url": f"https://img.test/{public_id}.jpg", "public_id": public_id}

    async def delete_image(self, public_id: str):
        self.deleted.append(public_id)
        return {"result": "ok"}


@pytest.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    yield db
    await db.drop_all()
    await db.dispose()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def image_host() -> FakeImageHost:
    return FakeImageHost()


@pytest.fixture
def app(database, gateway, mailer, image_host):
    application = create_app(database=database)
    application.dependency_overrides[get_payment_gateway] = lambda: gateway
    application.dependency_overrides[get_mailer] = lambda: mailer
    application.dependency_overrides[get_image_host] = lambda: image_host
    application.dependency_overrides[get_notifier] = lambda: Notifier(
        max_attempts=2, retry_delay=0
    )
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def make_user(database):
    counter = {"n": 0}

    async def factory(role: UserRole = UserRole.TENANT, **overrides) -> User:
        counter["n"] += 1
        password = overrides.pop("password", DEFAULT_PASSWORD)
        user = User(
            name=overrides.pop("name", f"Test {role.value.title()}"),
            email=overrides.pop("email", f"{role.value}{counter['n']}@example.com"),
            role=role,
            is_active=overrides.pop("is_active", True),
            is_email_verified=overrides.pop("is_email_verified", True),
            **overrides,
        )
        user.set_password(password)
        async with database.session() as session:
            session.add(user)
            await session.commit()
        return user

    return factory


@pytest.fixture
def make_rent_property(database):
    async def factory(owner: User, **overrides) -> RentProperty:
        values = dict(
            title="Sunny two bedroom apartment",
            description="A bright apartment close to the park. " * 3,
            property_type=PropertyTypes.APARTMENT,
            address="12 Park Avenue",
            city="Springfield",
            neighborhood="Downtown",
            bedrooms=2,
            bathrooms=1,
            rent_price=Decimal("1500"),
            minimum_stay=1,
            is_furnished=False,
            pet_policy=HousePolicy.NOT_ALLOWED,
            status=PropertyStatus.AVAILABLE,
            images=[],
            tags=[],
        )
        amenities = overrides.pop("amenities", [])
        values.update(overrides)
        prop = RentProperty(owner_id=owner.id, **values)
        prop.set_amenities(amenities)
        async with database.session() as session:
            session.add(prop)
            await session.commit()
        return prop

    return factory


@pytest.fixture
def make_sale_property(database):
    async def factory(owner: User, **overrides) -> SaleProperty:
        values = dict(
            title="Family house with garden",
            description="Spacious family home with a large garden. " * 3,
            property_type=PropertyTypes.HOUSE,
            address="4 Elm Street",
            city="Shelbyville",
            bedrooms=4,
            bathrooms=2.5,
            sale_price=Decimal("350000"),
            property_condition=PropertyCondition.GOOD,
            ownership_type=OwnershipType.FREEHOLD,
            price_negotiable=True,
            status=PropertyStatus.AVAILABLE,
            images=[],
            tags=[],
        )
        values.update(overrides)
        prop = SaleProperty(owner_id=owner.id, **values)
        async with database.session() as session:
            session.add(prop)
            await session.commit()
        return prop

    return factory


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {encode_token(user)}"}

