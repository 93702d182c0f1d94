"""Tests for the response envelope and error mapping."""

import pytest
from fastapi import Request

from estate_market.core.breaker import CircuitBreaker
from estate_market.core.errors import AppError
from estate_market.core.friendly_msg import get_friendly_message
from estate_market.core.safe_handler import safe_handler


class TestEnvelope:
    async def test_health(self, client) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_unknown_route(self, client) -> None:
        response = await client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "statusCode": 404,
            "message": "Route /api/does-not-exist not found",
            "data": None,
        }

    async def test_validation_errors_list_fields(self, client) -> None:
        response = await client.post("/api/auth/login", json={"email": "not-an-email"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        fields = {error["field"] for error in body["errors"]}
        assert {"email", "password"} <= fields

    async def test_malformed_token_is_401(self, client) -> None:
        response = await client.get(
            "/api/auth/profile", headers={"Authorization": "Bearer abc.def.ghi"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"


class TestSafeHandler:
    async def test_app_errors_pass_through(self) -> None:
        @safe_handler
        async def handler(request: Request):
            raise AppError.conflict("taken")

        with pytest.raises(AppError) as exc_info:
            await handler(Request({"type": "http", "method": "GET", "path": "/x", "headers": []}))

        assert exc_info.value.status_code == 409

    async def test_unexpected_errors_become_internal(self) -> None:
        @safe_handler
        async def handler():
            raise ConnectionError("db down")

        with pytest.raises(AppError) as exc_info:
            await handler()

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == get_friendly_message(ConnectionError())
        assert isinstance(exc_info.value.__cause__, ConnectionError)


class TestFriendlyMessages:
    def test_known_error_types(self) -> None:
        assert "too long" in get_friendly_message(TimeoutError())
        assert "Invalid data" in get_friendly_message(ValueError("bad"))

    def test_fallback(self) -> None:
        assert get_friendly_message(RuntimeError()) == (
            "Something went wrong on our end. Please try again."
        )


class TestCircuitBreaker:
    async def test_opens_after_threshold(self) -> None:
        breaker = CircuitBreaker("gateway", failure_threshold=2)

        async def failing():
            raise AppError.payment_gateway()

        for _ in range(2):
            with pytest.raises(AppError):
                await breaker.call(failing)

        assert breaker.state == "OPEN"
        with pytest.raises(AppError) as exc_info:
            await breaker.call(failing)
        assert exc_info.value.kind == "upstream"

    async def test_client_errors_do_not_count(self) -> None:
        breaker = CircuitBreaker("gateway", failure_threshold=1)

        async def rejected():
            raise AppError.bad_request("bad card")

        with pytest.raises(AppError):
            await breaker.call(rejected)

        assert breaker.state == "CLOSED"
        assert breaker.failure_count == 0
