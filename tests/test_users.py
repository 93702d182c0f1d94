"""Tests for user administration endpoints."""

import uuid

from conftest import auth_headers
from estate_market.models.enums import UserRole


class TestListUsers:
    async def test_staff_can_list_and_filter(self, client, make_user) -> None:
        admin = await make_user(role=UserRole.ADMIN)
        support = await make_user(role=UserRole.SUPPORT)
        await make_user(role=UserRole.TENANT, name="Alice Walker")
        await make_user(role=UserRole.LANDLORD, name="Bob Builder")

        everyone = await client.get("/api/users/", headers=auth_headers(admin))
        landlords = await client.get(
            "/api/users/", params={"role": "landlord"}, headers=auth_headers(support)
        )
        searched = await client.get(
            "/api/users/", params={"search": "alice"}, headers=auth_headers(admin)
        )

        assert everyone.json()["meta"]["total"] == 4
        assert [u["name"] for u in landlords.json()["data"]] == ["Bob Builder"]
        assert [u["name"] for u in searched.json()["data"]] == ["Alice Walker"]

    async def test_tenant_cannot_list(self, client, make_user) -> None:
        tenant = await make_user()

        response = await client.get("/api/users/", headers=auth_headers(tenant))

        assert response.status_code == 403


class TestGetUser:
    async def test_found_and_missing(self, client, make_user) -> None:
        user = await make_user()

        found = await client.get(f"/api/users/{user.id}", headers=auth_headers(user))
        missing = await client.get(f"/api/users/{uuid.uuid4()}", headers=auth_headers(user))

        assert found.json()["data"]["id"] == str(user.id)
        assert missing.status_code == 404


class TestUpdateUser:
    async def test_user_updates_self(self, client, make_user) -> None:
        user = await make_user()

        response = await client.put(
            f"/api/users/{user.id}", json={"name": "New Name"}, headers=auth_headers(user)
        )

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "New Name"

    async def test_user_cannot_promote_self(self, client, make_user) -> None:
        user = await make_user()

        response = await client.put(
            f"/api/users/{user.id}", json={"role": "admin"}, headers=auth_headers(user)
        )

        assert response.status_code == 403

    async def test_user_cannot_edit_others(self, client, make_user) -> None:
        user = await make_user()
        other = await make_user()

        response = await client.put(
            f"/api/users/{other.id}", json={"name": "Hacked Name"}, headers=auth_headers(user)
        )

        assert response.status_code == 403

    async def test_admin_deactivates_user(self, client, make_user) -> None:
        admin = await make_user(role=UserRole.ADMIN)
        user = await make_user()

        response = await client.put(
            f"/api/users/{user.id}",
            json={"isActive": False, "role": "landlord"},
            headers=auth_headers(admin),
        )
        locked_out = await client.get("/api/auth/profile", headers=auth_headers(user))

        assert response.json()["data"]["isActive"] is False
        assert response.json()["data"]["role"] == "landlord"
        assert locked_out.status_code == 403
