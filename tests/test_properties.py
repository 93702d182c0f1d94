"""Tests for the property listing endpoints."""

import uuid

from conftest import auth_headers
from estate_market.models.enums import PropertyStatus, UserRole

RENT_PAYLOAD = {
    "listingType": "rent",
    "title": "Modern loft in the arts district",
    "description": "Open plan loft with tall windows, exposed brick and a rooftop terrace.",
    "propertyType": "apartment",
    "address": "221 Canal Street",
    "city": "Riverton",
    "neighborhood": "Arts District",
    "bedrooms": 1,
    "bathrooms": 1,
    "rentPrice": 1800,
    "minimumStay": 6,
    "amenities": ["Gym", "Rooftop", "Gym"],
    "images": ["https://img.test/loft.jpg"],
    "featured": True,
}

SALE_PAYLOAD = {
    "listingType": "sale",
    "title": "Craftsman bungalow with workshop",
    "description": "Restored bungalow on a quiet street with a detached workshop and garden.",
    "propertyType": "house",
    "address": "9 Maple Lane",
    "city": "Riverton",
    "bedrooms": 3,
    "bathrooms": 2,
    "salePrice": 425000,
    "propertyCondition": "excellent",
    "ownershipType": "freehold",
}


class TestCreateProperty:
    async def test_landlord_creates_rent_listing(self, client, make_user) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)

        response = await client.post(
            "/api/properties/", json=RENT_PAYLOAD, headers=auth_headers(landlord)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["listingType"] == "rent"
        assert data["rentPrice"] == 1800
        assert data["price"] == 1800
        assert data["minimumStay"] == 6
        assert data["amenities"] == ["Gym", "Rooftop"]
        assert data["status"] == "available"
        assert data["owner"]["id"] == str(landlord.id)
        assert data["featured"] is False
        assert data["isNew"] is True
        assert data["likesCount"] == 0

    async def test_admin_may_feature_listing(self, client, make_user) -> None:
        admin = await make_user(role=UserRole.ADMIN)

        response = await client.post(
            "/api/properties/", json=RENT_PAYLOAD, headers=auth_headers(admin)
        )

        assert response.status_code == 201
        assert response.json()["data"]["featured"] is True

    async def test_sale_listing_has_sale_fields_only(self, client, make_user) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)

        response = await client.post(
            "/api/properties/", json=SALE_PAYLOAD, headers=auth_headers(landlord)
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["salePrice"] == 425000
        assert data["propertyCondition"] == "excellent"
        assert "rentPrice" not in data

    async def test_tenant_cannot_create(self, client, make_user) -> None:
        tenant = await make_user(role=UserRole.TENANT)

        response = await client.post(
            "/api/properties/", json=RENT_PAYLOAD, headers=auth_headers(tenant)
        )

        assert response.status_code == 403

    async def test_requires_authentication(self, client) -> None:
        response = await client.post("/api/properties/", json=RENT_PAYLOAD)
        assert response.status_code == 401

    async def test_rent_listing_requires_rent_price(self, client, make_user) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)
        payload = {k: v for k, v in RENT_PAYLOAD.items() if k != "rentPrice"}

        response = await client.post(
            "/api/properties/", json=payload, headers=auth_headers(landlord)
        )

        assert response.status_code == 400
        assert response.json()["errors"]

    async def test_short_description_rejected(self, client, make_user) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)

        response = await client.post(
            "/api/properties/",
            json={**RENT_PAYLOAD, "description": "Too short"},
            headers=auth_headers(landlord),
        )

        assert response.status_code == 400

    async def test_maximum_stay_below_minimum_rejected(self, client, make_user) -> None:
        landlord = await make_user(role=UserRole.LANDLORD)

        response = await client.post(
            "/api/properties/",
            json={**RENT_PAYLOAD, "minimumStay": 6, "maximumStay": 3},
            headers=auth_headers(landlord),
        )

        assert response.status_code == 400


class TestReadProperty:
    async def test_get_increments_views(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner)

        first = await client.get(f"/api/properties/{prop.id}")
        second = await client.get(f"/api/properties/{prop.id}")

        assert first.status_code == 200
        assert first.json()["data"]["views"] == 1
        assert second.json()["data"]["views"] == 2

    async def test_unknown_property_is_404(self, client) -> None:
        response = await client.get(f"/api/properties/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "Property not found"

    async def test_malformed_id_is_400(self, client) -> None:
        response = await client.get("/api/properties/not-a-uuid")
        assert response.status_code == 400

    async def test_featured_only_lists_available_featured(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        await make_rent_property(owner, title="Featured and available", featured=True)
        await make_rent_property(
            owner,
            title="Featured but rented",
            featured=True,
            status=PropertyStatus.RENTED,
        )
        await make_rent_property(owner, title="Plain listing")

        response = await client.get("/api/properties/featured", params={"limit": "3"})

        assert [p["title"] for p in response.json()["data"]] == ["Featured and available"]

    async def test_by_city(self, client, make_user, make_rent_property) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        await make_rent_property(owner, city="Lakeside")
        await make_rent_property(owner, city="Hilltop")

        response = await client.get("/api/properties/city/lake")

        assert [p["city"] for p in response.json()["data"]] == ["Lakeside"]

    async def test_filters_facets(
        self, client, make_user, make_rent_property, make_sale_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        await make_rent_property(owner, amenities=["Parking", "Balcony"])
        await make_sale_property(owner)
        await make_rent_property(
            owner, city="Ghost Town", status=PropertyStatus.MAINTENANCE
        )

        response = await client.get("/api/properties/filters")

        data = response.json()["data"]
        assert data["cities"] == ["Shelbyville", "Springfield"]
        assert data["listingTypes"] == ["rent", "sale"]
        assert data["bedroomOptions"] == [2, 4]
        assert data["amenities"] == ["Balcony", "Parking"]

    async def test_my_properties_scoped_to_owner(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        other = await make_user(role=UserRole.LANDLORD)
        await make_rent_property(owner, status=PropertyStatus.RENTED)
        await make_rent_property(owner)
        await make_rent_property(other)

        response = await client.get(
            "/api/properties/user/my-properties", headers=auth_headers(owner)
        )

        body = response.json()
        assert body["meta"]["total"] == 2
        assert body["meta"]["limit"] == 10
        assert all(p["owner"]["id"] == str(owner.id) for p in body["data"])


class TestUpdateAndDelete:
    async def test_owner_updates_shared_and_rent_fields(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner, amenities=["Pool"])

        response = await client.patch(
            f"/api/properties/{prop.id}",
            json={"rentPrice": 1750, "amenities": ["Pool", "Sauna"], "salePrice": 99},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["rentPrice"] == 1750
        assert data["amenities"] == ["Pool", "Sauna"]
        assert "salePrice" not in data

    async def test_non_owner_gets_404(self, client, make_user, make_rent_property) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        intruder = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner)

        response = await client.patch(
            f"/api/properties/{prop.id}",
            json={"title": "Hijacked listing title"},
            headers=auth_headers(intruder),
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Property not found or you are not the owner"

    async def test_null_rent_price_rejected(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        tenant = await make_user()
        prop = await make_rent_property(owner, rent_price=1500)

        response = await client.patch(
            f"/api/properties/{prop.id}",
            json={"rentPrice": None},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert "rentPrice" in {error["field"] for error in response.json()["errors"]}

        listing = (await client.get(f"/api/properties/{prop.id}")).json()["data"]
        assert listing["rentPrice"] == 1500

        booking = await client.post(
            "/api/bookings/",
            json={
                "propertyId": str(prop.id),
                "checkIn": "2027-03-01",
                "checkOut": "2027-07-01",
            },
            headers=auth_headers(tenant),
        )
        assert booking.status_code == 201

    async def test_null_title_rejected(self, client, make_user, make_rent_property) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner)

        response = await client.patch(
            f"/api/properties/{prop.id}",
            json={"title": None},
            headers=auth_headers(owner),
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    async def test_null_optional_field_clears_it(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner, neighborhood="Old Town")

        response = await client.patch(
            f"/api/properties/{prop.id}",
            json={"neighborhood": None},
            headers=auth_headers(owner),
        )

        assert response.status_code == 200
        assert response.json()["data"]["neighborhood"] is None

    async def test_empty_update_rejected(self, client, make_user, make_rent_property) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner)

        response = await client.patch(
            f"/api/properties/{prop.id}", json={}, headers=auth_headers(owner)
        )

        assert response.status_code == 400

    async def test_admin_deletes_any_listing(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        admin = await make_user(role=UserRole.ADMIN)
        prop = await make_rent_property(owner)

        response = await client.delete(
            f"/api/properties/{prop.id}", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert (await client.get(f"/api/properties/{prop.id}")).status_code == 404

    async def test_other_landlord_cannot_delete(
        self, client, make_user, make_rent_property
    ) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        other = await make_user(role=UserRole.LANDLORD)
        prop = await make_rent_property(owner)

        response = await client.delete(
            f"/api/properties/{prop.id}", headers=auth_headers(other)
        )

        assert response.status_code == 403


class TestLikes:
    async def test_like_then_unlike(self, client, make_user, make_rent_property) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        tenant = await make_user(role=UserRole.TENANT)
        prop = await make_rent_property(owner)

        liked = await client.post(
            f"/api/properties/{prop.id}/like", headers=auth_headers(tenant)
        )
        unliked = await client.post(
            f"/api/properties/{prop.id}/like", headers=auth_headers(tenant)
        )

        assert liked.json()["data"] == {"liked": True, "likesCount": 1}
        assert liked.json()["message"] == "Property liked"
        assert unliked.json()["data"] == {"liked": False, "likesCount": 0}

    async def test_like_shows_in_listing(self, client, make_user, make_rent_property) -> None:
        owner = await make_user(role=UserRole.LANDLORD)
        tenant = await make_user(role=UserRole.TENANT)
        prop = await make_rent_property(owner)

        await client.post(f"/api/properties/{prop.id}/like", headers=auth_headers(tenant))
        data = (await client.get(f"/api/properties/{prop.id}")).json()["data"]

        assert data["likes"] == [str(tenant.id)]
        assert data["likesCount"] == 1
