"""Tests for image uploads."""

from conftest import auth_headers
from estate_market.core.cloudinary_setup import MAX_FILE_SIZE, MAX_FILES
from estate_market.models.enums import UserRole

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestUploadSingle:
    async def test_upload_into_user_folder(self, client, image_host, make_user) -> None:
        user = await make_user(role=UserRole.LANDLORD)

        response = await client.post(
            "/api/upload/single",
            files={"image": ("photo.png", PNG, "image/png")},
            headers=auth_headers(user),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["publicId"] == f"uploads/{user.id}/img1"
        assert data["url"].startswith("https://img.test/")
        assert image_host.uploaded == [data["publicId"]]

    async def test_rejects_unsupported_extension(self, client, image_host, make_user) -> None:
        user = await make_user()

        response = await client.post(
            "/api/upload/single",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert image_host.uploaded == []

    async def test_rejects_oversized_file(self, client, image_host, make_user) -> None:
        user = await make_user()

        response = await client.post(
            "/api/upload/single",
            files={"image": ("big.jpg", b"x" * (MAX_FILE_SIZE + 1), "image/jpeg")},
            headers=auth_headers(user),
        )

        assert response.status_code == 400

    async def test_requires_authentication(self, client) -> None:
        response = await client.post(
            "/api/upload/single", files={"image": ("photo.png", PNG, "image/png")}
        )
        assert response.status_code == 401


class TestUploadMultiple:
    async def test_uploads_all(self, client, image_host, make_user) -> None:
        user = await make_user()

        response = await client.post(
            "/api/upload/multiple",
            files=[
                ("images", ("a.png", PNG, "image/png")),
                ("images", ("b.jpg", PNG, "image/jpeg")),
            ],
            headers=auth_headers(user),
        )

        assert response.status_code == 201
        assert len(response.json()["data"]) == 2

    async def test_one_bad_file_uploads_nothing(self, client, image_host, make_user) -> None:
        user = await make_user()

        response = await client.post(
            "/api/upload/multiple",
            files=[
                ("images", ("a.png", PNG, "image/png")),
                ("images", ("b.gif", PNG, "image/gif")),
            ],
            headers=auth_headers(user),
        )

        assert response.status_code == 400
        assert image_host.uploaded == []

    async def test_too_many_files(self, client, make_user) -> None:
        user = await make_user()
        files = [("images", (f"{i}.png", PNG, "image/png")) for i in range(MAX_FILES + 1)]

        response = await client.post(
            "/api/upload/multiple", files=files, headers=auth_headers(user)
        )

        assert response.status_code == 400


class TestDeleteImage:
    async def test_owner_deletes_own_image(self, client, image_host, make_user) -> None:
        user = await make_user()
        public_id = f"uploads/{user.id}/img1"

        response = await client.delete(
            f"/api/upload/{public_id}", headers=auth_headers(user)
        )

        assert response.status_code == 200
        assert image_host.deleted == [public_id]

    async def test_cannot_delete_someone_elses(self, client, image_host, make_user) -> None:
        user = await make_user()
        other = await make_user()

        response = await client.delete(
            f"/api/upload/uploads/{other.id}/img1", headers=auth_headers(user)
        )

        assert response.status_code == 403
        assert image_host.deleted == []

    async def test_admin_deletes_any(self, client, image_host, make_user) -> None:
        admin = await make_user(role=UserRole.ADMIN)
        other = await make_user()

        response = await client.delete(
            f"/api/upload/uploads/{other.id}/img1", headers=auth_headers(admin)
        )

        assert response.status_code == 200
