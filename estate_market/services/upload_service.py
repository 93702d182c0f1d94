import logging
import os

from fastapi import UploadFile

from estate_market.core.cloudinary_setup import MAX_FILE_SIZE, MAX_FILES, cloudinary_client
from estate_market.core.errors import AppError
from estate_market.models.enums import ALLOWED_IMAGE_FORMATS, UserRole
from estate_market.schemas.schema import UploadImageResponse

logger = logging.getLogger(__name__)


class UploadService:
    def __init__(self, image_host=None):
        self.image_host = image_host or cloudinary_client

    @staticmethod
    def folder_for(current_user) -> str:
        return f"uploads/{current_user.id}"

    async def _read_image(self, file: UploadFile) -> bytes:
        extension = os.path.splitext(file.filename or "")[1].lower().lstrip(".")
        if extension not in ALLOWED_IMAGE_FORMATS:
            raise AppError.bad_request(
                "Invalid file type. Allowed types: "
                + ", ".join(sorted(ALLOWED_IMAGE_FORMATS))
            )

        content = await file.read()
        if not content:
            raise AppError.bad_request(f"{file.filename} is empty")
        if len(content) > MAX_FILE_SIZE:
            raise AppError.bad_request(
                f"{file.filename} exceeds the {MAX_FILE_SIZE // (1024 * 1024)}MB limit"
            )
        return content

    async def upload_single(self, current_user, file: UploadFile) -> UploadImageResponse:
        content = await self._read_image(file)
        result = await self.image_host.upload_image(content, self.folder_for(current_user))
        logger.info(f"User {current_user.id} uploaded {result['public_id']}")
        return UploadImageResponse(**result)

    async def upload_multiple(
        self, current_user, files: list[UploadFile]
    ) -> list[UploadImageResponse]:
        if not files:
            raise AppError.bad_request("No files uploaded")
        if len(files) > MAX_FILES:
            raise AppError.bad_request(f"You can upload at most {MAX_FILES} images")

        contents = [await self._read_image(file) for file in files]
        folder = self.folder_for(current_user)
        uploaded = []
        for content in contents:
            result = await self.image_host.upload_image(content, folder)
            uploaded.append(UploadImageResponse(**result))
        logger.info(f"User {current_user.id} uploaded {len(uploaded)} images")
        return uploaded

    async def delete_image(self, current_user, public_id: str) -> None:
        public_id = (public_id or "").strip()
        if not public_id:
            raise AppError.bad_request("Public id is required")
        owns_image = public_id.startswith(self.folder_for(current_user) + "/")
        if not owns_image and current_user.role != UserRole.ADMIN:
            raise AppError.forbidden("You can only delete your own images")
        await self.image_host.delete_image(public_id)
        logger.info(f"User {current_user.id} deleted {public_id}")
