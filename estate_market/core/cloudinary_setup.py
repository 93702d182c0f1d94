import logging

import cloudinary
import cloudinary.api
import cloudinary.uploader

from .asyncio_threads import asyncio_run
from .breaker import CircuitBreaker
from .errors import AppError
from .settings import settings

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024
MAX_FILES = 10


class CloudinaryClient:
    def __init__(self):
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_SECRET_KEY,
            secure=True,
        )
        self.breaker = CircuitBreaker("cloudinary")

    @property
    def configured(self) -> bool:
        return bool(settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY)

    async def connect(self) -> bool:
        if not self.configured:
            return False
        info = await asyncio_run.run_blocking(cloudinary.api.ping)
        return info.get("status") == "ok"

    async def upload_image(self, content: bytes, folder: str) -> dict:
        async def handler():
            try:
                result = await asyncio_run.run_blocking(
                    cloudinary.uploader.upload,
                    content,
                    folder=folder,
                    resource_type="image",
                    transformation=[{"quality": "auto", "fetch_format": "auto"}],
                )
            except Exception as e:
                logger.error(f"Cloudinary upload to {folder} failed: {e}")
                raise AppError.upstream("Image upload failed") from e
            return {"url": result["secure_url"], "public_id": result["public_id"]}

        return await self.breaker.call(handler)

    async def delete_image(self, public_id: str) -> dict:
        async def handler():
            try:
                result = await asyncio_run.run_blocking(
                    cloudinary.uploader.destroy,
                    public_id,
                    resource_type="image",
                    invalidate=True,
                )
            except Exception as e:
                logger.error(f"Cloudinary delete of {public_id} failed: {e}")
                raise AppError.upstream("Failed to delete image") from e
            if result.get("result") not in ("ok", "not found"):
                raise AppError.upstream(f"Failed to delete image: {result.get('result')}")
            return result

        return await self.breaker.call(handler)


cloudinary_client = CloudinaryClient()
