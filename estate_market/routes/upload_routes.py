from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi_utils.cbv import cbv

from estate_market.core.get_current_user import get_current_user
from estate_market.core.get_provider import get_image_host
from estate_market.core.responses import send_response
from estate_market.core.safe_handler import safe_handler
from estate_market.models.models import User
from estate_market.services.upload_service import UploadService

router = APIRouter(tags=["Uploads"])


@cbv(router)
class UploadRoutes:
    @router.post("/single")
    @safe_handler
    async def upload_single(
        self,
        request: Request,
        image: UploadFile = File(...),
        current_user: User = Depends(get_current_user),
        image_host=Depends(get_image_host),
    ):
        result = await UploadService(image_host).upload_single(current_user, image)
        return send_response(
            result, message="Image uploaded successfully", status_code=201
        )

    @router.post("/multiple")
    @safe_handler
    async def upload_multiple(
        self,
        request: Request,
        images: list[UploadFile] = File(...),
        current_user: User = Depends(get_current_user),
        image_host=Depends(get_image_host),
    ):
        results = await UploadService(image_host).upload_multiple(current_user, images)
        return send_response(
            results,
            message=f"{len(results)} images uploaded successfully",
            status_code=201,
        )

    @router.delete("/{public_id:path}")
    @safe_handler
    async def delete_image(
        self,
        request: Request,
        public_id: str,
        current_user: User = Depends(get_current_user),
        image_host=Depends(get_image_host),
    ):
        await UploadService(image_host).delete_image(current_user, public_id)
        return send_response(None, message="Image deleted successfully")
