from typing import Optional

from fastapi import APIRouter, File, Form, Request, UploadFile

from controllers.image_controller import get_image, upload_image

router = APIRouter(prefix="/api/images", tags=["images"])


@router.post("/upload", status_code=201)
async def upload_image_route(
	request: Request,
	image: Optional[UploadFile] = File(None),
	quality: Optional[str] = Form(None),
):
	"""Compress an uploaded JPEG/PNG and return the stored record."""
	return await upload_image(request, image, quality)


@router.get("/{image_id}")
async def get_image_route(request: Request, image_id: str):
	"""Return the stored record for the specified image id."""
	return await get_image(request, image_id)
