"""Validation helpers for uploaded images."""

from typing import Optional

from fastapi import UploadFile

from utils.errors import ClientInputError

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png"}


def validate_image_upload(image_file: Optional[UploadFile]) -> str:
    """Ensure an image file was sent with an accepted content type.

    Returns:
        The normalised MIME type of the upload.
    """
    if image_file is None or not image_file.filename:
        raise ClientInputError("No image file uploaded")
    content_type = (image_file.content_type or "").lower().split(";", 1)[0].strip()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ClientInputError("Invalid file type. Only JPG and PNG are allowed")
    return content_type


async def read_image_bytes(image_file: UploadFile, max_bytes: int) -> bytes:
    """Read validated image bytes, ensuring the upload is neither empty nor too large."""
    image_bytes = await image_file.read()
    if not image_bytes:
        raise ClientInputError("Uploaded image file is empty")
    if len(image_bytes) > max_bytes:
        raise ClientInputError(f"Image exceeds the {max_bytes // (1024 * 1024)}MB upload limit")
    return image_bytes
