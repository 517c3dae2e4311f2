from fastapi import Request, UploadFile
from typing import Dict, Any, Optional

from dal.image_dal import ImageDAL
from services.image_compressor import AdaptiveCompressor, parse_quality
from services.openai.region_detector import RegionDetector
from services.upload_pipeline import UploadPipeline
from utils.errors import NotFoundError, UpstreamServiceError
from utils.media_validation import read_image_bytes, validate_image_upload


async def upload_image(
    request: Request,
    file: Optional[UploadFile],
    quality: Optional[str] = None,
) -> Dict[str, Any]:
    """Handle image upload, region detection, compression, hosting and storage.

    Args:
        request: FastAPI Request object (used to access app.state for shared clients).
        file: Uploaded JPEG or PNG image.
        quality: Optional string-encoded JPEG quality; unparsable values fall back to 60.

    Returns:
        The stored record in its camelCase JSON shape.
    """
    mime_type = validate_image_upload(file)
    config = request.app.state.config
    image_bytes = await read_image_bytes(file, config.max_upload_bytes)

    # Acquire shared resources from app.state
    openai_client = request.app.state.openai_client
    db_initializer = request.app.state.db_initializer
    asset_store = request.app.state.asset_store

    pipeline = UploadPipeline(
        detector=RegionDetector(openai_client, model=config.openai_model),
        compressor=AdaptiveCompressor(),
        asset_store=asset_store,
        image_dal=ImageDAL(db_initializer),
    )
    record = await pipeline.run(image_bytes, mime_type, parse_quality(quality))
    return record.to_dict()


async def get_image(request: Request, image_id: str) -> Dict[str, Any]:
    """Controller to fetch a stored image record.

    Raises:
        NotFoundError: If no record has the given id.
        UpstreamServiceError: If the repository lookup fails.
    """
    image_dal = ImageDAL(request.app.state.db_initializer)

    try:
        record = await image_dal.get_image_by_id(image_id)
    except Exception as exc:
        raise UpstreamServiceError(f"Error retrieving image: {exc}") from exc
    if record is None:
        raise NotFoundError("Image not found")
    return record.to_dict()
