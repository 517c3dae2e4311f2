"""Upload pipeline: format → detect → compress → store (x2) → persist.

Stages run strictly in order and are never retried. Region detection is the
only stage allowed to fail quietly; every other failure aborts the upload as
an `UpstreamServiceError` before anything is written to the database.
"""

from __future__ import annotations

import asyncio
import logging

from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.asset_store import AssetStoreGateway
from services.image_compressor import AdaptiveCompressor, read_image_format
from services.openai.region_detector import RegionDetector
from utils.errors import UpstreamServiceError

LOGGER = logging.getLogger(__name__)


class UploadPipeline:
    """Sequence the collaborators that turn one upload into one ImageRecord."""

    def __init__(
        self,
        detector: RegionDetector,
        compressor: AdaptiveCompressor,
        asset_store: AssetStoreGateway,
        image_dal: ImageDAL,
    ) -> None:
        self.detector = detector
        self.compressor = compressor
        self.asset_store = asset_store
        self.image_dal = image_dal

    async def run(self, image_bytes: bytes, mime_type: str, quality: int) -> ImageRecord:
        """Process validated image bytes and return the stored record.

        Raises:
            UpstreamServiceError: If reading, compressing, uploading or persisting fails.
        """
        try:
            original_format = await asyncio.to_thread(read_image_format, image_bytes)
            regions = await self.detector.detect_regions(image_bytes, mime_type)
            compressed_bytes = await self.compressor.compress(image_bytes, regions, quality)
            compressed_url = await self.asset_store.store(compressed_bytes, "image/jpeg")
            original_url = await self.asset_store.store(image_bytes, mime_type)
            record = ImageRecord.build(
                original_url=original_url,
                original_bytes=image_bytes,
                original_format=original_format,
                compressed_url=compressed_url,
                compressed_bytes=compressed_bytes,
                regions=regions,
            )
            stored = await self.image_dal.create_image(record)
        except UpstreamServiceError:
            raise
        except Exception as exc:
            LOGGER.error("Error processing image: %s", exc)
            raise UpstreamServiceError(f"Error processing image: {exc}") from exc

        LOGGER.info(
            "Stored image %s (ratio %.3f, %d regions)", stored.id, stored.compression_ratio, len(stored.detected_regions)
        )
        return stored
