"""Description: Region detection service using OpenAI's Responses API."""

import logging
import time
from typing import Any, Dict, List

from openai import AsyncOpenAI

from models.image_record import DetectedRegion
from services.openai.media_inputs import build_inputs
from services.openai.region_prompts import build_detection_prompt
from services.openai.response_parser import extract_text, parse_region_payload, validate_regions

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = "gpt-5"


class RegionDetector:
    """Class for locating faces, text and objects in an image."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        """Initialize the RegionDetector with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.prompt = build_detection_prompt()

    async def detect_regions(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> List[DetectedRegion]:
        """Return the validated regions found in the image.

        A failed request or an unusable reply results in an empty list; the
        upload flow continues without detection data.
        """
        start_time = time.time()
        try:
            response = await self._create_response(build_inputs(self.prompt, image_bytes=image_bytes, mime_type=mime_type))
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.error("Error detecting regions: %s", exc)
            return []

        regions = validate_regions(parse_region_payload(extract_text(response)))
        LOGGER.info("Detected %d regions in %.2fs", len(regions), time.time() - start_time)
        return regions

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        """Send the multimodal request to the OpenAI Responses API."""
        return await self.client.responses.create(model=self.model, input=inputs)

# end of RegionDetector
