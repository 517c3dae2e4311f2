"""Utilities to build multimodal input payloads for the Responses API."""

import base64
from typing import Any, Dict, List


def to_image_data_url(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode raw image bytes into a data URL suitable for vision input."""
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def build_inputs(prompt: str, *, image_bytes: bytes, mime_type: str = "image/jpeg") -> List[Dict[str, Any]]:
    """Build a single user message carrying the image and the instruction."""
    return [
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_image", "image_url": to_image_data_url(image_bytes, mime_type)},
                {"type": "input_text", "text": prompt},
            ],
        }
    ]
