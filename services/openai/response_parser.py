"""Helpers to turn a vision-model reply into validated DetectedRegion objects.

Parsing runs in two stages: `parse_region_payload` maps raw text to an
optional JSON array (None when the reply is not usable) and
`validate_regions` keeps only well-formed entries.
"""

from __future__ import annotations

import json
import logging
import math
from numbers import Real
from typing import Any, Dict, List, Optional

from models.image_record import BoundingBox, DetectedRegion

LOGGER = logging.getLogger(__name__)
BBOX_FIELDS = ("x", "y", "width", "height")


def extract_text(response: Any) -> str:
    """Return the concatenated output text of a Responses API result."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text:
        return output_text
    parts: List[str] = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                parts.append(getattr(content, "text", "") or "")
    return "".join(parts)


def strip_code_fence(text: str) -> str:
    """Return the body of the first ```json (or bare ```) block, else the text itself."""
    if "```json" in text:
        return text.split("```json", 1)[1].split("```", 1)[0].strip()
    if "```" in text:
        return text.split("```", 2)[1].strip()
    return text.strip()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def parse_region_payload(text: Optional[str]) -> Optional[List[Any]]:
    """Parse model text into a JSON array, or None when it is not one."""
    if not text:
        return None
    cleaned = strip_code_fence(text)
    try:
        payload = json.loads(cleaned, parse_constant=_reject_constant)
    except ValueError:
        LOGGER.warning("Unparsable region detection reply: %r", text[:500])
        return None
    if not isinstance(payload, list):
        LOGGER.warning("Region detection reply is not a JSON array: %s", type(payload).__name__)
        return None
    return payload


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _is_valid_region(item: Any) -> bool:
    if not isinstance(item, dict) or not item.get("type"):
        return False
    bbox = item.get("bbox")
    if not isinstance(bbox, dict):
        return False
    return all(_is_number(bbox.get(name)) for name in BBOX_FIELDS)


def _to_region(item: Dict[str, Any]) -> DetectedRegion:
    bbox = item["bbox"]
    confidence = item.get("confidence")
    description = item.get("description")
    return DetectedRegion(
        type=str(item["type"]),
        bbox=BoundingBox(**{name: float(bbox[name]) for name in BBOX_FIELDS}),
        confidence=float(confidence) if _is_number(confidence) else None,
        description=description if isinstance(description, str) else "",
    )


def validate_regions(items: Optional[List[Any]]) -> List[DetectedRegion]:
    """Drop entries without a type or with an incomplete/non-numeric bbox."""
    if not items:
        return []
    return [_to_region(item) for item in items if _is_valid_region(item)]
