from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """Rectangle expressed as percentages of the image width/height."""

    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class DetectedRegion:
    """A face, text or object area reported by the vision model.

    Attributes:
        type: Region kind as returned by the model (face, text or object).
        bbox: Percentage-based bounding box.
        confidence: Model confidence in [0, 1], or None when the model omitted it.
        description: Short free-text description of the region.
    """

    type: str
    bbox: BoundingBox
    confidence: Optional[float] = None
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectedRegion":
        bbox = data["bbox"]
        return cls(
            type=data["type"],
            bbox=BoundingBox(x=bbox["x"], y=bbox["y"], width=bbox["width"], height=bbox["height"]),
            confidence=data.get("confidence"),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class OriginalImage:
    url: str
    size: int
    format: str


@dataclass(frozen=True)
class CompressedImage:
    url: str
    size: int


@dataclass(frozen=True)
class ImageRecord:
    """In-memory representation of a row in the IMAGE_RECORD table.

    Attributes:
        id: Repository-assigned identifier (None for new records).
        original_image: Hosted URL, byte size and format of the uploaded file.
        compressed_image: Hosted URL and byte size of the re-encoded JPEG.
        compression_ratio: compressed size divided by original size.
        detected_regions: Regions reported by the detector, in model order.
        created_at: UTC timestamp of the upload.
    """

    id: Optional[str]
    original_image: OriginalImage
    compressed_image: CompressedImage
    compression_ratio: float
    detected_regions: Tuple[DetectedRegion, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        *,
        original_url: str,
        original_bytes: bytes,
        original_format: str,
        compressed_url: str,
        compressed_bytes: bytes,
        regions: Sequence[DetectedRegion],
    ) -> "ImageRecord":
        """Create a new record whose sizes and ratio come from the uploaded buffers."""
        original_size = len(original_bytes)
        compressed_size = len(compressed_bytes)
        return cls(
            id=None,
            original_image=OriginalImage(url=original_url, size=original_size, format=original_format),
            compressed_image=CompressedImage(url=compressed_url, size=compressed_size),
            compression_ratio=compressed_size / original_size,
            detected_regions=tuple(regions),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Return the camelCase JSON shape served by the API."""
        return {
            "id": self.id,
            "originalImage": {
                "url": self.original_image.url,
                "size": self.original_image.size,
                "format": self.original_image.format,
            },
            "compressedImage": {
                "url": self.compressed_image.url,
                "size": self.compressed_image.size,
            },
            "compressionRatio": self.compression_ratio,
            "detectedRegions": [region.to_dict() for region in self.detected_regions],
            "createdAt": self.created_at.isoformat(),
        }
