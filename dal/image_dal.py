"""Async Data Access Layer for the IMAGE_RECORD table.

Provides ImageDAL with the create/read operations used by the upload flow,
on top of `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import dataclasses
import json
import uuid
from datetime import datetime
from typing import Optional, Sequence

from models.image_record import CompressedImage, DetectedRegion, ImageRecord, OriginalImage
from utils.database_init import AsyncDatabaseInitializer


class ImageDAL:
    """Data access layer for ImageRecord documents.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = (
        "id",
        "original_url",
        "original_size",
        "original_format",
        "compressed_url",
        "compressed_size",
        "compression_ratio",
        "detected_regions",
        "created_at",
    )
    _COLUMN_LIST = ", ".join(_COLUMNS)
    _PLACEHOLDERS = ", ".join("?" for _ in _COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def create_image(self, record: ImageRecord) -> ImageRecord:
        """Insert a new record and return it with its assigned id.

        Args:
            record: ImageRecord with `id=None`.

        Returns:
            The same record carrying the generated identifier.
        """
        stored = dataclasses.replace(record, id=uuid.uuid4().hex)
        regions_json = json.dumps([region.to_dict() for region in stored.detected_regions])

        async with self._db.connection() as conn:
            await conn.execute(
                f"INSERT INTO IMAGE_RECORD ({self._COLUMN_LIST}) VALUES ({self._PLACEHOLDERS})",
                (
                    stored.id,
                    stored.original_image.url,
                    stored.original_image.size,
                    stored.original_image.format,
                    stored.compressed_image.url,
                    stored.compressed_image.size,
                    stored.compression_ratio,
                    regions_json,
                    stored.created_at.isoformat(),
                ),
            )
            await conn.commit()
        return stored

    async def get_image_by_id(self, image_id: str) -> Optional[ImageRecord]:
        """Return the ImageRecord for `image_id`, or None if not found."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM IMAGE_RECORD WHERE id = ?",
                (image_id,),
            )
            row = await cur.fetchone()
            return self._row_to_record(row) if row else None

    async def count_images(self) -> int:
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT COUNT(*) FROM IMAGE_RECORD")
            row = await cur.fetchone()
            return int(row[0]) if row else 0

    @staticmethod
    def _row_to_record(row: Sequence[object]) -> ImageRecord:
        """Convert a DB row tuple into an ImageRecord."""
        regions = tuple(DetectedRegion.from_dict(item) for item in json.loads(row[7]))
        return ImageRecord(
            id=row[0],
            original_image=OriginalImage(url=row[1], size=row[2], format=row[3]),
            compressed_image=CompressedImage(url=row[4], size=row[5]),
            compression_ratio=row[6],
            detected_regions=regions,
            created_at=datetime.fromisoformat(row[8]),
        )
