"""Gateway for uploading image bytes to the hosted asset store (Cloudinary).

Each call converts the bytes to a base64 data URI and performs one signed
upload through the Cloudinary REST API with automatic resource-type
detection, remote quality/format auto-optimisation and a fixed folder. The
returned `secure_url` is the durable address stored in the image record.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import aiohttp

LOGGER = logging.getLogger(__name__)

UPLOAD_URL_TEMPLATE = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"
AUTO_OPTIMIZE_TRANSFORMATION = "q_auto/f_auto"


class AssetStoreError(Exception):
    """Raised when the asset host rejects or fails an upload."""


@dataclass(frozen=True)
class AssetStoreCredentials:
    cloud_name: str
    api_key: str
    api_secret: str

    @classmethod
    def from_values(cls, cloud_name: Optional[str], api_key: Optional[str], api_secret: Optional[str]) -> "AssetStoreCredentials":
        missing = [
            name
            for name, value in (
                ("CLOUDINARY_CLOUD_NAME", cloud_name),
                ("CLOUDINARY_API_KEY", api_key),
                ("CLOUDINARY_API_SECRET", api_secret),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(f"Missing asset store settings: {', '.join(missing)}")
        return cls(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret)


def to_data_uri(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """Return the SHA-1 request signature for the given upload parameters."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class AssetStoreGateway:
    """Upload raw bytes to Cloudinary and return their secure URL.

    Args:
        session: Shared aiohttp client session owned by the application.
        credentials: Cloud name and API key/secret pair.
        folder: Logical folder the assets are placed in.
        clock: Seconds-since-epoch provider used for request timestamps.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        credentials: AssetStoreCredentials,
        folder: str = "ai-compression",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._session = session
        self._credentials = credentials
        self.folder = folder
        self._clock = clock
        self.upload_url = UPLOAD_URL_TEMPLATE.format(cloud_name=credentials.cloud_name)

    def build_form(self, image_bytes: bytes, mime_type: str) -> Dict[str, str]:
        """Return the signed multipart fields for a single upload."""
        params: Dict[str, Any] = {
            "folder": self.folder,
            "timestamp": int(self._clock()),
            "transformation": AUTO_OPTIMIZE_TRANSFORMATION,
        }
        signature = sign_params(params, self._credentials.api_secret)
        form = {key: str(value) for key, value in params.items()}
        form.update(
            {
                "file": to_data_uri(image_bytes, mime_type),
                "api_key": self._credentials.api_key,
                "signature": signature,
            }
        )
        return form

    async def store(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        """Upload the bytes and return the hosted `secure_url`.

        Raises:
            AssetStoreError: If the upload fails or the reply has no URL.
        """
        form = self.build_form(image_bytes, mime_type)
        try:
            async with self._session.post(self.upload_url, data=form) as resp:
                payload = await resp.json(content_type=None)
                if resp.status >= 400:
                    error = payload.get("error") if isinstance(payload, dict) else None
                    message = error.get("message") if isinstance(error, dict) else None
                    raise AssetStoreError(f"Asset upload failed with status {resp.status}: {message or 'unknown error'}")
        except (aiohttp.ClientError, ValueError) as exc:
            LOGGER.error("Error uploading to asset store: %s", exc)
            raise AssetStoreError(f"Asset upload request failed: {exc}") from exc

        secure_url = payload.get("secure_url") if isinstance(payload, dict) else None
        if not secure_url:
            raise AssetStoreError("Asset store response did not include a secure_url")
        LOGGER.info("Uploaded %d bytes to %s", len(image_bytes), secure_url)
        return secure_url
