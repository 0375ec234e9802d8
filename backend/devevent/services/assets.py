# backend/devevent/services/assets.py
"""
Cloudinary image upload over plain httpx
────────────────────────────────────────
We only need one call – a signed upload of the event banner – so the
REST endpoint is used directly instead of pulling in the SDK.

Key points
──────────
• CLOUDINARY_URL has the SDK's format: cloudinary://<key>:<secret>@<cloud>
  (key and secret may be %-encoded; `?secure=` is ignored, uploads
  always go over https). It is validated by Settings at startup.
• _sign() implements Cloudinary's request signature: SHA-1 over the
  sorted `k=v&…` parameters with the API secret appended.
• every failure (HTTP error, timeout, bad payload) becomes UpstreamFailure.
"""
from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from functools import lru_cache

import httpx

from ..core.config import get_settings, parse_cloudinary_url
from ..core.errors import UpstreamFailure

log = logging.getLogger("assets")

_API_BASE = "https://api.cloudinary.com/v1_1"


@dataclass(frozen=True)
class CloudinaryCredentials:
    cloud_name: str
    api_key: str
    api_secret: str

    @classmethod
    def from_url(cls, url: str) -> "CloudinaryCredentials":
        return cls(*parse_cloudinary_url(url))


def _sign(params: dict[str, str], secret: str) -> str:
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1(f"{to_sign}{secret}".encode()).hexdigest()


class CloudinaryAssetStore:
    """Uploads images and returns their durable `secure_url`."""

    def __init__(
        self,
        credentials: CloudinaryCredentials,
        *,
        folder: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self.folder = folder
        self.timeout = timeout
        self._transport = transport

    async def upload_image(self, data: bytes, filename: str, content_type: str) -> str:
        params = {"folder": self.folder, "timestamp": str(int(time.time()))}
        form = {
            **params,
            "api_key": self.credentials.api_key,
            "signature": _sign(params, self.credentials.api_secret),
        }
        url = f"{_API_BASE}/{self.credentials.cloud_name}/image/upload"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    url, data=form, files={"file": (filename, data, content_type)}
                )
                resp.raise_for_status()
                secure_url = resp.json()["secure_url"]
        except httpx.TimeoutException as exc:
            raise UpstreamFailure("Image upload timed out") from exc
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise UpstreamFailure("Image upload failed") from exc

        log.info("Uploaded %s (%d bytes) → %s", filename, len(data), secure_url)
        return secure_url


@lru_cache
def get_asset_store() -> CloudinaryAssetStore:
    settings = get_settings()
    return CloudinaryAssetStore(
        CloudinaryCredentials.from_url(settings.cloudinary_url),
        folder=settings.asset_folder,
        timeout=settings.upload_timeout_seconds,
    )
