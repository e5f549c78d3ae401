"""
Durable re-hosting of owner-supplied media via Cloudinary.

Photo proofs arrive as arbitrary public URLs. Re-hosting them under a
per-shop folder keeps the evidence stable even if the original link dies.
This adapter raises on any failure; the photo step wraps it and applies
the fallback policy (keep the original URL).
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader

from .config import Settings
from .models import UploadOutcome
from .providers import DEFAULT_PROVIDER_TIMEOUT_S, ensure_fetchable_url

logger = logging.getLogger(__name__)


class StorageNotConfigured(RuntimeError):
    """Cloudinary credentials are missing."""


class CloudinaryUploader:
    """Upload-from-URL into a Cloudinary folder.

    The SDK also uploads local files when given a path, so sources are held
    to http(s) unless `allow_local` is set.
    """

    def __init__(
        self,
        settings: Settings,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_S,
        allow_local: bool = False,
    ):
        self.settings = settings
        self.timeout = timeout
        self.allow_local = allow_local

    def _configure(self) -> None:
        s = self.settings
        cloud_name, api_key, api_secret = (
            s.cloudinary_cloud_name,
            s.cloudinary_api_key,
            s.cloudinary_api_secret,
        )
        if s.cloudinary_url:
            # cloudinary://<api_key>:<api_secret>@<cloud_name>
            parsed = urlparse(s.cloudinary_url)
            cloud_name, api_key, api_secret = parsed.hostname, parsed.username, parsed.password

        if not (cloud_name and api_key and api_secret):
            raise StorageNotConfigured("Cloudinary credentials are not configured")

        cloudinary.config(
            cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True
        )

    def upload_from_url(self, url: str, folder: str) -> UploadOutcome:
        ensure_fetchable_url(url, "photo_url", allow_local=self.allow_local)
        self._configure()
        response = cloudinary.uploader.upload(
            url, folder=folder, resource_type="auto", timeout=self.timeout
        )
        logger.info("Re-hosted %s as %s", url, response.get("public_id"))
        return UploadOutcome(
            url=response["secure_url"],
            public_id=response.get("public_id"),
            rehosted=True,
        )
