"""
Runtime configuration, read from the environment (and `.env` if present).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .providers import DEFAULT_PROVIDER_TIMEOUT_S


@dataclass(frozen=True)
class Settings:
    google_maps_api_key: str | None = None
    cloudinary_url: str | None = None
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    provider_timeout_s: float = DEFAULT_PROVIDER_TIMEOUT_S
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> Settings:
        """Build settings from environment variables.

        Args:
            load_env_file: Load a `.env` file into the environment first.
        """
        if load_env_file:
            load_dotenv()

        raw_timeout = os.environ.get("PROVIDER_TIMEOUT_SECONDS")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_PROVIDER_TIMEOUT_S
        except ValueError:
            raise ValueError(
                f"PROVIDER_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}"
            ) from None
        if timeout <= 0:
            raise ValueError("PROVIDER_TIMEOUT_SECONDS must be positive")

        return cls(
            google_maps_api_key=os.environ.get("GOOGLE_MAPS_API_KEY") or None,
            cloudinary_url=os.environ.get("CLOUDINARY_URL") or None,
            cloudinary_cloud_name=os.environ.get("CLOUDINARY_CLOUD_NAME") or None,
            cloudinary_api_key=os.environ.get("CLOUDINARY_API_KEY") or None,
            cloudinary_api_secret=os.environ.get("CLOUDINARY_API_SECRET") or None,
            provider_timeout_s=timeout,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
