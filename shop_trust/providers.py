"""
Contracts for the external services the verification steps consume.

The steps never talk to Google, Cloudinary or an OCR engine directly;
they receive objects satisfying these protocols, and every call goes
through `call_with_timeout` so a slow provider cannot hang a request.

Design:
  - Each provider call is at-most-once per request (no retries).
  - A timeout or any provider exception surfaces as ProviderDegradation.
  - The caller decides the fallback; this module only bounds and reports.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Optional, Protocol, TypeVar, runtime_checkable
from urllib.parse import urlparse

from .exceptions import InvalidInputError, ProviderDegradation
from .models import GeocodeResult, GeoPoint, UploadOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROVIDER_TIMEOUT_S = 10.0

# Shared pool for bounded provider calls. A timed-out call keeps its worker
# until the underlying I/O returns; the request itself moves on.
_EXECUTOR = ThreadPoolExecutor(max_workers=16, thread_name_prefix="provider")


# ─── Provider Protocols ─────────────────────────────────────────────


@runtime_checkable
class ReverseGeocoder(Protocol):
    def reverse_geocode(self, lat: float, lon: float) -> Optional[GeocodeResult]: ...


@runtime_checkable
class ForwardGeocoder(Protocol):
    def forward_geocode(self, address: str) -> Optional[GeocodeResult]: ...


@runtime_checkable
class TextExtractor(Protocol):
    def extract_text(self, document_url: str) -> str: ...


@runtime_checkable
class ExifGpsReader(Protocol):
    def read_gps(self, image_url: str) -> Optional[GeoPoint]: ...


@runtime_checkable
class MediaUploader(Protocol):
    def upload_from_url(self, url: str, folder: str) -> UploadOutcome: ...


# ─── Bounded Calls ──────────────────────────────────────────────────


def call_with_timeout(
    provider: str,
    fn: Callable[..., T],
    *args: object,
    timeout: float = DEFAULT_PROVIDER_TIMEOUT_S,
) -> T:
    """Run a blocking provider call with a deadline.

    Raises:
        ProviderDegradation: on timeout or on any exception from `fn`.
    """
    future = _EXECUTOR.submit(fn, *args)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        raise ProviderDegradation(
            provider,
            f"{provider} timed out after {timeout:.1f}s",
            {"timeout_s": timeout},
        ) from None
    except ProviderDegradation:
        raise
    except Exception as e:
        raise ProviderDegradation(provider, f"{provider} failed: {e}") from e


# ─── Source URLs ────────────────────────────────────────────────────

REMOTE_SCHEMES = frozenset({"http", "https"})


def ensure_fetchable_url(url: str, field: str = "url", allow_local: bool = False) -> str:
    """Check that a caller-supplied document/photo URL may be handed to a provider.

    Only absolute http(s) URLs are accepted. Local paths and ``file://``
    URLs pass only when `allow_local` is set (demo runs and tests).

    Raises:
        InvalidInputError: For any other URL.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme in REMOTE_SCHEMES and parsed.netloc:
        return url
    if allow_local and scheme in ("", "file"):
        return url
    raise InvalidInputError(f"{field} must be an http(s) URL", {"field": field})
