"""
Document and image adapters: OCR text extraction and EXIF GPS reading.

Both adapters start from an http(s) URL (local paths and file:// URLs
only with `allow_local=True`), fetch the bytes, and work on them in
memory:

  - DocumentTextExtractor: PDF text layer via pypdf, with OCR of embedded
    page images via pytesseract when the PDF is a scan; images go straight
    to pytesseract; text/* is decoded as UTF-8.
  - PillowExifReader: the GPS IFD via Pillow, converted from
    degree/minute/second rationals into signed decimal degrees.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import httpx
import pytesseract
from PIL import ExifTags, Image, UnidentifiedImageError
from pypdf import PdfReader

from .models import GeoPoint
from .providers import ensure_fetchable_url

logger = logging.getLogger(__name__)

MAX_DOCUMENT_BYTES = 15 * 1024 * 1024


# ─── Fetching ───────────────────────────────────────────────────────


def fetch_bytes(
    url: str,
    client: httpx.Client | None = None,
    timeout: float = 10.0,
    allow_local: bool = False,
) -> tuple[bytes, str]:
    """Fetch a document and guess its content type.

    Only http(s) URLs are fetched unless `allow_local` is set, in which case
    ``file://`` URLs and plain paths are read from disk.

    Returns:
        (content, content_type). content_type is lowercased, parameters stripped.
    """
    ensure_fetchable_url(url, allow_local=allow_local)
    parsed = urlparse(url)

    if parsed.scheme in ("http", "https"):
        http = client or httpx.Client(timeout=timeout, follow_redirects=True)
        response = http.get(url)
        response.raise_for_status()
        content = response.content
        content_type = response.headers.get("content-type", "")
    else:
        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
        content = path.read_bytes()
        content_type = ""

    if len(content) > MAX_DOCUMENT_BYTES:
        raise ValueError(f"Document too large ({len(content)} bytes)")

    content_type = content_type.split(";")[0].strip().lower()
    if not content_type or content_type == "application/octet-stream":
        content_type = mimetypes.guess_type(parsed.path or url)[0] or ""
    if not content_type and content.startswith(b"%PDF"):
        content_type = "application/pdf"

    return content, content_type


# ─── Text Extraction ────────────────────────────────────────────────


class DocumentTextExtractor:
    """Turn a license document (PDF, image or text) into raw text."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        allow_local: bool = False,
    ):
        self._client = client
        self._timeout = timeout
        self._allow_local = allow_local

    def extract_text(self, document_url: str) -> str:
        content, content_type = fetch_bytes(
            document_url, self._client, self._timeout, self._allow_local
        )

        if content_type == "application/pdf":
            return _pdf_text(content, self._timeout)
        if content_type.startswith("text/"):
            return content.decode("utf-8", errors="replace")
        return _ocr_image_bytes(content, self._timeout)


def _pdf_text(content: bytes, timeout: float) -> str:
    """Text layer first; scanned pages fall back to OCR of their images."""
    reader = PdfReader(io.BytesIO(content))
    chunks: list[str] = []

    for page in reader.pages:
        text = (page.extract_text() or "").strip()
        if text:
            chunks.append(text)
            continue
        for image in page.images:
            ocr_text = _ocr_image_bytes(image.data, timeout).strip()
            if ocr_text:
                chunks.append(ocr_text)

    return "\n".join(chunks)


def _ocr_image_bytes(content: bytes, timeout: float) -> str:
    # tesseract runs as a subprocess; pytesseract kills it after `timeout`
    with Image.open(io.BytesIO(content)) as img:
        return pytesseract.image_to_string(img, timeout=timeout)


# ─── EXIF GPS ───────────────────────────────────────────────────────


class PillowExifReader:
    """Read the GPS position a camera embedded in a photo, if any."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        allow_local: bool = False,
    ):
        self._client = client
        self._timeout = timeout
        self._allow_local = allow_local

    def read_gps(self, image_url: str) -> Optional[GeoPoint]:
        content, _ = fetch_bytes(image_url, self._client, self._timeout, self._allow_local)
        return read_gps_from_bytes(content)


def read_gps_from_bytes(content: bytes) -> Optional[GeoPoint]:
    """GPS point from raw image bytes; None when the image carries no usable GPS."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            gps_ifd = img.getexif().get_ifd(ExifTags.IFD.GPSInfo)
    except UnidentifiedImageError:
        logger.info("Photo is not a readable image; no EXIF GPS")
        return None

    if not gps_ifd:
        return None

    lat = gps_to_decimal(
        gps_ifd.get(ExifTags.GPS.GPSLatitude), gps_ifd.get(ExifTags.GPS.GPSLatitudeRef)
    )
    lon = gps_to_decimal(
        gps_ifd.get(ExifTags.GPS.GPSLongitude), gps_ifd.get(ExifTags.GPS.GPSLongitudeRef)
    )
    if lat is None or lon is None:
        return None
    # Cameras without a fix sometimes write 0/0 instead of omitting the tags
    if lat == 0.0 and lon == 0.0:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return GeoPoint(lat=lat, lon=lon)


def gps_to_decimal(dms: Any, ref: Any) -> float | None:
    """Convert an EXIF (degrees, minutes, seconds) triple to signed decimal degrees.

    Example:
        ((40, 26, 46.3), "N") → 40.44619...
        ((79, 58, 56.0), "W") → -79.98222...
    """
    if dms is None:
        return None
    try:
        degrees, minutes, seconds = (float(part) for part in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None

    value = degrees + minutes / 60.0 + seconds / 3600.0

    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if isinstance(ref, str) and ref.strip().upper() in ("S", "W"):
        value = -value
    return value
