"""
The three owner-driven verification steps.

  ┌──────────────┐   ┌──────────────┐   ┌──────────────┐
  │  Submit GPS  │   │ Verify       │   │ Upload proof │   ← any order
  │ (reverse geo)│   │ license (OCR)│   │ photo (EXIF) │
  └──────┬───────┘   └──────┬───────┘   └──────┬───────┘
         │                  │                  │
         └──────────┬───────┴──────────────────┘
             ┌──────▼──────┐
             │  Aggregator │   ← one write per step, flags only
             └──────┬──────┘
             ┌──────▼──────┐
             │ Admin review│   ← humans decide
             └─────────────┘

Design principles:
  - Input is validated before any provider is called.
  - Every provider call is bounded; a failure degrades the signal toward
    "unverified" and the step still completes.
  - Decisions are pure functions of the step's inputs (below), so
    rerunning a step with the same inputs reproduces the same flag.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Callable, Optional, TypeVar

from .exceptions import InvalidInputError, ProviderDegradation
from .flags import VerificationFlagAggregator
from .geo import point_distance, within_tolerance
from .license_parser import extract_license_details, license_numbers_match
from .models import (
    GeocodeResult,
    GeoPoint,
    LicenseCheckResult,
    LicenseOcrResult,
    LocationCheckResult,
    PhotoCheckResult,
    UploadOutcome,
)
from .providers import (
    DEFAULT_PROVIDER_TIMEOUT_S,
    ExifGpsReader,
    ForwardGeocoder,
    MediaUploader,
    ReverseGeocoder,
    TextExtractor,
    call_with_timeout,
    ensure_fetchable_url,
)
from .similarity import address_match_score, is_good_match

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ─── Pure Decisions ─────────────────────────────────────────────────


def location_verified(distance: float | None, score: int) -> bool:
    """Within 100 m of the geocoded point OR a good textual address match."""
    return within_tolerance(distance) or is_good_match(score)


def licence_mismatch(number_match: bool, address_score: int, pdf_within_area: bool) -> bool:
    """Fail closed: a wrong/missing number flags; a poor address flags unless
    the license address geocodes to within 100 m of the submitted point."""
    return not number_match or (not is_good_match(address_score) and not pdf_within_area)


def exif_mismatch(distance: float | None) -> bool:
    """Only a known distance beyond 100 m contradicts the submitted location."""
    return distance is not None and not within_tolerance(distance)


# ─── Shared Plumbing ────────────────────────────────────────────────


class _Step:
    """Common wiring: aggregator access and bounded provider calls."""

    name = "step"

    def __init__(self, aggregator: VerificationFlagAggregator, timeout: float):
        self.aggregator = aggregator
        self.store = aggregator.store
        self.timeout = timeout

    def _call(self, provider: str, fn: Callable[..., T], *args: object) -> tuple[T | None, bool]:
        """Run a provider call. Returns (result, degraded)."""
        try:
            return call_with_timeout(provider, fn, *args, timeout=self.timeout), False
        except ProviderDegradation as e:
            logger.warning("[%s] provider degraded: %s", self.name, e)
            return None, True


# ─── Step: Submit GPS ───────────────────────────────────────────────


class GeoConsistencyChecker(_Step):
    """Reverse-geocode the owner's GPS fix and compare it with the typed address."""

    name = "submit_gps"

    def __init__(
        self,
        aggregator: VerificationFlagAggregator,
        geocoder: ReverseGeocoder,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_S,
    ):
        super().__init__(aggregator, timeout)
        self.geocoder = geocoder

    def check(self, shop_id: str, lat: object, lon: object) -> LocationCheckResult:
        point = _validated_point(lat, lon)
        shop = self.store.read(shop_id)

        geocoded: Optional[GeocodeResult]
        geocoded, degraded = self._call(
            "reverse_geocode", self.geocoder.reverse_geocode, point.lat, point.lon
        )
        reverse_address = geocoded.formatted_address if geocoded else ""

        score = address_match_score(shop.verification.submitted_address, reverse_address)

        distance: float | None = None
        geocoded_point = geocoded.point if geocoded else None
        if geocoded_point is not None:
            distance = point_distance(point, geocoded_point)

        verified = location_verified(distance, score)
        result = LocationCheckResult(
            submitted_location=point,
            reverse_geocoded_address=reverse_address,
            address_match_score=score,
            distance_meters=distance,
            within_area=within_tolerance(distance),
            good_address_match=is_good_match(score),
            is_location_verified=verified,
            flagged_for_review=not verified,
            provider_degraded=degraded,
        )
        logger.info(
            "[%s] shop=%s score=%d distance=%s verified=%s",
            self.name, shop_id, score, _fmt_distance(distance), verified,
        )
        self.aggregator.record_location(shop_id, result)
        return result


# ─── Step: Verify License ───────────────────────────────────────────


class LicenseDocumentVerifier(_Step):
    """OCR the license document and cross-check number and address."""

    name = "verify_license"

    def __init__(
        self,
        aggregator: VerificationFlagAggregator,
        text_extractor: TextExtractor,
        geocoder: ForwardGeocoder,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_S,
        allow_local_files: bool = False,
    ):
        super().__init__(aggregator, timeout)
        self.text_extractor = text_extractor
        self.geocoder = geocoder
        self.allow_local_files = allow_local_files

    def verify(self, shop_id: str, document_url: str | None = None) -> LicenseCheckResult:
        document_url = (document_url or "").strip() or None
        shop = self.store.read(shop_id)
        url = document_url or shop.license_document_url
        if not url:
            raise InvalidInputError("No license document available", {"shop_id": shop_id})
        ensure_fetchable_url(url, "document_url", allow_local=self.allow_local_files)

        raw_text, ocr_degraded = self._call("extract_text", self.text_extractor.extract_text, url)
        details = extract_license_details(raw_text or "")

        record = shop.verification
        number_match = license_numbers_match(details.license_number, shop.license_number)
        address_score = address_match_score(record.submitted_address, details.address or "")
        gps_address_score = address_match_score(
            record.reverse_geocoded_address, details.address or ""
        )

        pdf_distance: float | None = None
        geo_degraded = False
        if details.address and record.submitted_location is not None:
            geocoded: Optional[GeocodeResult]
            geocoded, geo_degraded = self._call(
                "forward_geocode", self.geocoder.forward_geocode, details.address
            )
            licence_point = geocoded.point if geocoded else None
            if licence_point is not None:
                pdf_distance = point_distance(record.submitted_location, licence_point)

        pdf_within_area = within_tolerance(pdf_distance)
        flagged = licence_mismatch(number_match, address_score, pdf_within_area)

        result = LicenseCheckResult(
            extracted_number=details.license_number,
            extracted_address=details.address,
            license_number_match=number_match,
            form_vs_licence_address_score=address_score,
            gps_vs_licence_address_score=gps_address_score,
            pdf_distance_meters=pdf_distance,
            pdf_within_area=pdf_within_area,
            pdf_address_geocoded=pdf_distance is not None,
            flagged_for_review=flagged,
            provider_degraded=ocr_degraded or geo_degraded,
            ocr=LicenseOcrResult(
                extracted_number=details.license_number,
                extracted_address=details.address,
                raw_text=details.raw_text,
            ),
        )
        logger.info(
            "[%s] shop=%s number_match=%s address_score=%d pdf_distance=%s flagged=%s",
            self.name, shop_id, number_match, address_score, _fmt_distance(pdf_distance), flagged,
        )
        self.aggregator.record_license(shop_id, result, document_url)
        return result


# ─── Step: Upload Proof Photo ───────────────────────────────────────


class PhotoProofVerifier(_Step):
    """Re-host the storefront photo and compare its EXIF GPS with the submitted point."""

    name = "photo_proof"

    def __init__(
        self,
        aggregator: VerificationFlagAggregator,
        exif_reader: ExifGpsReader,
        uploader: MediaUploader | None = None,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT_S,
        allow_local_files: bool = False,
    ):
        super().__init__(aggregator, timeout)
        self.exif_reader = exif_reader
        self.uploader = uploader
        self.allow_local_files = allow_local_files

    def verify(self, shop_id: str, photo_url: str | None) -> PhotoCheckResult:
        photo_url = (photo_url or "").strip()
        if not photo_url:
            raise InvalidInputError("photo_url is required")
        ensure_fetchable_url(photo_url, "photo_url", allow_local=self.allow_local_files)
        shop = self.store.read(shop_id)

        upload = self._rehost(photo_url, proof_folder(shop.license_number, shop.shop_id))

        exif_point: Optional[GeoPoint]
        exif_point, degraded = self._call("read_exif", self.exif_reader.read_gps, upload.url)

        submitted = shop.verification.submitted_location
        distance: float | None = None
        if exif_point is not None and submitted is not None:
            distance = point_distance(submitted, exif_point)

        # An unreadable photo is not the same as a photo without GPS
        mismatch = exif_mismatch(distance) or (degraded and submitted is not None)

        result = PhotoCheckResult(
            photo_url=upload.url,
            rehosted=upload.rehosted,
            exif_location=exif_point,
            distance_meters=distance,
            exif_mismatch=mismatch,
            provider_degraded=degraded,
        )
        logger.info(
            "[%s] shop=%s rehosted=%s exif=%s distance=%s mismatch=%s",
            self.name, shop_id, upload.rehosted, exif_point is not None,
            _fmt_distance(distance), mismatch,
        )
        self.aggregator.record_photo(shop_id, result, upload)
        return result

    def _rehost(self, photo_url: str, folder: str) -> UploadOutcome:
        """Best-effort re-host; falls back to the original URL on any failure."""
        if self.uploader is None:
            return UploadOutcome.fallback(photo_url, "no uploader configured")

        outcome, degraded = self._call("upload", self.uploader.upload_from_url, photo_url, folder)
        if degraded or outcome is None:
            return UploadOutcome.fallback(photo_url, "re-host failed; using original URL")
        return outcome


def proof_folder(license_number: str | None, shop_id: str) -> str:
    """Storage folder for a shop's photo proofs, e.g. 'LIC-2291-88/shop-proof'."""
    code = re.sub(r"[^A-Za-z0-9_-]+", "-", (license_number or "").strip()).strip("-")
    return f"{code or shop_id}/shop-proof"


# ─── Helpers ────────────────────────────────────────────────────────


def _validated_point(lat: object, lon: object) -> GeoPoint:
    """Reject missing, non-numeric, non-finite or out-of-range coordinates."""
    values = []
    for name, value in (("latitude", lat), ("longitude", lon)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInputError("Latitude and longitude are required", {"field": name})
        if not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number", {"field": name})
        values.append(float(value))

    lat_f, lon_f = values
    if not (-90.0 <= lat_f <= 90.0) or not (-180.0 <= lon_f <= 180.0):
        raise InvalidInputError(
            "Coordinates out of range", {"latitude": lat_f, "longitude": lon_f}
        )
    return GeoPoint(lat=lat_f, lon=lon_f)


def _fmt_distance(distance: float | None) -> str:
    return "n/a" if distance is None else f"{distance:.1f}m"
