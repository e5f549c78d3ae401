"""
Pydantic models for the shop aggregate and the verification steps.

One aggregate (`Shop`) embeds one `VerificationRecord`. Each verification
step owns a nullable sub-record instead of a subclass, so a shop that has
only completed the GPS step simply has `license=None, photo_proof=None`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Lifecycle ──────────────────────────────────────────────────────


class VerificationStatus(str, Enum):
    """Lifecycle state of a shop. Only PENDING may transition."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ─── Geometry ───────────────────────────────────────────────────────


class GeoPoint(BaseModel):
    """A WGS84 coordinate pair in decimal degrees."""

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)


# ─── Verification Record ────────────────────────────────────────────


class VerificationFlags(BaseModel):
    """Advisory mismatch signals surfaced to the reviewing admin.

    Each flag is recomputed from scratch by its step; nothing else writes it.
    """

    address_mismatch: bool = False
    licence_mismatch: bool = False
    exif_mismatch: bool = False


class LicenseOcrResult(BaseModel):
    """What the license step read out of the uploaded document."""

    extracted_number: Optional[str] = None
    extracted_address: Optional[str] = None
    raw_text: str = ""
    processed_at: datetime = Field(default_factory=utcnow)


class PhotoProof(BaseModel):
    """Storefront photo and the GPS position embedded in its EXIF block."""

    url: str
    public_id: Optional[str] = None
    exif_lat: Optional[float] = None
    exif_lon: Optional[float] = None
    uploaded_at: datetime = Field(default_factory=utcnow)


class VerificationRecord(BaseModel):
    """Everything the trust pipeline knows about a shop's claimed location."""

    submitted_address: str
    submitted_location: Optional[GeoPoint] = None
    reverse_geocoded_address: str = ""
    address_match_score: int = Field(default=0, ge=0, le=100)
    is_location_verified: bool = False
    license: Optional[LicenseOcrResult] = None
    photo_proof: Optional[PhotoProof] = None
    flags: VerificationFlags = Field(default_factory=VerificationFlags)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    location_lock: Optional[GeoPoint] = None  # Written once, on approval
    verified_badge: bool = False


# ─── Shop Aggregate ─────────────────────────────────────────────────


class Shop(BaseModel):
    """The merchant's shop as stored in the directory."""

    shop_id: str
    owner_id: str
    shop_name: str
    license_number: str
    license_document_url: Optional[str] = None
    is_active: bool = False
    is_live: bool = False
    verification_notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    verification: VerificationRecord


# ─── Provider Results ───────────────────────────────────────────────


class GeocodeResult(BaseModel):
    """A geocoder hit. Coordinates may be missing on some reverse lookups."""

    formatted_address: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def point(self) -> GeoPoint | None:
        """The hit's coordinates; None when missing or out of range."""
        if self.lat is None or self.lon is None:
            return None
        # NaN fails both comparisons too
        if not (-90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0):
            return None
        return GeoPoint(lat=self.lat, lon=self.lon)


class UploadOutcome(BaseModel):
    """Result of a best-effort re-host.

    Fallback policy: when the upload fails, `url` is the caller's original
    URL, `rehosted` is False and `error` says why.
    """

    url: str
    public_id: Optional[str] = None
    rehosted: bool = False
    error: Optional[str] = None

    @classmethod
    def fallback(cls, original_url: str, error: str) -> UploadOutcome:
        return cls(url=original_url, rehosted=False, error=error)


# ─── Step Results ───────────────────────────────────────────────────


class LocationCheckResult(BaseModel):
    """Outcome of the GPS / reverse-geocode step."""

    submitted_location: GeoPoint
    reverse_geocoded_address: str
    address_match_score: int
    distance_meters: Optional[float] = None
    within_area: bool
    good_address_match: bool
    is_location_verified: bool
    flagged_for_review: bool
    provider_degraded: bool = False


class LicenseCheckResult(BaseModel):
    """Outcome of the license OCR step."""

    extracted_number: Optional[str] = None
    extracted_address: Optional[str] = None
    license_number_match: bool
    form_vs_licence_address_score: int
    gps_vs_licence_address_score: int
    pdf_distance_meters: Optional[float] = None
    pdf_within_area: bool
    pdf_address_geocoded: bool
    flagged_for_review: bool
    provider_degraded: bool = False
    ocr: LicenseOcrResult


class PhotoCheckResult(BaseModel):
    """Outcome of the storefront photo step."""

    photo_url: str
    rehosted: bool
    exif_location: Optional[GeoPoint] = None
    distance_meters: Optional[float] = None
    exif_mismatch: bool
    provider_degraded: bool = False


class ReviewDecision(BaseModel):
    """What the admin decided and what the state machine applied."""

    shop_id: str
    verification_status: VerificationStatus
    verification_notes: Optional[str] = None
    verified_at: datetime
    verified_by: Optional[str] = None
    verified_badge: bool
    location_lock: Optional[GeoPoint] = None
