"""
Shop Trust — FastAPI Server
============================

HTTP surface for the storefront verification pipeline.

Endpoints:
    POST  /shops                        Register a shop (pending, empty record)
    GET   /shops/{id}/verification      Owner view of the review status
    POST  /shops/{id}/gps               Step: submit GPS, reverse-geocode, score
    POST  /shops/{id}/license           Step: OCR license, cross-check
    POST  /shops/{id}/photo-proof       Step: re-host photo, compare EXIF GPS
    PATCH /shops/{id}/live              Open/close an approved shop
    GET   /admin/shops/{id}             Full verification record + advisory flags
    POST  /admin/shops/{id}/review      Approve or reject (pending shops only)
    GET   /admin/stats                  Shop counts per verification status
    GET   /health                       Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shop_trust import __version__
from shop_trust.config import Settings
from shop_trust.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    PersistenceError,
    ShopNotFoundError,
    ShopTrustError,
)
from shop_trust.models import (
    LicenseCheckResult,
    LocationCheckResult,
    PhotoCheckResult,
    ReviewDecision,
    Shop,
    VerificationStatus,
)
from shop_trust.pipeline import ShopVerificationService

logger = logging.getLogger(__name__)


# ─── Application Lifespan ───────────────────────────────────────────

_service: ShopVerificationService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service (adapters, store) from the environment on startup."""
    global _service  # noqa: PLW0603
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    _service = ShopVerificationService.from_settings(settings)
    yield
    _service = None


# ─── FastAPI App ────────────────────────────────────────────────────

app = FastAPI(
    title="Shop Trust API",
    description=(
        "Storefront verification for merchant onboarding. Cross-checks the "
        "claimed address against reverse-geocoded GPS, the OCR'd business "
        "license and the storefront photo's EXIF location. Flags are "
        "advisory; an admin makes the final call."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Error Mapping ──────────────────────────────────────────────────

_STATUS_BY_ERROR: list[tuple[type[ShopTrustError], int]] = [
    (InvalidInputError, 400),
    (ShopNotFoundError, 404),
    (InvalidTransitionError, 409),
    (PersistenceError, 500),
]


@app.exception_handler(ShopTrustError)
async def shop_trust_error_handler(request: Request, exc: ShopTrustError) -> JSONResponse:
    status_code = next(
        (code for err_type, code in _STATUS_BY_ERROR if isinstance(exc, err_type)), 500
    )
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "detail": exc.message, "details": exc.details},
    )


# ─── Request / Response Schemas ─────────────────────────────────────


class RegisterShopRequest(BaseModel):
    owner_id: str = Field(..., min_length=1)
    shop_name: str = Field(..., min_length=1)
    license_number: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, description="Address as typed by the owner.")
    license_document_url: Optional[str] = None

    model_config = {"json_schema_extra": {"example": {
        "owner_id": "user-42",
        "shop_name": "Corner Store",
        "license_number": "LIC-2291-88",
        "address": "12 Main St, Springfield",
        "license_document_url": "https://res.cloudinary.com/demo/raw/upload/license.pdf",
    }}}


class GpsRequest(BaseModel):
    # Left loose on purpose: the step itself rejects missing/non-numeric values
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class LicenseRequest(BaseModel):
    document_url: Optional[str] = Field(
        default=None, description="Defaults to the document stored at registration."
    )


class PhotoProofRequest(BaseModel):
    photo_url: Optional[str] = None


class LiveRequest(BaseModel):
    is_live: bool


class ReviewRequest(BaseModel):
    status: str = Field(..., description="'approved' or 'rejected'")
    notes: Optional[str] = None
    admin_id: Optional[str] = None


class VerificationStatusResponse(BaseModel):
    status: VerificationStatus
    notes: Optional[str] = None
    verified_at: Optional[str] = None
    verified_by: Optional[str] = None
    is_active: bool
    is_live: bool


class AdminShopResponse(BaseModel):
    shop: Shop
    summary: dict


class HealthResponse(BaseModel):
    status: str
    version: str
    shops_loaded: int


# ─── Helpers ────────────────────────────────────────────────────────


def _get_service() -> ShopVerificationService:
    if _service is None:
        raise HTTPException(status_code=503, detail="Service not initialised")
    return _service


# ─── Owner Endpoints ────────────────────────────────────────────────


@app.post("/shops", status_code=201, summary="Register a shop", tags=["Owner"])
def register_shop(request: RegisterShopRequest) -> Shop:
    service = _get_service()
    return service.register_shop(
        owner_id=request.owner_id,
        shop_name=request.shop_name,
        license_number=request.license_number,
        address=request.address,
        license_document_url=request.license_document_url,
    )


@app.get("/shops/{shop_id}/verification", summary="Owner verification status", tags=["Owner"])
def get_verification_status(shop_id: str) -> VerificationStatusResponse:
    status = _get_service().verification_status(shop_id)
    verified_at = status["verified_at"]
    return VerificationStatusResponse(
        status=status["status"],
        notes=status["notes"],
        verified_at=verified_at.isoformat() if verified_at else None,
        verified_by=status["verified_by"],
        is_active=status["is_active"],
        is_live=status["is_live"],
    )


@app.post(
    "/shops/{shop_id}/gps",
    summary="Submit GPS and verify address",
    tags=["Verification"],
    responses={400: {"description": "Latitude and longitude are required"}},
)
def submit_gps(shop_id: str, request: GpsRequest) -> LocationCheckResult:
    """Reverse-geocode the submitted point and score it against the typed address.

    Verified if within 100 m of the geocoded point **or** address score ≥ 60.
    A geocoder outage still returns 200 with an unverified result.
    """
    return _get_service().submit_gps(shop_id, request.latitude, request.longitude)


@app.post(
    "/shops/{shop_id}/license",
    summary="OCR and cross-check the license document",
    tags=["Verification"],
    responses={400: {"description": "No license document available"}},
)
def verify_license(shop_id: str, request: Optional[LicenseRequest] = None) -> LicenseCheckResult:
    document_url = request.document_url if request else None
    return _get_service().verify_license(shop_id, document_url)


@app.post(
    "/shops/{shop_id}/photo-proof",
    summary="Upload storefront photo and check EXIF GPS",
    tags=["Verification"],
    responses={400: {"description": "photo_url is required"}},
)
def upload_photo_proof(shop_id: str, request: PhotoProofRequest) -> PhotoCheckResult:
    return _get_service().upload_photo_proof(shop_id, request.photo_url)


@app.patch("/shops/{shop_id}/live", summary="Open or close an approved shop", tags=["Owner"])
def set_live(shop_id: str, request: LiveRequest) -> Shop:
    return _get_service().set_live(shop_id, request.is_live)


# ─── Admin Endpoints ────────────────────────────────────────────────


@app.get("/admin/shops/{shop_id}", summary="Full verification record", tags=["Admin"])
def get_shop_for_review(shop_id: str) -> AdminShopResponse:
    view = _get_service().admin_view(shop_id)
    return AdminShopResponse(shop=view["shop"], summary=view["summary"])


@app.post(
    "/admin/shops/{shop_id}/review",
    summary="Approve or reject a pending shop",
    tags=["Admin"],
    responses={
        400: {"description": "Invalid verification status"},
        409: {"description": "Shop has already been reviewed"},
    },
)
def review_shop(shop_id: str, request: ReviewRequest) -> ReviewDecision:
    """Terminal decision. Flags are shown for context only; they never gate."""
    return _get_service().review(shop_id, request.status, request.notes, request.admin_id)


@app.get("/admin/stats", summary="Shop counts by status", tags=["Admin"])
def admin_stats() -> dict[str, int]:
    return _get_service().stats()


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Service not yet initialised"}},
)
def health_check() -> HealthResponse:
    service = _get_service()
    return HealthResponse(
        status="healthy",
        version=__version__,
        shops_loaded=service.stats()["total"],
    )
