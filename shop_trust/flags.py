"""
Merges per-step outcomes into the shop's verification record.

Every step hands its result here and gets back the persisted shop. Each
`record_*` call is exactly one store write containing only that step's
slice, so flags are always the output of their own step's latest run.

The aggregator never approves or rejects anything: `review_summary`
only tells the admin which signals fired.
"""

from __future__ import annotations

import logging
from typing import Optional

from .exceptions import PersistenceError, ShopTrustError
from .models import (
    LicenseCheckResult,
    LocationCheckResult,
    PhotoCheckResult,
    PhotoProof,
    Shop,
    UploadOutcome,
)
from .store import Patch, ShopStore

logger = logging.getLogger(__name__)


class VerificationFlagAggregator:
    """Write each step's slice of the VerificationRecord to the store."""

    def __init__(self, store: ShopStore):
        self.store = store

    def record_location(self, shop_id: str, result: LocationCheckResult) -> Shop:
        return self._write(
            shop_id,
            {
                "verification.submitted_location": result.submitted_location,
                "verification.reverse_geocoded_address": result.reverse_geocoded_address,
                "verification.address_match_score": result.address_match_score,
                "verification.is_location_verified": result.is_location_verified,
                "verification.flags.address_mismatch": result.flagged_for_review,
            },
        )

    def record_license(
        self, shop_id: str, result: LicenseCheckResult, document_url: Optional[str] = None
    ) -> Shop:
        patch: Patch = {
            "verification.license": result.ocr,
            "verification.flags.licence_mismatch": result.flagged_for_review,
        }
        if document_url:
            patch["license_document_url"] = document_url
        return self._write(shop_id, patch)

    def record_photo(self, shop_id: str, result: PhotoCheckResult, upload: UploadOutcome) -> Shop:
        exif = result.exif_location
        proof = PhotoProof(
            url=upload.url,
            public_id=upload.public_id,
            exif_lat=exif.lat if exif else None,
            exif_lon=exif.lon if exif else None,
        )
        return self._write(
            shop_id,
            {
                "verification.photo_proof": proof,
                "verification.flags.exif_mismatch": result.exif_mismatch,
            },
        )

    def _write(self, shop_id: str, patch: Patch) -> Shop:
        try:
            return self.store.write(shop_id, patch)
        except ShopTrustError:
            raise
        except Exception as e:
            logger.error("Failed to persist verification slice for shop %s: %s", shop_id, e)
            raise PersistenceError(
                "Could not persist verification result", {"shop_id": shop_id}
            ) from e


def review_summary(shop: Shop) -> dict[str, object]:
    """Advisory view for the admin: which flags fired. Never a verdict."""
    flags = shop.verification.flags
    raised = [name for name, value in flags.model_dump().items() if value]
    return {
        "flags": flags.model_dump(),
        "raised_flags": raised,
        "needs_manual_attention": bool(raised),
        "steps_completed": {
            "gps": shop.verification.submitted_location is not None,
            "license": shop.verification.license is not None,
            "photo": shop.verification.photo_proof is not None,
        },
    }
