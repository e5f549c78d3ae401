"""
Service facade — wires store, providers, steps and lifecycle together.

Usage:
    service = ShopVerificationService.from_settings(Settings.from_env())
    shop = service.register_shop(owner_id="u1", shop_name="Corner Store",
                                 license_number="LIC-2291-88",
                                 address="12 Main St, Springfield")
    service.submit_gps(shop.shop_id, 39.7817, -89.6501)
    service.verify_license(shop.shop_id, "https://.../license.pdf")
    service.upload_photo_proof(shop.shop_id, "https://.../front.jpg")
    service.review(shop.shop_id, "approved", admin_id="admin-7")

Every step is a single synchronous call keyed by shop id. Steps can be
called in any order and rerun at will; review is terminal.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from .config import Settings
from .documents import DocumentTextExtractor, PillowExifReader
from .exceptions import InvalidInputError
from .flags import VerificationFlagAggregator, review_summary
from .geocoding import GoogleGeocoder
from .lifecycle import Notifier, ShopLifecycleStateMachine
from .models import (
    LicenseCheckResult,
    LocationCheckResult,
    PhotoCheckResult,
    ReviewDecision,
    Shop,
    VerificationRecord,
    VerificationStatus,
)
from .providers import (
    DEFAULT_PROVIDER_TIMEOUT_S,
    ExifGpsReader,
    ForwardGeocoder,
    MediaUploader,
    ReverseGeocoder,
    TextExtractor,
    ensure_fetchable_url,
)
from .storage import CloudinaryUploader
from .store import InMemoryShopStore, ShopStore
from .verifiers import GeoConsistencyChecker, LicenseDocumentVerifier, PhotoProofVerifier

logger = logging.getLogger(__name__)


class ShopVerificationService:
    """Owner-facing steps plus the admin-facing record and review action."""

    def __init__(
        self,
        store: ShopStore,
        reverse_geocoder: ReverseGeocoder,
        forward_geocoder: ForwardGeocoder,
        text_extractor: TextExtractor,
        exif_reader: ExifGpsReader,
        uploader: MediaUploader | None = None,
        notifier: Notifier | None = None,
        provider_timeout_s: float = DEFAULT_PROVIDER_TIMEOUT_S,
        allow_local_files: bool = False,
    ):
        self.store = store
        self.allow_local_files = allow_local_files
        self.aggregator = VerificationFlagAggregator(store)
        self.geo_checker = GeoConsistencyChecker(
            self.aggregator, reverse_geocoder, provider_timeout_s
        )
        self.license_verifier = LicenseDocumentVerifier(
            self.aggregator, text_extractor, forward_geocoder, provider_timeout_s,
            allow_local_files=allow_local_files,
        )
        self.photo_verifier = PhotoProofVerifier(
            self.aggregator, exif_reader, uploader, provider_timeout_s,
            allow_local_files=allow_local_files,
        )
        self.lifecycle = ShopLifecycleStateMachine(store, notifier)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ShopStore | None = None,
        allow_local_files: bool = False,
    ) -> ShopVerificationService:
        """Build the service with the real provider adapters.

        `allow_local_files` lets documents and photos be local paths or
        file:// URLs. Only for demo runs; the HTTP API never sets it.
        """
        timeout = settings.provider_timeout_s
        geocoder = GoogleGeocoder(settings.google_maps_api_key, timeout=timeout)
        return cls(
            store=store or InMemoryShopStore(),
            reverse_geocoder=geocoder,
            forward_geocoder=geocoder,
            text_extractor=DocumentTextExtractor(timeout=timeout, allow_local=allow_local_files),
            exif_reader=PillowExifReader(timeout=timeout, allow_local=allow_local_files),
            uploader=CloudinaryUploader(settings, timeout, allow_local=allow_local_files),
            provider_timeout_s=timeout,
            allow_local_files=allow_local_files,
        )

    # ─── Registration ───────────────────────────────────────────────

    def register_shop(
        self,
        owner_id: str,
        shop_name: str,
        license_number: str,
        address: str,
        license_document_url: Optional[str] = None,
        shop_id: Optional[str] = None,
    ) -> Shop:
        """Create a shop with an empty, pending verification record."""
        required = {
            "owner_id": owner_id,
            "shop_name": shop_name,
            "license_number": license_number,
            "address": address,
        }
        missing = [name for name, value in required.items() if not (value or "").strip()]
        if missing:
            raise InvalidInputError("Missing required fields", {"missing": missing})

        if self.store.find_by_license_number(license_number) is not None:
            raise InvalidInputError(
                "A shop with this license number already exists",
                {"license_number": license_number.strip()},
            )

        document_url = (license_document_url or "").strip() or None
        if document_url:
            ensure_fetchable_url(
                document_url, "license_document_url", allow_local=self.allow_local_files
            )

        shop = Shop(
            shop_id=shop_id or uuid.uuid4().hex,
            owner_id=owner_id.strip(),
            shop_name=shop_name.strip(),
            license_number=license_number.strip(),
            license_document_url=document_url,
            verification=VerificationRecord(submitted_address=address.strip()),
        )
        created = self.store.create(shop)
        logger.info("Registered shop %s (%s)", created.shop_id, created.shop_name)
        return created

    # ─── Owner Steps ────────────────────────────────────────────────

    def submit_gps(self, shop_id: str, lat: object, lon: object) -> LocationCheckResult:
        return self.geo_checker.check(shop_id, lat, lon)

    def verify_license(self, shop_id: str, document_url: str | None = None) -> LicenseCheckResult:
        return self.license_verifier.verify(shop_id, document_url)

    def upload_photo_proof(self, shop_id: str, photo_url: str | None) -> PhotoCheckResult:
        return self.photo_verifier.verify(shop_id, photo_url)

    def set_live(self, shop_id: str, is_live: bool) -> Shop:
        return self.lifecycle.set_live(shop_id, is_live)

    # ─── Admin Surface ──────────────────────────────────────────────

    def get_shop(self, shop_id: str) -> Shop:
        return self.store.read(shop_id)

    def admin_view(self, shop_id: str) -> dict[str, object]:
        """Full record plus the advisory summary for the reviewing admin."""
        shop = self.store.read(shop_id)
        return {"shop": shop, "summary": review_summary(shop)}

    def verification_status(self, shop_id: str) -> dict[str, object]:
        """What the owner sees about their own review."""
        shop = self.store.read(shop_id)
        return {
            "status": shop.verification.verification_status,
            "notes": shop.verification_notes,
            "verified_at": shop.verified_at,
            "verified_by": shop.verified_by,
            "is_active": shop.is_active,
            "is_live": shop.is_live,
        }

    def review(
        self,
        shop_id: str,
        status: VerificationStatus | str,
        notes: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> ReviewDecision:
        return self.lifecycle.review(shop_id, status, notes, admin_id)

    def stats(self) -> dict[str, int]:
        shops = self.store.list()
        counts = {status.value: 0 for status in VerificationStatus}
        for shop in shops:
            counts[shop.verification.verification_status.value] += 1
        return {"total": len(shops), **counts}
