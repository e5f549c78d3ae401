"""Pytest configuration: project root on sys.path, fake providers, no network."""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Optional

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from shop_trust.models import GeocodeResult, GeoPoint, UploadOutcome  # noqa: E402
from shop_trust.pipeline import ShopVerificationService  # noqa: E402
from shop_trust.store import InMemoryShopStore  # noqa: E402


# ─── Fake Providers ─────────────────────────────────────────────────


class FakeGeocoder:
    """Scripted geocoder. Set `reverse` / `forward` results, or `error` to raise."""

    def __init__(self) -> None:
        self.reverse: Optional[GeocodeResult] = None
        self.forward: Optional[GeocodeResult] = None
        self.error: Exception | None = None
        self.delay_s = 0.0
        self.calls: list[tuple[str, object]] = []

    def reverse_geocode(self, lat: float, lon: float) -> Optional[GeocodeResult]:
        self.calls.append(("reverse", (lat, lon)))
        return self._respond(self.reverse)

    def forward_geocode(self, address: str) -> Optional[GeocodeResult]:
        self.calls.append(("forward", address))
        return self._respond(self.forward)

    def _respond(self, result: Optional[GeocodeResult]) -> Optional[GeocodeResult]:
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return result


class FakeTextExtractor:
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.error: Exception | None = None
        self.urls: list[str] = []

    def extract_text(self, document_url: str) -> str:
        self.urls.append(document_url)
        if self.error is not None:
            raise self.error
        return self.text


class FakeExifReader:
    def __init__(self, point: Optional[GeoPoint] = None) -> None:
        self.point = point
        self.error: Exception | None = None
        self.urls: list[str] = []

    def read_gps(self, image_url: str) -> Optional[GeoPoint]:
        self.urls.append(image_url)
        if self.error is not None:
            raise self.error
        return self.point


class FakeUploader:
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.folders: list[str] = []

    def upload_from_url(self, url: str, folder: str) -> UploadOutcome:
        self.folders.append(folder)
        if self.error is not None:
            raise self.error
        return UploadOutcome(
            url=f"https://cdn.example.com/{folder}/photo.jpg",
            public_id=f"{folder}/photo",
            rehosted=True,
        )


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def shop_reviewed(self, shop, decision) -> None:
        self.sent.append((shop.shop_id, decision.verification_status.value))


# ─── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def ocr() -> FakeTextExtractor:
    return FakeTextExtractor()


@pytest.fixture
def exif() -> FakeExifReader:
    return FakeExifReader()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> InMemoryShopStore:
    return InMemoryShopStore()


@pytest.fixture
def service(store, geocoder, ocr, exif, uploader, notifier) -> ShopVerificationService:
    return ShopVerificationService(
        store=store,
        reverse_geocoder=geocoder,
        forward_geocoder=geocoder,
        text_extractor=ocr,
        exif_reader=exif,
        uploader=uploader,
        notifier=notifier,
        provider_timeout_s=0.5,
    )


@pytest.fixture
def shop(service):
    """A freshly registered, pending shop."""
    return service.register_shop(
        owner_id="owner-1",
        shop_name="Corner Store",
        license_number="LIC 123 456",
        address="12 Main St, Springfield",
        license_document_url="https://files.example.com/license.pdf",
        shop_id="shop-1",
    )
