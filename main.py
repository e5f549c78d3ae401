#!/usr/bin/env python3
"""
Shop Trust — Entry Point
=========================

Walks one sample shop through all three verification steps and the admin
review, then prints the verification record.

Usage:
    python main.py                                  # No keys: providers degrade
    GOOGLE_MAPS_API_KEY=... python main.py          # Real reverse/forward geocoding
"""

from __future__ import annotations

import logging
import sys
import tempfile
from pathlib import Path

from PIL import Image

from shop_trust.config import Settings
from shop_trust.flags import review_summary
from shop_trust.pipeline import ShopVerificationService

# ─── Sample Shop ────────────────────────────────────────────────────

SHOP_ADDRESS = "12 Main St, Springfield, IL 62701"
SHOP_LAT, SHOP_LON = 39.80172, -89.64371

LICENSE_TEXT = """\
GOVERNMENT OF ILLINOIS - SHOPS & ESTABLISHMENTS
Licence No: LIC-2291-88
Name of Establishment: Corner Store
Address: 12 Main Street
Springfield, IL 62701
Valid Till: 2027-03-31
"""


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


def _flag(value: bool) -> str:
    return f"{_RED}RAISED{_RESET}" if value else f"{_GREEN}clear{_RESET}"


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_record(shop) -> int:
    """Print the verification record. Returns 1 if any flag is raised."""
    record = shop.verification
    summary = review_summary(shop)

    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  SHOP VERIFICATION RECORD{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Shop:        {shop.shop_name} {_DIM}({shop.shop_id}){_RESET}")
    print(f"  License:     {shop.license_number}")
    print(f"  Address:     {record.submitted_address}")
    if record.submitted_location:
        loc = record.submitted_location
        print(f"  GPS:         {loc.lat:.5f}, {loc.lon:.5f}")
    print(f"  Geocoded:    {record.reverse_geocoded_address or _DIM + '(none)' + _RESET}")
    print(f"  Addr score:  {record.address_match_score}")
    print(f"  Location OK: {record.is_location_verified}")
    if record.license:
        print(f"  OCR number:  {record.license.extracted_number}")
        print(f"  OCR address: {record.license.extracted_address}")
    if record.photo_proof:
        print(f"  Photo:       {record.photo_proof.url}")
        print(f"  EXIF GPS:    {record.photo_proof.exif_lat}, {record.photo_proof.exif_lon}")
    print(f"{'─' * _WIDTH}")
    print(f"  Address mismatch:  {_flag(record.flags.address_mismatch)}")
    print(f"  Licence mismatch:  {_flag(record.flags.licence_mismatch)}")
    print(f"  EXIF mismatch:     {_flag(record.flags.exif_mismatch)}")
    print(f"{'─' * _WIDTH}")
    print(f"  Status:      {record.verification_status.value}")
    print(f"  Badge:       {record.verified_badge}")
    if record.location_lock:
        print(f"  Locked at:   {record.location_lock.lat:.5f}, {record.location_lock.lon:.5f}")
    print(f"{'=' * _WIDTH}\n")

    return 1 if summary["needs_manual_attention"] else 0


# ─── Main ───────────────────────────────────────────────────────────


def main():
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    # Sample documents are temp files, so local paths are allowed here only
    service = ShopVerificationService.from_settings(settings, allow_local_files=True)

    with tempfile.TemporaryDirectory() as tmp:
        license_path = Path(tmp) / "license.txt"
        license_path.write_text(LICENSE_TEXT, encoding="utf-8")
        photo_path = Path(tmp) / "storefront.jpg"
        Image.new("RGB", (64, 48), color=(180, 120, 60)).save(photo_path, "JPEG")

        shop = service.register_shop(
            owner_id="demo-owner",
            shop_name="Corner Store",
            license_number="LIC-2291-88",
            address=SHOP_ADDRESS,
            license_document_url=str(license_path),
        )

        service.submit_gps(shop.shop_id, SHOP_LAT, SHOP_LON)
        service.verify_license(shop.shop_id)
        service.upload_photo_proof(shop.shop_id, str(photo_path))
        service.review(shop.shop_id, "approved", notes="Demo approval", admin_id="demo-admin")

    sys.exit(print_record(service.get_shop(shop.shop_id)))


if __name__ == "__main__":
    main()
