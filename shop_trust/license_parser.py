"""
Heuristic extraction of license number and address from OCR text.

Trade licenses come from dozens of issuing bodies with no shared layout,
so the patterns here are deliberately loose: find a labelled license
number if there is one, otherwise an ID-shaped token; find the address
block that follows an address-like label, otherwise the longest line.

Returning None is always preferred over returning a guess that merely
looks plausible: a missing number fails the license check closed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# ─── Patterns ───────────────────────────────────────────────────────

# "License No: LIC-2291/88", "Licence Number 12 3456", "Shop Act No. SA/44/2019"
_LABELLED_NUMBER = re.compile(
    r"\b(?:licen[cs]e|lic\.?|registration|reg\.?|shop\s*act)\s*"
    r"(?:no\.?|number|num\.?|#)\s*[:\-]?\s*"
    r"([A-Z0-9][A-Z0-9/\-]*(?:\s[0-9][A-Z0-9/\-]*)*)",
    re.IGNORECASE,
)

# Unlabelled fallback: "MH12-44821-AB", "2291/ABC/18"
_ID_SHAPED_TOKEN = re.compile(
    r"\b([A-Z0-9]{3,}[-/][A-Z0-9]{3,}(?:[-/][A-Z0-9]{2,})?)\b",
    re.IGNORECASE,
)

_ADDRESS_LABEL = re.compile(
    r"\b(?:address|addr\.?|situated\s+at|location)\s*[:\-]?\s*",
    re.IGNORECASE,
)

# Any other "Label: value" line ends an address block
_OTHER_LABEL_LINE = re.compile(r"^[A-Za-z][A-Za-z .]{1,30}:\s")

_MIN_LICENSE_CHARS = 6
_ADDRESS_BLOCK_LINES = 3


# ─── Data Structures ────────────────────────────────────────────────


@dataclass
class LicenseDetails:
    """Fields recovered from a license document."""

    license_number: str | None
    address: str | None
    raw_text: str


# ─── Public API ─────────────────────────────────────────────────────


def extract_license_details(raw_text: str) -> LicenseDetails:
    """Extract license number and address from raw OCR text."""
    lines = [line.strip() for line in (raw_text or "").splitlines()]
    lines = [line for line in lines if line]

    return LicenseDetails(
        license_number=_extract_license_number(lines),
        address=_extract_address(lines),
        raw_text=raw_text or "",
    )


def normalize_license_number(value: str | None) -> str:
    """Strip all whitespace: 'LIC 123 456' → 'LIC123456'. Case is kept."""
    if not value:
        return ""
    return re.sub(r"\s+", "", value)


def license_numbers_match(extracted: str | None, submitted: str | None) -> bool:
    """A match needs an extracted number; two empties never match.

    Extracted numbers come back upper-cased from OCR cleanup, while the
    submitted number is compared as typed. A registration in lower case
    therefore does not match, and the license check fails closed.
    """
    if not extracted:
        return False
    return normalize_license_number(extracted) == normalize_license_number(submitted)


# ─── Individual Field Extractors ────────────────────────────────────


def _extract_license_number(lines: list[str]) -> str | None:
    """Labelled numbers win over ID-shaped tokens anywhere in the text."""
    for line in lines:
        match = _LABELLED_NUMBER.search(line)
        if match:
            candidate = _clean_number(match.group(1))
            if candidate:
                return candidate

    for line in lines:
        for match in _ID_SHAPED_TOKEN.finditer(line):
            candidate = _clean_number(match.group(1))
            if candidate:
                return candidate

    return None


def _clean_number(raw: str) -> str | None:
    """Uppercase, collapse inner whitespace, reject too-short or digit-free values."""
    value = re.sub(r"\s+", " ", raw.strip()).upper().strip("-/ ")
    compact = value.replace(" ", "")
    if len(compact) < _MIN_LICENSE_CHARS or not any(ch.isdigit() for ch in compact):
        return None
    return value


def _extract_address(lines: list[str]) -> str | None:
    """Longest address block after an address-like label, else the longest line."""
    best: str | None = None

    for i, line in enumerate(lines):
        match = _ADDRESS_LABEL.search(line)
        if not match:
            continue

        parts = [line[match.end():].strip()]
        for follow in lines[i + 1 : i + _ADDRESS_BLOCK_LINES]:
            if _OTHER_LABEL_LINE.match(follow):
                break
            parts.append(follow)

        candidate = ", ".join(p for p in parts if p)
        if candidate and (best is None or len(candidate) > len(best)):
            best = candidate

    if best:
        return best
    if not lines:
        return None
    return max(lines, key=len)
