"""
Address similarity scoring (0–100) for free-text street addresses.

Merchants type "12 Main St", geocoders answer "12 Main Street, Springfield,
IL 62701, USA", OCR reads "12 MAIN ST.", all the same shop. The scorer:

  1. Normalizes: lowercase, punctuation → space, collapse whitespace
  2. Canonicalizes common street abbreviations (st → street, rd → road, ...)
  3. Blends two token-level measures:
       - overlap:      shared tokens / size of the larger token set
       - containment:  share of tokens on both sides that appear in (or
                       contain) a token on the other side
  4. Scales to an integer 0–100

Contracts: score(a, a) == 100 for non-empty a, score(a, "") == 0, and
score(a, b) == score(b, a). No I/O, never raises.
"""

from __future__ import annotations

import re

# ─── Abbreviation Canonicalization ──────────────────────────────────
# Both sides are rewritten to the same long form, so the mapping only has
# to be consistent, not linguistically perfect ("st" is always "street").

_CANONICAL_TOKENS: dict[str, str] = {
    "st": "street",
    "str": "street",
    "rd": "road",
    "ave": "avenue",
    "av": "avenue",
    "blvd": "boulevard",
    "dr": "drive",
    "ln": "lane",
    "ct": "court",
    "pl": "place",
    "sq": "square",
    "hwy": "highway",
    "mkt": "market",
    "opp": "opposite",
    "nr": "near",
    "apt": "apartment",
    "bldg": "building",
    "fl": "floor",
    "n": "north",
    "s": "south",
    "e": "east",
    "w": "west",
}

# Partial (substring) credit only for tokens long enough to be meaningful
_MIN_PARTIAL_TOKEN_LEN = 3

_OVERLAP_WEIGHT = 0.6
_CONTAINMENT_WEIGHT = 0.4

MATCH_THRESHOLD = 60


def normalize_address(text: str | None) -> str:
    """Lowercase, replace punctuation with spaces, collapse whitespace."""
    if not text:
        return ""
    lowered = text.lower()
    lowered = re.sub(r"[^\w\s]|_", " ", lowered)
    return re.sub(r"\s+", " ", lowered).strip()


def address_tokens(text: str | None) -> set[str]:
    """Canonical word tokens of an address."""
    return {_CANONICAL_TOKENS.get(tok, tok) for tok in normalize_address(text).split()}


def address_match_score(a: str | None, b: str | None) -> int:
    """Similarity of two addresses as an integer in [0, 100]."""
    tokens_a = address_tokens(a)
    tokens_b = address_tokens(b)
    if not tokens_a or not tokens_b:
        return 0

    shared = len(tokens_a & tokens_b)
    overlap = shared / max(len(tokens_a), len(tokens_b))

    contained = _count_contained(tokens_a, tokens_b) + _count_contained(tokens_b, tokens_a)
    containment = contained / (len(tokens_a) + len(tokens_b))

    blended = _OVERLAP_WEIGHT * overlap + _CONTAINMENT_WEIGHT * containment
    return max(0, min(100, int(round(blended * 100))))


def is_good_match(score: int) -> bool:
    return score >= MATCH_THRESHOLD


# ─── Internal Helpers ───────────────────────────────────────────────


def _count_contained(source: set[str], other: set[str]) -> int:
    """How many tokens of `source` match, or partially match, a token of `other`."""
    count = 0
    for token in source:
        if token in other:
            count += 1
        elif len(token) >= _MIN_PARTIAL_TOKEN_LEN and any(
            len(o) >= _MIN_PARTIAL_TOKEN_LEN and (token in o or o in token) for o in other
        ):
            count += 1
    return count
