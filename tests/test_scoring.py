"""
Tests for the pure scoring leaves: address similarity, haversine distance,
and the three step decision rules. No I/O anywhere in this file.
"""

from __future__ import annotations

import pytest

from shop_trust.geo import distance_meters, within_tolerance
from shop_trust.similarity import address_match_score, address_tokens, normalize_address
from shop_trust.verifiers import exif_mismatch, licence_mismatch, location_verified

# One degree of latitude on a 6,371 km sphere
METERS_PER_DEGREE = 111_194.93


# ═══════════════════════════════════════════════════════════════════════
# ADDRESS SIMILARITY
# ═══════════════════════════════════════════════════════════════════════


class TestNormalization:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_address("12, MAIN St.  Springfield!") == "12 main st springfield"

    def test_empty_and_none(self):
        assert normalize_address("") == ""
        assert normalize_address(None) == ""

    def test_abbreviations_are_canonicalized(self):
        assert address_tokens("12 Main St") == address_tokens("12 main street")
        assert "road" in address_tokens("4 Lake Rd")


class TestAddressMatchScore:
    @pytest.mark.parametrize(
        "address",
        ["12 Main St, Springfield", "Shop 4, MG Road, Pune 411001", "x"],
    )
    def test_identical_is_100(self, address):
        assert address_match_score(address, address) == 100

    @pytest.mark.parametrize("address", ["12 Main St", "", "   "])
    def test_empty_side_is_0(self, address):
        assert address_match_score(address, "") == 0
        assert address_match_score("", address) == 0

    def test_punctuation_only_degrades_to_0(self):
        assert address_match_score("!!! ,,,", "12 Main St") == 0

    def test_none_is_0(self):
        assert address_match_score(None, "12 Main St") == 0

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("12 Main St, Springfield", "12 Main Street, Springfield, IL 62701, USA"),
            ("Shop 4, MG Road, Pune", "MG Rd, Pune, Maharashtra"),
            ("12 Main St", "45 Oak Avenue"),
            ("Springfield", "Springfield Mall Road"),
        ],
    )
    def test_symmetric(self, a, b):
        assert address_match_score(a, b) == address_match_score(b, a)

    def test_street_abbreviation_scores_as_a_good_match(self):
        assert address_match_score("12 Main St, Springfield", "12 Main Street, Springfield") >= 60

    def test_geocoder_style_address_still_a_good_match(self):
        score = address_match_score(
            "12 Main St, Springfield", "12 Main Street, Springfield, IL 62701, USA"
        )
        assert score >= 60

    def test_case_and_punctuation_insensitive(self):
        assert address_match_score("12, MAIN ST.", "12 main st") == 100

    def test_unrelated_addresses_score_low(self):
        assert address_match_score("12 Main St, Springfield", "99 Harbor Road, Shelbyville") < 20

    def test_same_city_different_street_is_not_a_good_match(self):
        assert address_match_score("12 Main St, Springfield", "45 Oak Avenue, Springfield") < 60

    def test_score_is_bounded(self):
        score = address_match_score("a b c d e", "c d e f g h i j")
        assert 0 <= score <= 100


# ═══════════════════════════════════════════════════════════════════════
# HAVERSINE DISTANCE
# ═══════════════════════════════════════════════════════════════════════


class TestDistance:
    def test_same_point_is_zero(self):
        assert distance_meters(39.7817, -89.6501, 39.7817, -89.6501) == 0.0

    def test_symmetric(self):
        a = (18.5204, 73.8567)
        b = (18.5310, 73.8446)
        assert distance_meters(*a, *b) == pytest.approx(distance_meters(*b, *a))

    def test_one_degree_of_latitude(self):
        assert distance_meters(10.0, 20.0, 11.0, 20.0) == pytest.approx(METERS_PER_DEGREE, rel=1e-4)

    def test_fifty_meters_north(self):
        offset = 50 / METERS_PER_DEGREE
        assert distance_meters(39.78, -89.65, 39.78 + offset, -89.65) == pytest.approx(50, rel=5e-3)

    def test_longitude_shrinks_with_latitude(self):
        at_equator = distance_meters(0.0, 0.0, 0.0, 1.0)
        at_sixty = distance_meters(60.0, 0.0, 60.0, 1.0)
        assert at_sixty == pytest.approx(at_equator / 2, rel=1e-3)

    def test_antipodal_points_do_not_blow_up(self):
        assert distance_meters(0.0, 0.0, 0.0, 180.0) == pytest.approx(20_015_086.8, rel=1e-4)

    def test_unknown_distance_is_never_within_tolerance(self):
        assert within_tolerance(None) is False
        assert within_tolerance(100.0) is True
        assert within_tolerance(100.01) is False


# ═══════════════════════════════════════════════════════════════════════
# DECISION RULES
# ═══════════════════════════════════════════════════════════════════════


class TestLocationDecision:
    def test_close_distance_verifies_despite_poor_score(self):
        assert location_verified(50.0, 10) is True

    def test_good_score_verifies_without_distance(self):
        assert location_verified(None, 60) is True

    def test_far_and_poor_score_is_unverified(self):
        assert location_verified(500.0, 40) is False

    def test_no_distance_and_poor_score_is_unverified(self):
        assert location_verified(None, 59) is False


class TestLicenceDecision:
    def test_number_mismatch_always_flags(self):
        assert licence_mismatch(False, 100, True) is True

    def test_good_address_clears(self):
        assert licence_mismatch(True, 60, False) is False

    def test_poor_address_without_gps_evidence_flags(self):
        assert licence_mismatch(True, 30, False) is True

    def test_poor_address_rescued_by_nearby_geocode(self):
        assert licence_mismatch(True, 30, True) is False


class TestExifDecision:
    def test_absent_distance_is_not_a_mismatch(self):
        assert exif_mismatch(None) is False

    def test_within_100m(self):
        assert exif_mismatch(99.9) is False

    def test_beyond_100m(self):
        assert exif_mismatch(250.0) is True
