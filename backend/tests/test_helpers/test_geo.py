"""Tests for geographic helpers."""

import math

import pytest

from helpers.geo import (
    CITY_BOUNDARIES,
    calculate_bounding_box,
    format_address,
    get_city_boundaries,
    haversine_distance,
    is_within_city,
    is_within_radius,
    validate_coordinates,
)

MUMBAI = (19.0760, 72.8777)
# One meter of latitude in degrees
METER_LAT = 1 / 111_195


class TestValidateCoordinates:
    """Tests for validate_coordinates."""

    @pytest.mark.parametrize(
        "lat,lng",
        [(0, 0), (90, 180), (-90, -180), (19.076, 72.8777)],
    )
    def test_accepts_points_on_the_globe(self, lat, lng):
        assert validate_coordinates(lat, lng) == (True, None)

    def test_rejects_latitude_out_of_range(self):
        is_valid, error = validate_coordinates(90.0001, 0)
        assert is_valid is False
        assert error == "Latitude must be between -90 and 90"

    def test_rejects_longitude_out_of_range(self):
        is_valid, error = validate_coordinates(0, -180.5)
        assert is_valid is False
        assert error == "Longitude must be between -180 and 180"

    @pytest.mark.parametrize("value", [float("nan"), "19.0", None, True])
    def test_rejects_non_numbers(self, value):
        is_valid, error = validate_coordinates(value, 72.0)
        assert is_valid is False
        assert error == "Coordinates must be numbers"


class TestHaversineDistance:
    """Tests for haversine_distance."""

    def test_same_point_is_zero(self):
        assert haversine_distance(*MUMBAI, *MUMBAI) == 0

    def test_is_symmetric(self):
        delhi = (28.6139, 77.2090)
        assert haversine_distance(*MUMBAI, *delhi) == pytest.approx(
            haversine_distance(*delhi, *MUMBAI)
        )

    def test_mumbai_to_delhi(self):
        """Roughly 1150 km as the crow flies."""
        distance = haversine_distance(*MUMBAI, 28.6139, 77.2090)
        assert 1_140_000 < distance < 1_160_000

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)


class TestIsWithinRadius:
    """Tests for is_within_radius."""

    def test_point_40m_north_is_inside_50m(self):
        lat, lng = MUMBAI
        assert is_within_radius(lat, lng, lat + 40 * METER_LAT, lng, 50) is True

    def test_point_60m_north_is_outside_50m(self):
        lat, lng = MUMBAI
        assert is_within_radius(lat, lng, lat + 60 * METER_LAT, lng, 50) is False


class TestCalculateBoundingBox:
    """Tests for calculate_bounding_box."""

    def test_contains_the_circle(self):
        lat, lng = MUMBAI
        box = calculate_bounding_box(lat, lng, 1000)
        assert box.contains(lat, lng)
        assert box.contains(lat + 999 * METER_LAT, lng)
        assert box.min_lat < lat < box.max_lat
        assert box.min_lng < lng < box.max_lng

    def test_longitude_span_widens_away_from_equator(self):
        equator = calculate_bounding_box(0, 0, 1000)
        north = calculate_bounding_box(60, 0, 1000)
        equator_span = equator.max_lng - equator.min_lng
        north_span = north.max_lng - north.min_lng
        assert north_span == pytest.approx(equator_span * 2, rel=1e-3)

    def test_latitude_is_clamped_at_the_pole(self):
        box = calculate_bounding_box(89.99, 0, 5000)
        assert box.max_lat == 90.0

    def test_pole_covers_all_longitudes(self):
        box = calculate_bounding_box(90, 10, 100)
        assert box.max_lng - box.min_lng == 360.0

    def test_span_matches_radius(self):
        box = calculate_bounding_box(0, 0, 1000)
        assert (box.max_lat - box.min_lat) / 2 == pytest.approx(
            math.degrees(1000 / 6_371_000)
        )


class TestCityBoundaries:
    """Tests for service-area lookups."""

    def test_lookup_is_case_insensitive(self):
        assert get_city_boundaries("  MUMBAI ") == CITY_BOUNDARIES["mumbai"]

    def test_unknown_city_has_no_boundaries(self):
        assert get_city_boundaries("Atlantis") is None

    def test_point_inside_city(self):
        assert is_within_city(*MUMBAI, "Mumbai") is True

    def test_point_outside_city(self):
        """Delhi coordinates are not in Mumbai."""
        assert is_within_city(28.6139, 77.2090, "mumbai") is False

    def test_edges_are_inclusive(self):
        assert is_within_city(18.9, 72.7, "Mumbai") is True

    def test_unknown_city_is_accepted(self):
        assert is_within_city(0, 0, "Atlantis") is True


class TestFormatAddress:
    """Tests for format_address."""

    def test_skips_empty_parts(self):
        assert format_address("MG Road", None, "", "Mumbai", "400001") == (
            "MG Road, Mumbai, 400001"
        )

    def test_all_empty(self):
        assert format_address(None, " ") == ""
