"""
Unit tests for coordinate normalization and polygon validation.
"""

import pytest

from app.modules.coordinates.validator import (
    CoordinatePoint,
    CoordinateValidationError,
    normalize,
    normalize_and_validate,
    polygon_from_json,
    polygon_to_json,
    segments_intersect,
    signed_area,
    validate_geometry,
)

ARRAY_INPUT = [
    {"lat": 14.0, "lng": 121.0},
    {"lat": 14.0, "lng": 121.01},
    {"lat": 14.01, "lng": 121.01},
    {"lat": 14.01, "lng": 121.0},
]


def _points(*pairs):
    return tuple(CoordinatePoint(lat=lat, lng=lng) for lat, lng in pairs)


class TestNormalize:
    """Tests for the input-shape decode."""

    def test_array_keeps_order(self):
        polygon = normalize(ARRAY_INPUT)
        assert [p.as_dict() for p in polygon] == ARRAY_INPUT

    def test_keyed_object_sorted_by_number(self):
        raw = {
            "point10": {"lat": 14.0, "lng": 121.0},
            "point2": {"lat": 14.01, "lng": 121.01},
            "point1": {"lat": 14.0, "lng": 121.01},
        }
        polygon = normalize(raw)
        assert polygon == _points((14.0, 121.01), (14.01, 121.01), (14.0, 121.0))

    def test_keyed_object_ignores_other_keys(self):
        raw = {"point1": [14.0, 121.0], "label": "north", "point2": [14.1, 121.1]}
        assert len(normalize(raw)) == 2

    def test_alternate_key_names_and_pairs(self):
        raw = [
            {"latitude": "14.0", "longitude": "121.0"},
            {"lat": 14.0, "lon": 121.01},
            [14.01, 121.01],
        ]
        assert normalize(raw) == _points((14.0, 121.0), (14.0, 121.01), (14.01, 121.01))

    def test_explicitly_closed_ring_dropped(self):
        polygon = normalize([*ARRAY_INPUT, ARRAY_INPUT[0]])
        assert len(polygon) == 4

    def test_out_of_range_latitude(self):
        raw = [{"lat": 91, "lng": 121.0}, {"lat": 14.0, "lng": 200}]
        with pytest.raises(CoordinateValidationError) as exc_info:
            normalize(raw)
        assert exc_info.value.details == [
            {"field": "point1.lat", "message": "Latitude must be between -90 and 90"},
            {"field": "point2.lng", "message": "Longitude must be between -180 and 180"},
        ]

    def test_non_numeric_values(self):
        with pytest.raises(CoordinateValidationError) as exc_info:
            normalize([{"lat": "north", "lng": True}])
        fields = [d["field"] for d in exc_info.value.details]
        assert fields == ["point1.lat", "point1.lng"]

    def test_non_finite_rejected(self):
        with pytest.raises(CoordinateValidationError):
            normalize([{"lat": float("nan"), "lng": 121.0}])

    def test_keyed_object_without_points(self):
        with pytest.raises(CoordinateValidationError) as exc_info:
            normalize({"a": 1})
        assert exc_info.value.details[0]["field"] == "coordinates"

    def test_scalar_input_rejected(self):
        with pytest.raises(CoordinateValidationError):
            normalize("14.0,121.0")

    def test_error_code(self):
        with pytest.raises(CoordinateValidationError) as exc_info:
            normalize(None)
        assert exc_info.value.error_code == "INVALID_COORDINATES"
        assert exc_info.value.status_code == 422


class TestValidateGeometry:
    """Tests for the polygon rules."""

    def test_valid_square(self, square):
        check = validate_geometry(square(14.0, 121.0))
        assert check.valid
        assert check.errors == []

    def test_fewer_than_three_points(self):
        check = validate_geometry(_points((14.0, 121.0), (14.1, 121.1)))
        assert not check.valid
        assert "At least 3" in check.errors[0]

    def test_too_many_points(self, square):
        check = validate_geometry(square(14.0, 121.0), max_points=3)
        assert not check.valid

    def test_identical_consecutive_points(self):
        check = validate_geometry(
            _points((14.0, 121.0), (14.0, 121.0), (14.1, 121.1), (14.1, 121.0))
        )
        assert not check.valid
        assert check.errors == ["Point 1 and point 2 are identical"]

    def test_collinear_points(self):
        check = validate_geometry(_points((14.0, 121.0), (14.1, 121.1), (14.2, 121.2)))
        assert not check.valid
        assert "collinear" in check.errors[0]

    def test_bowtie_self_intersection(self):
        check = validate_geometry(
            _points((14.0, 121.0), (14.2, 121.1), (14.0, 121.1), (14.1, 121.0))
        )
        assert not check.valid
        assert "crosses itself" in check.errors[0]

    def test_concave_polygon_is_valid(self):
        arrow = _points(
            (14.0, 121.0), (14.0, 121.2), (14.2, 121.2), (14.1, 121.1), (14.2, 121.0)
        )
        assert validate_geometry(arrow).valid

    def test_orientation_independent(self, square):
        assert validate_geometry(tuple(reversed(square(14.0, 121.0)))).valid


class TestHelpers:
    def test_signed_area_sign_follows_orientation(self, square):
        polygon = square(0.0, 0.0, 1.0)
        assert signed_area(polygon) == pytest.approx(1.0)
        assert signed_area(tuple(reversed(polygon))) == pytest.approx(-1.0)

    def test_touching_segments_intersect(self):
        a, b, c, d = _points((0, 0), (1, 1), (1, 1), (2, 0))
        assert segments_intersect(a, b, c, d)

    def test_parallel_segments_do_not(self):
        a, b, c, d = _points((0, 0), (0, 1), (1, 0), (1, 1))
        assert not segments_intersect(a, b, c, d)

    def test_json_round_trip(self, square):
        polygon = square(14.0, 121.0)
        assert polygon_from_json(polygon_to_json(polygon)) == polygon


class TestNormalizeAndValidate:
    def test_valid_input(self):
        polygon = normalize_and_validate(ARRAY_INPUT)
        assert len(polygon) == 4

    def test_invalid_geometry_raises_with_all_errors(self):
        raw = [[14.0, 121.0], [14.2, 121.1], [14.0, 121.1], [14.1, 121.0]]
        with pytest.raises(CoordinateValidationError) as exc_info:
            normalize_and_validate(raw)
        assert all(d["field"] == "polygon" for d in exc_info.value.details)

    def test_outside_philippines_only_warns(self):
        raw = [[51.50, -0.12], [51.50, -0.11], [51.51, -0.11]]
        assert len(normalize_and_validate(raw)) == 3
