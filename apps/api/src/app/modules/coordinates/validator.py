"""
Coordinate Validator

Turns raw boundary input into the canonical Polygon (an ordered tuple of
CoordinatePoint) and rejects degenerate shapes.

Two input shapes are accepted and decoded explicitly:
- an array of points: [{"lat": .., "lng": ..}, ...], also with
  latitude/longitude keys or [lat, lng] pairs
- the legacy keyed object: {"point1": {"latitude": .., "longitude": ..}, ...}

Nothing downstream of `normalize` ever sees the legacy shape.
"""

import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

MIN_POINTS = 3
MAX_POINTS = 50
COLLINEAR_TOLERANCE = 1e-10

# Rough national extent; points outside it are logged, not rejected
PH_BOUNDS = {"min_lat": 4.5, "max_lat": 21.3, "min_lng": 116.0, "max_lng": 127.0}

_KEYED_POINT = re.compile(r"^point(\d+)$")


@dataclass(frozen=True)
class CoordinatePoint:
    lat: float
    lng: float

    def as_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


Polygon = tuple[CoordinatePoint, ...]


@dataclass
class GeometryCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)


class CoordinateValidationError(ValidationError):
    """Raised when raw coordinates cannot be turned into a valid polygon."""

    def __init__(self, details: list[dict[str, str]]):
        super().__init__(
            message="Invalid project coordinates.",
            details=details,
            error_code="INVALID_COORDINATES",
        )


# ============================================
# Decoding
# ============================================


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def _decode_point(
    index: int, raw: Any, errors: list[dict[str, str]]
) -> CoordinatePoint | None:
    """Decode and range-check one point. `index` is 1-based."""
    if isinstance(raw, Mapping):
        raw_lat = _pick(raw, "lat", "latitude")
        raw_lng = _pick(raw, "lng", "lon", "longitude")
    elif isinstance(raw, Sequence) and not isinstance(raw, str) and len(raw) == 2:
        raw_lat, raw_lng = raw
    else:
        errors.append({"field": f"point{index}", "message": "Point must have lat and lng"})
        return None

    lat = _parse_number(raw_lat)
    lng = _parse_number(raw_lng)
    ok = True

    if lat is None:
        errors.append({"field": f"point{index}.lat", "message": "Latitude must be a number"})
        ok = False
    elif not -90 <= lat <= 90:
        errors.append(
            {"field": f"point{index}.lat", "message": "Latitude must be between -90 and 90"}
        )
        ok = False

    if lng is None:
        errors.append({"field": f"point{index}.lng", "message": "Longitude must be a number"})
        ok = False
    elif not -180 <= lng <= 180:
        errors.append(
            {"field": f"point{index}.lng", "message": "Longitude must be between -180 and 180"}
        )
        ok = False

    return CoordinatePoint(lat=lat, lng=lng) if ok else None


def _decode_array(raw: Sequence[Any], errors: list[dict[str, str]]) -> list[CoordinatePoint]:
    points = []
    for i, item in enumerate(raw, start=1):
        point = _decode_point(i, item, errors)
        if point is not None:
            points.append(point)
    return points


def _decode_keyed(raw: Mapping[str, Any], errors: list[dict[str, str]]) -> list[CoordinatePoint]:
    numbered = []
    for key, value in raw.items():
        match = _KEYED_POINT.match(str(key))
        if match:
            numbered.append((int(match.group(1)), value))

    if not numbered:
        errors.append({"field": "coordinates", "message": "No point1..pointN keys found"})
        return []

    points = []
    for number, value in sorted(numbered, key=lambda item: item[0]):
        point = _decode_point(number, value, errors)
        if point is not None:
            points.append(point)
    return points


def normalize(raw: Any) -> Polygon:
    """
    Decode raw input into the canonical ordered polygon.

    Only the shape and numeric ranges are checked here; see
    validate_geometry for the polygon rules. A trailing point equal to the
    first one (an explicitly closed ring) is dropped.

    Raises:
        CoordinateValidationError: With one entry per offending point
    """
    errors: list[dict[str, str]] = []

    if isinstance(raw, Mapping):
        points = _decode_keyed(raw, errors)
    elif isinstance(raw, Sequence) and not isinstance(raw, str | bytes):
        points = _decode_array(raw, errors)
    else:
        raise CoordinateValidationError(
            [{"field": "coordinates", "message": "Coordinates must be an array or keyed object"}]
        )

    if errors:
        raise CoordinateValidationError(errors)

    if len(points) > 1 and points[0] == points[-1]:
        points = points[:-1]

    return tuple(points)


# ============================================
# Geometry checks
# ============================================


def _cross(o: CoordinatePoint, a: CoordinatePoint, b: CoordinatePoint) -> float:
    return (a.lng - o.lng) * (b.lat - o.lat) - (a.lat - o.lat) * (b.lng - o.lng)


def _on_segment(p: CoordinatePoint, q: CoordinatePoint, r: CoordinatePoint) -> bool:
    """True if q lies within the bounding box of segment p-r."""
    return (
        min(p.lng, r.lng) <= q.lng <= max(p.lng, r.lng)
        and min(p.lat, r.lat) <= q.lat <= max(p.lat, r.lat)
    )


def _orientation(p: CoordinatePoint, q: CoordinatePoint, r: CoordinatePoint) -> int:
    value = _cross(p, q, r)
    if abs(value) < COLLINEAR_TOLERANCE:
        return 0
    return 1 if value > 0 else -1


def segments_intersect(
    p1: CoordinatePoint, p2: CoordinatePoint, p3: CoordinatePoint, p4: CoordinatePoint
) -> bool:
    """Segment p1-p2 intersects p3-p4, touching and collinear overlap included."""
    o1 = _orientation(p1, p2, p3)
    o2 = _orientation(p1, p2, p4)
    o3 = _orientation(p3, p4, p1)
    o4 = _orientation(p3, p4, p2)

    if o1 != o2 and o3 != o4:
        return True

    return (
        (o1 == 0 and _on_segment(p1, p3, p2))
        or (o2 == 0 and _on_segment(p1, p4, p2))
        or (o3 == 0 and _on_segment(p3, p1, p4))
        or (o4 == 0 and _on_segment(p3, p2, p4))
    )


def signed_area(polygon: Polygon) -> float:
    """Shoelace signed area in squared degrees (positive = counter-clockwise)."""
    total = 0.0
    n = len(polygon)
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        total += a.lng * b.lat - b.lng * a.lat
    return total / 2.0


def _all_collinear(polygon: Polygon) -> bool:
    first, second = polygon[0], polygon[1]
    return all(abs(_cross(first, second, p)) < COLLINEAR_TOLERANCE for p in polygon[2:])


def validate_geometry(polygon: Polygon, max_points: int = MAX_POINTS) -> GeometryCheck:
    """
    Check the polygon rules.

    - at least 3 points (and no more than max_points)
    - no two consecutive points equal (including last -> first)
    - points not all collinear / non-zero signed area
    - no two non-adjacent edges intersect
    """
    n = len(polygon)
    if n < MIN_POINTS:
        return GeometryCheck(
            valid=False,
            errors=["At least 3 coordinate points are required to form a polygon"],
        )
    if n > max_points:
        return GeometryCheck(
            valid=False,
            errors=[f"A polygon may have at most {max_points} coordinate points"],
        )

    errors: list[str] = []

    for i in range(n):
        nxt = (i + 1) % n
        if polygon[i] == polygon[nxt]:
            errors.append(f"Point {i + 1} and point {nxt + 1} are identical")

    if errors:
        return GeometryCheck(valid=False, errors=errors)

    if _all_collinear(polygon) or abs(signed_area(polygon)) < COLLINEAR_TOLERANCE:
        return GeometryCheck(
            valid=False,
            errors=["All points are collinear and do not enclose an area"],
        )

    for i in range(n):
        a1, a2 = polygon[i], polygon[(i + 1) % n]
        for j in range(i + 2, n):
            # First and last edges share a vertex
            if i == 0 and j == n - 1:
                continue
            b1, b2 = polygon[j], polygon[(j + 1) % n]
            if segments_intersect(a1, a2, b1, b2):
                errors.append(f"Edge {i + 1} intersects edge {j + 1}; the polygon crosses itself")

    return GeometryCheck(valid=not errors, errors=errors)


def is_within_philippines(polygon: Polygon) -> bool:
    return all(
        PH_BOUNDS["min_lat"] <= p.lat <= PH_BOUNDS["max_lat"]
        and PH_BOUNDS["min_lng"] <= p.lng <= PH_BOUNDS["max_lng"]
        for p in polygon
    )


def normalize_and_validate(raw: Any, max_points: int = MAX_POINTS) -> Polygon:
    """
    Normalize raw input and enforce the polygon rules.

    Raises:
        CoordinateValidationError: Listing every problem found
    """
    polygon = normalize(raw)
    check = validate_geometry(polygon, max_points=max_points)
    if not check.valid:
        raise CoordinateValidationError(
            [{"field": "polygon", "message": message} for message in check.errors]
        )

    if not is_within_philippines(polygon):
        logger.warning("Submitted coordinates fall outside the Philippines extent")

    return polygon


def polygon_to_json(polygon: Polygon) -> list[dict[str, float]]:
    """Canonical JSON form stored on applications and ledger rows."""
    return [point.as_dict() for point in polygon]


def polygon_from_json(data: list[dict[str, float]]) -> Polygon:
    """Inverse of polygon_to_json for trusted, already-validated rows."""
    return tuple(CoordinatePoint(lat=float(p["lat"]), lng=float(p["lng"])) for p in data)
