"""
Geometry helpers for canonical polygons.

Bounding boxes, GeoJSON conversion, shapely conversion and the DMS
(degrees/minutes/seconds) helpers used by survey plans.
"""

import re
from dataclasses import dataclass
from typing import Any

from shapely.geometry import Polygon as ShapelyPolygon

from .validator import CoordinatePoint, Polygon

_DMS_PATTERN = re.compile(
    r"^\s*(-?\d+(?:\.\d+)?)\s*°\s*(\d+(?:\.\d+)?)\s*['′]\s*(\d+(?:\.\d+)?)\s*(?:\"|″|'')?\s*([NSEW])?\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            self.max_lat < other.min_lat
            or self.min_lat > other.max_lat
            or self.max_lng < other.min_lng
            or self.min_lng > other.max_lng
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "min_lat": self.min_lat,
            "max_lat": self.max_lat,
            "min_lng": self.min_lng,
            "max_lng": self.max_lng,
        }


def bounding_box(polygon: Polygon) -> BoundingBox:
    lats = [p.lat for p in polygon]
    lngs = [p.lng for p in polygon]
    return BoundingBox(min_lat=min(lats), max_lat=max(lats), min_lng=min(lngs), max_lng=max(lngs))


def to_shapely(polygon: Polygon) -> ShapelyPolygon:
    """Shapely polygon in (x=lng, y=lat) order."""
    return ShapelyPolygon([(p.lng, p.lat) for p in polygon])


def to_geojson(polygon: Polygon, properties: dict[str, Any] | None = None) -> dict[str, Any]:
    """GeoJSON Feature with a closed [lng, lat] ring."""
    ring = [[p.lng, p.lat] for p in polygon]
    ring.append(ring[0])
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [ring]},
        "properties": properties or {},
    }


def centroid(polygon: Polygon) -> CoordinatePoint:
    """Area centroid of the polygon."""
    point = to_shapely(polygon).centroid
    return CoordinatePoint(lat=point.y, lng=point.x)


def parse_dms(value: str) -> float:
    """
    Parse a DMS string such as 14°35'12.50"N into decimal degrees.

    South and west hemispheres (or a leading minus) give negative values.
    The result is rounded to 6 decimal places.

    Raises:
        ValueError: If the string is not in DMS form
    """
    match = _DMS_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid DMS value: {value!r}")

    degrees_text, minutes_text, seconds_text, hemisphere = match.groups()
    degrees = float(degrees_text)
    minutes = float(minutes_text)
    seconds = float(seconds_text)
    if minutes >= 60 or seconds >= 60:
        raise ValueError(f"Invalid DMS value: {value!r}")

    decimal = abs(degrees) + minutes / 60 + seconds / 3600
    negative = degrees_text.startswith("-") or (hemisphere or "").upper() in ("S", "W")
    return round(-decimal if negative else decimal, 6)


def decimal_to_dms(value: float, precision: int = 2) -> str:
    """Format decimal degrees as D°MM'SS.SS" (sign kept on the degrees)."""
    sign = "-" if value < 0 else ""
    remaining = abs(value)
    degrees = int(remaining)
    remaining = (remaining - degrees) * 60
    minutes = int(remaining)
    seconds = round((remaining - minutes) * 60, precision)
    if seconds >= 60:
        seconds -= 60
        minutes += 1
    if minutes >= 60:
        minutes -= 60
        degrees += 1
    return f"{sign}{degrees}°{minutes:02d}'{seconds:0{precision + 3}.{precision}f}\""
