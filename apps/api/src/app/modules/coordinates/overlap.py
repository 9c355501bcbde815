"""
Overlap Detector

Pure, stateless comparison of a candidate polygon against the approved
(ACTIVE) polygons of other applications.

Intersections are computed with shapely in planar lng/lat space and their
area is measured geodesically on the WGS-84 ellipsoid with pyproj. The
overlap percentage is relative to the candidate's own area.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pyproj import Geod
from shapely.geometry import MultiPolygon, mapping
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.base import BaseGeometry

from .geometry import BoundingBox, bounding_box, to_shapely
from .validator import Polygon

logger = logging.getLogger(__name__)

_GEOD = Geod(ellps="WGS84")


@dataclass(frozen=True)
class ReferencePolygon:
    """An approved polygon of another application."""

    history_id: UUID
    application_id: UUID
    application_no: str
    polygon: Polygon
    bounding_box: BoundingBox


@dataclass(frozen=True)
class OverlapResult:
    affected_application_id: UUID
    affected_application_no: str
    affected_coordinate_history_id: UUID
    overlap_percentage: float
    overlap_area_sq_meters: float
    overlap_geojson: dict[str, Any]

    def as_dict(self) -> dict[str, Any]:
        return {
            "affected_application_id": str(self.affected_application_id),
            "affected_application_no": self.affected_application_no,
            "affected_coordinate_history_id": str(self.affected_coordinate_history_id),
            "overlap_percentage": self.overlap_percentage,
            "overlap_area_sq_meters": self.overlap_area_sq_meters,
        }


def _polygonal_parts(geometry: BaseGeometry) -> Iterator[ShapelyPolygon]:
    """Polygon pieces of an overlay result; lines and points are dropped."""
    if geometry.is_empty:
        return
    if isinstance(geometry, ShapelyPolygon):
        yield geometry
    elif hasattr(geometry, "geoms"):
        for part in geometry.geoms:
            yield from _polygonal_parts(part)


def geodesic_area(geometry: BaseGeometry) -> float:
    """Area in square meters on the WGS-84 ellipsoid."""
    total = 0.0
    for part in _polygonal_parts(geometry):
        area, _ = _GEOD.geometry_area_perimeter(part)
        total += abs(area)
    return total


def polygon_area_sq_meters(polygon: Polygon) -> float:
    return geodesic_area(to_shapely(polygon))


def _overlap_feature(parts: list[ShapelyPolygon]) -> dict[str, Any]:
    geometry = parts[0] if len(parts) == 1 else MultiPolygon(parts)
    return {"type": "Feature", "geometry": mapping(geometry), "properties": {}}


def detect_overlaps(
    candidate: Polygon,
    references: Iterable[ReferencePolygon],
) -> list[OverlapResult]:
    """
    Find every reference polygon the candidate overlaps.

    References whose bounding box does not touch the candidate's are
    skipped before any overlay is computed. Intersections with zero area
    (shared edges or corners) are not overlaps.

    Returns:
        One result per overlapping reference, highest percentage first
    """
    candidate_box = bounding_box(candidate)
    candidate_shape = to_shapely(candidate)
    candidate_area = geodesic_area(candidate_shape)
    if candidate_area <= 0:
        return []

    results = []
    for reference in references:
        if not candidate_box.intersects(reference.bounding_box):
            continue

        intersection = candidate_shape.intersection(to_shapely(reference.polygon))
        parts = list(_polygonal_parts(intersection))
        if not parts:
            continue

        area = sum(abs(_GEOD.geometry_area_perimeter(part)[0]) for part in parts)
        if area <= 0:
            continue

        percentage = min(area / candidate_area * 100, 100.0)
        results.append(
            OverlapResult(
                affected_application_id=reference.application_id,
                affected_application_no=reference.application_no,
                affected_coordinate_history_id=reference.history_id,
                overlap_percentage=round(percentage, 4),
                overlap_area_sq_meters=round(area, 2),
                overlap_geojson=_overlap_feature(parts),
            )
        )

    results.sort(key=lambda r: r.overlap_percentage, reverse=True)
    if results:
        logger.info(f"Detected {len(results)} overlap(s) for candidate polygon")
    return results
