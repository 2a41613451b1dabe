"""
Geospatial helpers for bounding-box queries.

Covers:
- Bounding box extraction from GeoJSON Polygon/MultiPolygon geometry
  (e.g. a country outline) with a 1 degree margin
- Point-in-box tests and point-to-box distance
- Great-circle distance and initial bearing

Points are (latitude, longitude) tuples in decimal degrees. GeoJSON
coordinates are [longitude, latitude] pairs, as the format defines them.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Mapping, Sequence, Tuple, TypeVar
from urllib.parse import urlencode

import numpy as np

from airglobe.exceptions import GeometryError

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0

# Margin added around a geometry's extent so aircraft just outside a
# border are still returned
BBOX_MARGIN_DEGREES = 1.0

Point = Tuple[float, float]
T = TypeVar('T')


@dataclass(frozen=True)
class BoundingBox:
    """
    Geographic bounding box for API queries.

    OpenSky expects: lamin, lamax, lomin, lomax
    (latitude min, latitude max, longitude min, longitude max)
    """
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def __post_init__(self):
        if not (-90 <= self.lat_min <= self.lat_max <= 90):
            raise GeometryError(
                f'Invalid latitude bounds: {self.lat_min}..{self.lat_max}'
            )
        if not (-180 <= self.lon_min <= self.lon_max <= 180):
            raise GeometryError(
                f'Invalid longitude bounds: {self.lon_min}..{self.lon_max}'
            )

    def to_params(self) -> dict:
        """Convert to OpenSky API query parameters."""
        return {
            'lamin': self.lat_min,
            'lamax': self.lat_max,
            'lomin': self.lon_min,
            'lomax': self.lon_max,
        }


def format_coordinate(value: float) -> str:
    """Render a coordinate without a trailing '.0' (50.0 -> '50')."""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _iter_coordinates(geometry: Mapping[str, Any]) -> Iterator[Sequence[float]]:
    """Flatten every ring of every polygon into [lon, lat] pairs."""
    geom_type = geometry.get('type')
    coordinates = geometry.get('coordinates') or []

    if geom_type == 'Polygon':
        polygons = [coordinates]
    elif geom_type == 'MultiPolygon':
        polygons = coordinates
    else:
        logger.debug(f'Unsupported geometry type: {geom_type}')
        return

    for polygon in polygons:
        for ring in polygon:
            yield from ring


def bounding_box_of(geometry: Mapping[str, Any]) -> BoundingBox:
    """
    Calculate the bounding box of a Polygon or MultiPolygon geometry.

    The extent is padded by BBOX_MARGIN_DEGREES on every side and then
    clamped to the valid latitude/longitude ranges.

    Raises:
        GeometryError if the geometry holds no coordinates
    """
    coords = [pair[:2] for pair in _iter_coordinates(geometry)]
    if not coords:
        raise GeometryError('No coordinates found in geometry')

    arr = np.asarray(coords, dtype=float)
    lon_min, lat_min = arr.min(axis=0)
    lon_max, lat_max = arr.max(axis=0)

    return BoundingBox(
        lat_min=max(-90.0, float(lat_min) - BBOX_MARGIN_DEGREES),
        lat_max=min(90.0, float(lat_max) + BBOX_MARGIN_DEGREES),
        lon_min=max(-180.0, float(lon_min) - BBOX_MARGIN_DEGREES),
        lon_max=min(180.0, float(lon_max) + BBOX_MARGIN_DEGREES),
    )


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points in kilometers.

    Uses the Haversine formula for accuracy over short to medium distances.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_km(p1: Point, p2: Point) -> float:
    """Great-circle distance between two (lat, lon) points."""
    return haversine_distance(p1[0], p1[1], p2[0], p2[1])


def bearing(p1: Point, p2: Point) -> float:
    """Initial bearing from p1 to p2 in degrees, 0 = north, range [0, 360)."""
    lat1 = math.radians(p1[0])
    lat2 = math.radians(p2[0])
    delta_lon = math.radians(p2[1] - p1[1])

    y = math.sin(delta_lon) * math.cos(lat2)
    x = (
        math.cos(lat1) * math.sin(lat2) -
        math.sin(lat1) * math.cos(lat2) * math.cos(delta_lon)
    )

    theta = math.degrees(math.atan2(y, x))
    return (theta + 360) % 360


def is_inside(point: Point, box: BoundingBox) -> bool:
    """Check if a point lies within the box (edges inclusive)."""
    lat, lon = point
    return (
        box.lat_min <= lat <= box.lat_max and
        box.lon_min <= lon <= box.lon_max
    )


def distance_to_box(point: Point, box: BoundingBox) -> float:
    """
    Distance in km from a point to the nearest edge of the box.

    Returns 0 for points inside. Otherwise clamps the point onto the box
    per axis and measures the Haversine distance to that clamped point.
    """
    if is_inside(point, box):
        return 0.0

    lat, lon = point
    nearest_lat = min(max(lat, box.lat_min), box.lat_max)
    nearest_lon = min(max(lon, box.lon_min), box.lon_max)

    return haversine_distance(lat, lon, nearest_lat, nearest_lon)


def filter_in_box(records: Iterable[T], box: BoundingBox) -> List[T]:
    """
    Keep records with a position inside the box.

    Records only need latitude/longitude attributes; ones without a
    position are dropped.
    """
    return [
        r for r in records
        if r.latitude is not None and r.longitude is not None
        and is_inside((r.latitude, r.longitude), box)
    ]


def build_aircraft_query(box: BoundingBox, path: str = '/api/aircraft') -> str:
    """Build the relative aircraft endpoint URL for a bounding box."""
    params = urlencode({
        name: format_coordinate(value)
        for name, value in box.to_params().items()
    })
    return f'{path}?{params}'
