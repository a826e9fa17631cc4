"""Geographic utility functions for GeoJSON geometries."""

import math
from collections.abc import Iterator

from shapely.errors import ShapelyError
from shapely.geometry import box, shape

GEOMETRY_TYPES = frozenset({
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
})

BBox = tuple[float, float, float, float]  # min_lng, min_lat, max_lng, max_lat


def _is_position(value) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and all(
            isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
            for v in value[:2]
        )
    )


def _iter_positions(coords) -> Iterator[tuple[float, float]]:
    if _is_position(coords):
        yield float(coords[0]), float(coords[1])
        return
    if not isinstance(coords, (list, tuple)):
        raise ValueError(f"Unexpected coordinate value: {coords!r}")
    for item in coords:
        yield from _iter_positions(item)


def flatten_coordinates(geometry: dict) -> Iterator[tuple[float, float]]:
    """Yield every (lng, lat) position of a GeoJSON geometry.

    Works on any geometry kind, including GeometryCollection members.

    Raises:
        ValueError: If the coordinate arrays are not nested numeric positions
    """
    if geometry.get("type") == "GeometryCollection":
        for member in geometry.get("geometries") or []:
            yield from flatten_coordinates(member)
        return
    yield from _iter_positions(geometry.get("coordinates") or [])


def is_geojson_geometry(geometry) -> bool:
    """Check that a value is a structurally sound GeoJSON geometry object."""
    if not isinstance(geometry, dict) or geometry.get("type") not in GEOMETRY_TYPES:
        return False

    if geometry["type"] == "GeometryCollection":
        members = geometry.get("geometries")
        return isinstance(members, list) and all(is_geojson_geometry(m) for m in members)

    if "coordinates" not in geometry:
        return False
    try:
        for _ in flatten_coordinates(geometry):
            pass
    except (ValueError, RecursionError):
        return False
    return True


def compute_centroid(geometry: dict) -> tuple[float, float]:
    """Average of all positions in a geometry.

    This is a vertex mean, not an area-weighted centroid.

    Returns:
        Tuple of (longitude, latitude); (0.0, 0.0) for an empty geometry
    """
    count = 0
    sum_x = 0.0
    sum_y = 0.0
    for x, y in flatten_coordinates(geometry):
        sum_x += x
        sum_y += y
        count += 1
    if count == 0:
        return 0.0, 0.0
    return sum_x / count, sum_y / count


def round_coord(value: float, factor: int = 100) -> float:
    """Round half-up to 1/factor of a degree (factor=100 is ~1km at the equator)."""
    return math.floor(value * factor + 0.5) / factor


def format_coord(value: float) -> str:
    """Shortest text form of a rounded coordinate ("12", "12.5", "-3.25")."""
    if value == int(value):
        return str(int(value))
    return repr(value)


def coordinate_bounds(geometry: dict) -> BBox | None:
    """Envelope of a geometry as (min_lng, min_lat, max_lng, max_lat)."""
    xs = []
    ys = []
    for x, y in flatten_coordinates(geometry):
        xs.append(x)
        ys.append(y)
    if not xs:
        return None
    return min(xs), min(ys), max(xs), max(ys)


def intersects_bbox(geometry: dict, bbox: BBox) -> bool:
    """Check whether a GeoJSON geometry touches a bounding box.

    Envelopes are compared first; geometries whose envelope overlaps are then
    tested exactly with shapely. If shapely rejects the geometry (e.g. a ring
    with too few points) the envelope answer stands.
    """
    bounds = coordinate_bounds(geometry)
    if bounds is None:
        return False

    min_x, min_y, max_x, max_y = bbox
    if bounds[2] < min_x or bounds[0] > max_x or bounds[3] < min_y or bounds[1] > max_y:
        return False

    try:
        return box(min_x, min_y, max_x, max_y).intersects(shape(geometry))
    except (ShapelyError, ValueError, TypeError):
        return True
