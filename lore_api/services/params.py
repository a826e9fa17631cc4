"""
Query parameter parsing for the layer endpoints.

Required and numeric parameters are strict (InvalidQueryParameter, mapped to
400 by the routes). Type and level of detail are lenient: unknown values
fall back to a default instead of failing.
"""

import math
from typing import Optional

from lore_pipeline.database import Lod, NaturalFeatureType
from lore_pipeline.exceptions import InvalidQueryParameter
from lore_pipeline.utils.geo import BBox

NATURAL_TYPE_ALIASES = {
    "rivers": "rivers",
    "peaks": "peaks",
    "mountain-ranges": "mountain-ranges",
    "mountain_ranges": "mountain-ranges",
    "ranges": "mountain-ranges",
}

DEFAULT_NATURAL_TYPE = "rivers"

_PUBLIC_TO_DB = {
    "rivers": NaturalFeatureType.RIVER,
    "peaks": NaturalFeatureType.PEAK,
    "mountain-ranges": NaturalFeatureType.MOUNTAIN_RANGE,
}
_DB_TO_PUBLIC = {v: k for k, v in _PUBLIC_TO_DB.items()}


def _parse_number(name: str, value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidQueryParameter(name, f"{name} must be a number") from None
    if not math.isfinite(number):
        raise InvalidQueryParameter(name, f"{name} must be a finite number")
    return number


def parse_year(value: Optional[str]) -> int:
    """Required integer year; negative values are BC."""
    if value is None or not str(value).strip():
        raise InvalidQueryParameter("year", "year is required")
    number = _parse_number("year", str(value).strip())
    if not number.is_integer():
        raise InvalidQueryParameter("year", "year must be an integer")
    return int(number)


def parse_limit(value: Optional[str]) -> Optional[int]:
    """Optional row limit; None when absent. Capping is done by clamp_limit."""
    if value is None or not str(value).strip():
        return None
    return int(_parse_number("limit", str(value).strip()))


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    """Positive limits are capped at maximum; missing or non-positive ones use default."""
    if limit is None or limit <= 0:
        return default
    return min(limit, maximum)


def parse_bbox(value: Optional[str]) -> Optional[BBox]:
    """
    Optional "min_lng,min_lat,max_lng,max_lat" bounding box.

    Raises:
        InvalidQueryParameter: On a wrong number of values, non-numeric
            values, or inverted corners
    """
    if value is None or not value.strip():
        return None

    parts = value.split(",")
    if len(parts) != 4:
        raise InvalidQueryParameter("bbox", "bbox must be min_lng,min_lat,max_lng,max_lat")

    min_lng, min_lat, max_lng, max_lat = (_parse_number("bbox", p.strip()) for p in parts)
    if min_lng > max_lng or min_lat > max_lat:
        raise InvalidQueryParameter("bbox", "bbox minimum corner exceeds maximum corner")
    if not (-90 <= min_lat <= 90 and -90 <= max_lat <= 90):
        raise InvalidQueryParameter("bbox", "bbox latitude out of range")
    return min_lng, min_lat, max_lng, max_lat


def resolve_lod(value: Optional[str]) -> Lod:
    """low -> LOW, high -> HIGH, anything else (auto, med, unknown) -> MED."""
    lod = (value or "").lower()
    if lod == "low":
        return Lod.LOW
    if lod == "high":
        return Lod.HIGH
    return Lod.MED


def normalize_natural_type(value: Optional[str]) -> str:
    """Public natural type name; unknown values fall back to rivers."""
    return NATURAL_TYPE_ALIASES.get((value or "").lower(), DEFAULT_NATURAL_TYPE)


def to_feature_type(public_type: str) -> NaturalFeatureType:
    return _PUBLIC_TO_DB[public_type]


def from_feature_type(feature_type) -> str:
    """Public name for a stored feature type (enum or its string value)."""
    return _DB_TO_PUBLIC[NaturalFeatureType(feature_type)]
