"""
Historical boundaries layer.

Serves the areas of one snapshot year at one level of detail, each tagged
with its polity's canonical key, display name and color.
"""

import logging
from contextlib import closing
from typing import Optional

from sqlalchemy.orm import Session

from lore_api.services.layers import LayerResponse, feature_collection, take_rows
from lore_api.services.params import clamp_limit, resolve_lod
from lore_pipeline.config import HISTORY_LIMIT_DEFAULT, HISTORY_LIMIT_MAX
from lore_pipeline.database import Lod
from lore_pipeline.normalizers.color import color_from_key
from lore_pipeline.repository import select_history_rows
from lore_pipeline.utils.geo import BBox

logger = logging.getLogger(__name__)


def history_etag(year: int, lod: Lod, count: int) -> str:
    """Weak ETag from year, LOD and feature count (not a content hash)."""
    return f'W/"hist-{year}-{lod.value}-{count}"'


def history_feature(row) -> dict:
    """GeoJSON Feature for one area row."""
    if row.polity_key:
        canonical = row.polity_key
    elif row.canonical_name:
        canonical = row.canonical_name
    elif row.name:
        canonical = str(row.name).lower()
    else:
        canonical = "unknown"

    return {
        "type": "Feature",
        "properties": {
            "NAME": row.name,
            "CANONICAL": canonical,
            "SUBJECTO": row.polity_name or None,
            "COLOR": row.polity_color or color_from_key(canonical),
            "BORDERPRECISION": row.border_precision,
            "POLITY_ID": str(row.polity_id) if row.polity_id else None,
        },
        "geometry": row.geojson,
    }


def get_history_layer(
    session: Session,
    year: int,
    lod: Optional[str] = "med",
    limit: Optional[int] = None,
    bbox: Optional[BBox] = None,
) -> LayerResponse:
    """
    FeatureCollection of the areas observed in a year.

    Args:
        session: Database session
        year: Snapshot year (negative = BC)
        lod: low / med / high; anything else resolves to med
        limit: Maximum features (capped at 100000, default 50000)
        bbox: Optional (min_lng, min_lat, max_lng, max_lat) filter

    Returns:
        LayerResponse with a weak ETag and the FeatureCollection body
    """
    lod_enum = resolve_lod(lod)
    limit = clamp_limit(limit, HISTORY_LIMIT_DEFAULT, HISTORY_LIMIT_MAX)

    with closing(select_history_rows(session, year, lod_enum, limit=None if bbox else limit)) as rows:
        features = [history_feature(row) for row in take_rows(rows, limit, bbox, lambda r: r.geojson)]

    logger.debug(f"History layer {year}/{lod_enum.value}: {len(features)} features")
    return LayerResponse(history_etag(year, lod_enum, len(features)), feature_collection(features))
