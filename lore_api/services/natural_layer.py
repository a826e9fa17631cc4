"""
Natural features layer and name search.
"""

import logging
from contextlib import closing
from typing import Optional

from sqlalchemy.orm import Session

from lore_api.services.layers import LayerResponse, feature_collection, take_rows
from lore_api.services.params import (
    clamp_limit,
    from_feature_type,
    normalize_natural_type,
    resolve_lod,
    to_feature_type,
)
from lore_pipeline.config import NATURAL_LIMIT_DEFAULT, NATURAL_LIMIT_MAX, NATURAL_SEARCH_LIMIT
from lore_pipeline.repository import search_natural_features, select_natural_rows
from lore_pipeline.utils.geo import BBox

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


def natural_etag(public_type: str, lod: str, count: int) -> str:
    """Weak ETag from type, LOD and row count (not a content hash)."""
    return f'W/"nat-{public_type}-{lod}-{count}"'


def natural_feature(row, public_type: str) -> dict:
    """GeoJSON Feature for one natural feature row; source props are merged last."""
    properties = {"id": str(row.id), "name": row.name, "type": public_type}
    if row.props:
        properties.update(row.props)
    return {"type": "Feature", "properties": properties, "geometry": row.geojson}


def get_natural_layer(
    session: Session,
    feature_type: Optional[str],
    lod: Optional[str] = "med",
    limit: Optional[int] = None,
    bbox: Optional[BBox] = None,
) -> LayerResponse:
    """
    FeatureCollection of one natural feature type at one level of detail.

    Args:
        session: Database session
        feature_type: rivers, peaks or mountain-ranges (aliases: ranges,
            mountain_ranges); anything else resolves to rivers
        lod: low / med / high; anything else resolves to med
        limit: Maximum features (capped at 5000, default 2000)
        bbox: Optional (min_lng, min_lat, max_lng, max_lat) filter
    """
    public_type = normalize_natural_type(feature_type)
    lod_enum = resolve_lod(lod)
    limit = clamp_limit(limit, NATURAL_LIMIT_DEFAULT, NATURAL_LIMIT_MAX)

    stream = select_natural_rows(session, to_feature_type(public_type), lod_enum, limit=None if bbox else limit)
    with closing(stream) as rows:
        features = [
            natural_feature(row, public_type)
            for row in take_rows(rows, limit, bbox, lambda r: r.geojson)
        ]

    lod_name = lod_enum.value.lower()
    logger.debug(f"Natural layer {public_type}/{lod_name}: {len(features)} features")
    return LayerResponse(natural_etag(public_type, lod_name, len(features)), feature_collection(features))


def search_natural(session: Session, query: Optional[str], limit: int = NATURAL_SEARCH_LIMIT) -> list[dict]:
    """
    Case-insensitive substring search over natural feature names.

    Queries shorter than two characters (after trimming) return no results.
    """
    term = (query or "").strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return []

    return [
        {"id": str(row.id), "name": row.name or "", "type": from_feature_type(row.type)}
        for row in search_natural_features(session, term, limit)
    ]
