"""
Natural features API routes.

Rivers, mountain ranges and peaks at low/med/high level of detail, plus a
name search across all types.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lore_api.cache import cache_layer, get_cached_layer, layer_cache_key
from lore_api.routes.headers import LAYER_CACHE_CONTROL, etag_matches, layer_headers
from lore_api.services.natural_layer import get_natural_layer, search_natural
from lore_api.services.params import normalize_natural_type, parse_bbox, parse_limit, resolve_lod
from lore_pipeline.database import get_db
from lore_pipeline.exceptions import InvalidQueryParameter

logger = logging.getLogger(__name__)
router = APIRouter()


# Declared before /{feature_type} so "search" is not taken as a type
@router.get("/search/q")
async def search(
    q: str = Query("", description="Name substring (at least 2 characters)"),
    db: Session = Depends(get_db),
):
    """Search natural features by name."""
    try:
        results = search_natural(db, q)
    except SQLAlchemyError as e:
        logger.error(f"Natural search failed for {q!r}: {e}")
        raise HTTPException(status_code=501, detail=str(e) or "Search not implemented")

    return {"q": q, "results": results}


@router.get("/{feature_type}")
async def get_natural(
    feature_type: str,
    lod: str | None = Query("auto", description="low, med, high (anything else = med)"),
    limit: str | None = Query(None, description="Max features (default 2000, capped at 5000)"),
    bbox: str | None = Query(None, description="min_lng,min_lat,max_lng,max_lat"),
    if_none_match: str | None = Header(None),
    db: Session = Depends(get_db),
):
    """
    Get one natural feature type as a FeatureCollection.

    Unknown types are served as rivers.
    """
    try:
        limit_value = parse_limit(limit)
        bbox_value = parse_bbox(bbox)
    except InvalidQueryParameter as e:
        raise HTTPException(status_code=400, detail=str(e))

    public_type = normalize_natural_type(feature_type)
    cache_key = layer_cache_key("natural", public_type, resolve_lod(lod).value, limit_value, bbox_value)
    layer = get_cached_layer(cache_key)

    if layer is None:
        try:
            layer = get_natural_layer(db, public_type, lod=lod, limit=limit_value, bbox=bbox_value)
        except SQLAlchemyError as e:
            logger.error(f"Natural layer query failed for {public_type}: {e}")
            raise HTTPException(status_code=501, detail=str(e) or "Failed to fetch natural layer")
        cache_layer(cache_key, layer)

    etag, body = layer
    if etag_matches(if_none_match, etag):
        return Response(status_code=304, headers={"ETag": etag, "Cache-Control": LAYER_CACHE_CONTROL})

    return JSONResponse(content=body, headers=layer_headers(etag))
