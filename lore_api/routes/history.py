"""
Historical boundaries API routes.

Supports:
- Year snapshot layer at low/med/high level of detail
- Optional bounding box filter
- Weak ETag revalidation (If-None-Match -> 304)
- Listing of imported years
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lore_api.cache import cache_layer, get_cached_layer, layer_cache_key
from lore_api.routes.headers import LAYER_CACHE_CONTROL, etag_matches, layer_headers
from lore_api.services.history_layer import get_history_layer
from lore_api.services.params import parse_bbox, parse_limit, parse_year, resolve_lod
from lore_pipeline.database import get_db
from lore_pipeline.exceptions import InvalidQueryParameter
from lore_pipeline.repository import select_history_years

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def get_history(
    year: str | None = Query(None, description="Snapshot year, negative for BC"),
    lod: str | None = Query("auto", description="low, med, high (anything else = med)"),
    limit: str | None = Query(None, description="Max features (default 50000, capped at 100000)"),
    bbox: str | None = Query(None, description="min_lng,min_lat,max_lng,max_lat"),
    if_none_match: str | None = Header(None),
    db: Session = Depends(get_db),
):
    """
    Get the historical boundaries of one year as a FeatureCollection.

    Each feature carries NAME, CANONICAL, SUBJECTO, COLOR, BORDERPRECISION
    and POLITY_ID properties.
    """
    try:
        year_value = parse_year(year)
        limit_value = parse_limit(limit)
        bbox_value = parse_bbox(bbox)
    except InvalidQueryParameter as e:
        raise HTTPException(status_code=400, detail=str(e))

    cache_key = layer_cache_key("history", year_value, resolve_lod(lod).value, limit_value, bbox_value)
    layer = get_cached_layer(cache_key)

    if layer is None:
        try:
            layer = get_history_layer(db, year_value, lod=lod, limit=limit_value, bbox=bbox_value)
        except SQLAlchemyError as e:
            logger.error(f"History layer query failed for year {year_value}: {e}")
            raise HTTPException(status_code=501, detail=str(e) or "Failed to fetch history layer")
        cache_layer(cache_key, layer)

    etag, body = layer
    if etag_matches(if_none_match, etag):
        return Response(status_code=304, headers={"ETag": etag, "Cache-Control": LAYER_CACHE_CONTROL})

    return JSONResponse(content=body, headers=layer_headers(etag))


@router.get("/years")
async def get_history_years(db: Session = Depends(get_db)):
    """List imported snapshot years with their area counts."""
    try:
        years = select_history_years(db)
    except SQLAlchemyError as e:
        logger.error(f"History years query failed: {e}")
        raise HTTPException(status_code=501, detail=str(e) or "Failed to list history years")

    return {
        "count": len(years),
        "years": [{"year": year, "areas": areas} for year, areas in years],
    }
