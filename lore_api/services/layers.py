"""
Layer response primitives shared by the historical and natural services.
"""

from itertools import islice
from typing import Any, Callable, Iterable, Iterator, NamedTuple, Optional

from lore_pipeline.utils.geo import BBox, intersects_bbox


class LayerResponse(NamedTuple):
    """A FeatureCollection body and its weak ETag."""
    etag: str
    body: dict


def feature_collection(features: list[dict]) -> dict:
    return {"type": "FeatureCollection", "features": features}


def take_rows(rows: Iterable, limit: int, bbox: Optional[BBox], geometry: Callable[[Any], dict]) -> Iterator:
    """
    Apply the bounding box filter, then the limit, to a row stream.

    Without a bbox the limit was already applied by the query and rows pass
    through unchanged.
    """
    if bbox is not None:
        rows = (row for row in rows if intersects_bbox(geometry(row), bbox))
    return islice(rows, limit)
