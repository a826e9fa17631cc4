"""Utility modules for the import pipeline."""

from lore_pipeline.utils.geo import (
    compute_centroid,
    flatten_coordinates,
    format_coord,
    intersects_bbox,
    is_geojson_geometry,
    round_coord,
)
from lore_pipeline.utils.logging import import_logger, setup_logging
from lore_pipeline.utils.text import display_name_for, normalize_label, slugify_name

__all__ = [
    # Logging
    "setup_logging",
    "import_logger",
    # Geographic utilities
    "flatten_coordinates",
    "compute_centroid",
    "round_coord",
    "format_coord",
    "is_geojson_geometry",
    "intersects_bbox",
    # Text utilities
    "normalize_label",
    "slugify_name",
    "display_name_for",
]
