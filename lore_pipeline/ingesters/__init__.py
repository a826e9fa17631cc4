"""
GeoJSON importers.

Each importer reads one kind of source collection and upserts it through
lore_pipeline.repository, committing once per file.
"""

from lore_pipeline.ingesters.base import BaseImporter, ImportReport, read_feature_collection
from lore_pipeline.ingesters.historical import HistoricalImporter, parse_year_file
from lore_pipeline.ingesters.natural import NATURAL_FOLDERS, NaturalImporter, build_slug

__all__ = [
    "BaseImporter",
    "ImportReport",
    "read_feature_collection",
    "HistoricalImporter",
    "parse_year_file",
    "NaturalImporter",
    "NATURAL_FOLDERS",
    "build_slug",
]
