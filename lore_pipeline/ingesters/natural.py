"""
Natural Earth physical features importer.

Source layout under the natural data directory:

    rivers/{low,med,high}/world.geojson
    mountain_ranges/{low,med,high}/world.geojson
    peaks/{low,med,high}/world.geojson

The same river appears once per LOD file. Features are keyed by a slug built
from type, name and rounded centroid, so the LOD variants collapse onto one
natural_features row with up to three geometries.
"""

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from lore_pipeline.database import Lod, NaturalFeatureType
from lore_pipeline.ingesters.base import BaseImporter, ImportReport, read_feature_collection
from lore_pipeline.repository import upsert_natural_feature, upsert_natural_geometry
from lore_pipeline.utils.geo import compute_centroid, format_coord, round_coord
from lore_pipeline.utils.text import slugify_name

# Source folder -> (feature type, label used in geometry provenance)
NATURAL_FOLDERS = {
    "rivers": (NaturalFeatureType.RIVER, "rivers"),
    "mountain_ranges": (NaturalFeatureType.MOUNTAIN_RANGE, "ranges"),
    "peaks": (NaturalFeatureType.PEAK, "peaks"),
}

LOD_FOLDERS = {
    "low": Lod.LOW,
    "med": Lod.MED,
    "high": Lod.HIGH,
}

COLLECTION_FILENAME = "world.geojson"


def feature_name(props: dict | None) -> Optional[str]:
    """First non-empty of name_en, name, NAME."""
    if not props:
        return None
    for key in ("name_en", "name", "NAME"):
        value = props.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return None


def build_slug(feature_type: NaturalFeatureType, name: str | None, geometry: dict) -> str:
    """
    Stable identity of a natural feature across LOD files.

    Format is "<type>:<name slug or unnamed>:<lat>_<lng>" with the vertex
    centroid rounded to 0.01 degree, e.g. "river:nile:21.35_31.07".
    """
    lng, lat = compute_centroid(geometry)
    name_part = slugify_name(name) or "unnamed"
    return (
        f"{feature_type.value.lower()}:{name_part}:"
        f"{format_coord(round_coord(lat))}_{format_coord(round_coord(lng))}"
    )


def source_label(folder: str, lod: str) -> str:
    """Provenance label stored with each imported geometry."""
    return f"natural-earth {NATURAL_FOLDERS[folder][1]} {lod}"


class NaturalImporter(BaseImporter):
    """Imports Natural Earth rivers, mountain ranges and peaks."""

    def import_file(self, path: Path, folder: str = "rivers", lod: str = "med") -> ImportReport:
        """
        Import one {folder}/{lod}/world.geojson collection.

        Args:
            path: Collection file
            folder: One of NATURAL_FOLDERS
            lod: One of LOD_FOLDERS
        """
        if folder not in NATURAL_FOLDERS:
            raise ValueError(f"Unknown natural folder: {folder}")
        if lod not in LOD_FOLDERS:
            raise ValueError(f"Unknown level of detail: {lod}")

        path = Path(path)
        feature_type = NATURAL_FOLDERS[folder][0]
        lod_enum = LOD_FOLDERS[lod]
        label = source_label(folder, lod)

        report = ImportReport(label=f"{folder}/{lod}", source=path, started_at=datetime.utcnow())
        features = read_feature_collection(path)

        pending = []
        for feature in self.iter_features(features, report):
            props = feature.get("properties")
            name = feature_name(props)
            pending.append((build_slug(feature_type, name, feature["geometry"]), name, props, feature["geometry"]))

        # Slug order, so concurrent imports lock feature rows in the same order
        pending.sort(key=lambda item: item[0])

        for done, (slug, name, props, geometry) in enumerate(pending, start=1):
            result = upsert_natural_feature(self.session, slug, feature_type, name, props)
            upsert_natural_geometry(self.session, result.feature_id, lod_enum, geometry, label)

            if result.created:
                report.created += 1
            else:
                report.refreshed += 1
            report.geometries += 1
            report.imported += 1
            self.checkpoint(done, len(pending), report)

        report.completed_at = datetime.utcnow()
        logger.info(
            f"{folder}/{lod}: features(created/refreshed)={report.created}/{report.refreshed}, "
            f"geometries upserted={report.geometries}"
        )
        return report

    def discover(
        self,
        directory: Path,
        folders: Iterable[str] | None = None,
        lods: Iterable[str] | None = None,
    ) -> list[tuple[dict, Path]]:
        """Existing collection files, by folder then low/med/high; missing files are logged."""
        folders = list(folders) if folders else list(NATURAL_FOLDERS)
        lods = list(lods) if lods else list(LOD_FOLDERS)

        found = []
        for folder in folders:
            if folder not in NATURAL_FOLDERS:
                raise ValueError(f"Unknown natural folder: {folder}")
            for lod in lods:
                if lod not in LOD_FOLDERS:
                    raise ValueError(f"Unknown level of detail: {lod}")
                path = Path(directory) / folder / lod / COLLECTION_FILENAME
                if not path.is_file():
                    logger.warning(f"Skip missing {path}")
                    continue
                found.append(({"folder": folder, "lod": lod}, path))
        return found
