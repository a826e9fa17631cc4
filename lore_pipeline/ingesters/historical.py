"""
Historical boundaries importer.

Reads year-stamped snapshots from the historical-basemaps project
(world_1900.geojson, world_bc500.geojson, ...) and resolves every polygon to
a canonical polity:

    NAME / SUBJECTO -> derive subject -> canonicalize -> temporal override

Each area is stored once per (year, source_key) with its geometry at MED
level of detail.
"""

import re
import uuid
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from loguru import logger

from lore_pipeline.database import Lod
from lore_pipeline.ingesters.base import BaseImporter, ImportReport, read_feature_collection
from lore_pipeline.normalizers import (
    OverrideEngine,
    PolityCanonicalizer,
    PolityFields,
    build_canonicalizer,
    build_override_engine,
    color_from_key,
)
from lore_pipeline.repository import upsert_area, upsert_area_geometry, upsert_polity
from lore_pipeline.utils.text import display_name_for, normalize_label

YEAR_FILE_PATTERN = re.compile(r"^world_(bc)?(\d+)\.geojson$", re.IGNORECASE)

HISTORICAL_LOD = Lod.MED


def parse_year_file(filename: str) -> Optional[int]:
    """Year of a snapshot file name; BC years are negative. None if not a snapshot."""
    match = YEAR_FILE_PATTERN.match(filename)
    if not match:
        return None
    year = int(match.group(2))
    return -year if match.group(1) else year


def source_label(year: int) -> str:
    """Provenance label stored with each imported geometry."""
    return f"historical-basemaps world_{year}.geojson"


def parse_border_precision(value: Any) -> Optional[int]:
    """BORDERPRECISION as an int; missing, zero or non-numeric values become None."""
    if not value or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class HistoricalImporter(BaseImporter):
    """Imports historical-basemaps year snapshots."""

    def __init__(
        self,
        session=None,
        batch_size: int = 1000,
        canonicalizer: PolityCanonicalizer | None = None,
        overrides: OverrideEngine | None = None,
    ):
        super().__init__(session=session, batch_size=batch_size)
        self.canonicalizer = canonicalizer or build_canonicalizer()
        self.overrides = overrides or build_override_engine(self.canonicalizer)

    def resolve_polity_key(self, raw_name: str, subject_raw: str, year: int) -> str:
        """
        Canonical polity key for one feature.

        Args:
            raw_name: NAME property
            subject_raw: SUBJECTO property, possibly blank
            year: Snapshot year

        Returns:
            Canonical key after alias/heuristic resolution and overrides
        """
        if subject_raw.strip():
            working = subject_raw
        else:
            working = self.canonicalizer.derive_subject(raw_name) or raw_name

        subject = self.canonicalizer.canonicalize(working)
        return self.overrides.resolve_subject(raw_name, year, subject)

    def import_file(self, path: Path, year: int | None = None) -> ImportReport:
        """Import one world_<year>.geojson snapshot."""
        path = Path(path)
        if year is None:
            year = parse_year_file(path.name)
            if year is None:
                raise ValueError(f"Cannot infer year from file name: {path.name}")

        report = ImportReport(label=f"year {year}", source=path, started_at=datetime.utcnow())
        features = read_feature_collection(path)
        label = source_label(year)

        # Every key is resolved before any row is written
        pending = []
        for feature in self.iter_features(features, report):
            props = feature.get("properties") or {}

            raw_name = props.get("NAME")
            if raw_name is None:
                raw_name = props.get("name")
            raw_name = "Unknown" if raw_name is None else str(raw_name)

            subject_raw = props.get("SUBJECTO")
            subject_raw = "" if subject_raw is None else str(subject_raw)

            key = self.resolve_polity_key(raw_name, subject_raw, year)
            pending.append((feature, props, raw_name, key))

        polity_ids = self.upsert_polities({key for *_, key in pending}, year)

        occurrences = Counter()
        for done, (feature, props, raw_name, key) in enumerate(pending, start=1):
            canonical_name = normalize_label(raw_name)
            source_key = f"{canonical_name}#{occurrences[canonical_name]}"
            occurrences[canonical_name] += 1

            area_id = upsert_area(
                self.session,
                year=year,
                source_key=source_key,
                name=raw_name,
                canonical_name=canonical_name,
                border_precision=parse_border_precision(props.get("BORDERPRECISION")),
                props=dict(props),
                polity_id=polity_ids[key],
            )
            upsert_area_geometry(self.session, area_id, HISTORICAL_LOD, feature["geometry"], label)

            report.imported += 1
            report.geometries += 1
            self.checkpoint(done, len(pending), report)

        report.completed_at = datetime.utcnow()
        logger.debug(f"Year {year}: {len(polity_ids)} polities referenced")
        return report

    def upsert_polities(self, keys: Iterable[str], year: int) -> dict[str, uuid.UUID]:
        """
        Create-or-merge the polities referenced by one snapshot year.

        Keys are upserted in ascending order, so concurrent imports of other
        years always take the polity row locks in the same order.

        Returns:
            Polity id per canonical key
        """
        polity_ids = {}
        for key in sorted(keys):
            polity_ids[key] = upsert_polity(
                self.session,
                key,
                PolityFields(
                    display_name=display_name_for(key),
                    color_hex=color_from_key(key),
                    valid_from_year=year,
                    valid_to_year=year,
                ),
            )
        return polity_ids

    def discover(self, directory: Path, years: Iterable[int] | None = None) -> list[tuple[dict, Path]]:
        """Snapshot files of a directory, oldest year first; other files are ignored."""
        wanted = set(years) if years else None

        found = []
        for path in Path(directory).iterdir():
            if not path.is_file():
                continue
            year = parse_year_file(path.name)
            if year is None:
                continue
            if wanted is not None and year not in wanted:
                continue
            found.append((year, path))

        found.sort(key=lambda item: item[0])
        if not found:
            logger.warning(f"No world_<year>.geojson files found in {directory}")
        return [({"year": year}, path) for year, path in found]
