"""
Base importer for GeoJSON sources.

Importers read FeatureCollections from disk and upsert them through the
repository. Subclasses implement import_file(); this module provides session
ownership, file reading, feature validation and the per-file report.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from sqlalchemy.exc import SQLAlchemyError

from lore_pipeline.database import SessionLocal
from lore_pipeline.exceptions import GeoJSONReadError
from lore_pipeline.utils.geo import is_geojson_geometry
from lore_pipeline.utils.logging import import_logger


def read_feature_collection(path: Path) -> list:
    """
    Load the features of a GeoJSON FeatureCollection file.

    Raises:
        GeoJSONReadError: If the file is unreadable, not JSON, or not a
            FeatureCollection
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise GeoJSONReadError(path, f"cannot read file ({e})") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise GeoJSONReadError(path, f"invalid JSON ({e})") from e

    if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
        raise GeoJSONReadError(path, "not a GeoJSON FeatureCollection")

    features = data.get("features")
    if not isinstance(features, list):
        raise GeoJSONReadError(path, "FeatureCollection has no features array")
    return features


def feature_problem(feature: Any) -> str | None:
    """Reason a feature cannot be imported, or None if it is usable."""
    if not isinstance(feature, dict) or feature.get("type") != "Feature":
        return "not a Feature"
    geometry = feature.get("geometry")
    if not geometry:
        return "missing geometry"
    if not is_geojson_geometry(geometry):
        return f"invalid geometry ({geometry.get('type') if isinstance(geometry, dict) else geometry!r})"
    props = feature.get("properties")
    if props is not None and not isinstance(props, dict):
        return "properties is not an object"
    return None


@dataclass
class ImportReport:
    """Result of importing one source file."""
    label: str
    source: Path
    imported: int = 0
    created: int = 0
    refreshed: int = 0
    geometries: int = 0
    skipped: int = 0
    warnings: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class BaseImporter(ABC):
    """
    Abstract base class for GeoJSON importers.

    Subclasses must implement:
    - import_file(): Import one FeatureCollection file
    - discover(): List the files of a source directory to import
    """

    def __init__(self, session=None, batch_size: int = 1000):
        """
        Initialize the importer.

        Args:
            session: SQLAlchemy session (optional, will create if not provided)
            batch_size: Pending upserts are flushed every batch_size features
        """
        self.session = session or SessionLocal()
        self._owns_session = session is None
        self.batch_size = batch_size

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session:
            self.session.close()

    @abstractmethod
    def import_file(self, path: Path, **kwargs) -> ImportReport:
        """Import one file and return its report."""

    @abstractmethod
    def discover(self, directory: Path, **filters) -> list[tuple[dict, Path]]:
        """
        List importable files of a directory in import order.

        Returns:
            (import_file keyword arguments, path) pairs
        """

    def iter_features(self, features: list, report: ImportReport) -> Iterator[dict]:
        """Yield usable features; malformed ones are logged and counted as skipped."""
        log = import_logger(report.label)
        for index, feature in enumerate(features):
            problem = feature_problem(feature)
            if problem:
                message = f"{report.source.name} feature {index}: {problem}"
                log.warning(f"Skipping {message}")
                report.skipped += 1
                report.warnings.append(message)
                continue

            yield feature

    def checkpoint(self, done: int, total: int, report: ImportReport) -> None:
        """Flush pending upserts every batch_size features."""
        if done % self.batch_size == 0:
            self.session.flush()
            import_logger(report.label).debug(f"Processed {done}/{total} features")

    def run_file(self, path: Path, **kwargs) -> ImportReport:
        """
        Import one file in its own transaction.

        The file's work is committed on success and rolled back on a storage
        fault, which is re-raised.
        """
        try:
            report = self.import_file(path, **kwargs)
            self.session.commit()
        except SQLAlchemyError as e:
            import_logger(Path(path).name).error(f"Import failed, rolled back: {e}")
            self.session.rollback()
            raise

        import_logger(report.label).info(
            f"Imported: {report.imported} imported, "
            f"{report.skipped} skipped, {report.duration_seconds or 0:.1f}s"
        )
        return report

    def import_directory(self, directory: Path, **filters) -> list[ImportReport]:
        """Import every file discover() finds, committing each file separately."""
        directory = Path(directory)
        if not directory.is_dir():
            raise GeoJSONReadError(directory, "source directory does not exist")

        reports = []
        for kwargs, path in self.discover(directory, **filters):
            reports.append(self.run_file(path, **kwargs))
        return reports
