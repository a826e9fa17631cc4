# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for WorldLore Geo tests."""

import json
import os
from pathlib import Path
from typing import Callable, Generator

import pytest

# Set test environment variables before importing the packages
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DISABLE_LOGGING", "1")


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def db_session() -> Generator:
    """Session on a fresh in-memory schema; tables are dropped afterwards."""
    from lore_pipeline.database import SessionLocal, create_all_tables, drop_all_tables

    create_all_tables()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_all_tables()


@pytest.fixture(autouse=True)
def clear_layer_cache():
    """Layer bodies must not leak between tests through the in-memory cache."""
    from lore_api.cache import clear_memory_cache

    clear_memory_cache()
    yield
    clear_memory_cache()


@pytest.fixture
def test_client(db_session) -> Generator:
    """Create a test client for the FastAPI application."""
    from fastapi.testclient import TestClient
    from lore_api.main import app

    with TestClient(app) as client:
        yield client


def make_feature(name=None, geometry=None, **props) -> dict:
    """GeoJSON Feature with NAME and extra properties."""
    properties = dict(props)
    if name is not None:
        properties["NAME"] = name
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": geometry or square(0.0, 0.0),
    }


def square(lng: float, lat: float, size: float = 1.0) -> dict:
    """Closed square polygon with its south-west corner at (lng, lat)."""
    return {
        "type": "Polygon",
        "coordinates": [[
            [lng, lat],
            [lng + size, lat],
            [lng + size, lat + size],
            [lng, lat + size],
            [lng, lat],
        ]],
    }


@pytest.fixture
def write_collection() -> Callable[[Path, list], Path]:
    """Write features to a FeatureCollection file, creating parent directories."""
    def _write(path: Path, features: list) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps({"type": "FeatureCollection", "features": features}),
            encoding="utf-8",
        )
        return path

    return _write


@pytest.fixture
def history_dir(tmp_path, write_collection) -> Path:
    """Historical snapshots for 1860 and 1900 plus an unrelated file."""
    directory = tmp_path / "historical"
    write_collection(directory / "world_1900.geojson", [
        make_feature("Angola", square(13.0, -12.0)),
        make_feature("Alaska", square(-150.0, 60.0)),
        make_feature("French Indochina", square(105.0, 15.0), BORDERPRECISION=2),
        make_feature("Portugal", square(-9.0, 38.0), SUBJECTO="Kingdom of Portugal", BORDERPRECISION=3),
    ])
    write_collection(directory / "world_1860.geojson", [
        make_feature("Alaska", square(-150.0, 60.0)),
    ])
    (directory / "readme.txt").write_text("not a snapshot", encoding="utf-8")
    return directory


@pytest.fixture
def natural_dir(tmp_path, write_collection) -> Path:
    """Natural Earth style tree with peaks at two LODs and one river."""
    directory = tmp_path / "natural"
    peaks = [
        {
            "type": "Feature",
            "properties": {"name": "Mont Blanc", "elevation": 4808},
            "geometry": {"type": "Point", "coordinates": [6.8652, 45.8326]},
        },
        {
            "type": "Feature",
            "properties": {"name_en": "Matterhorn", "elevation": 4478},
            "geometry": {"type": "Point", "coordinates": [7.6586, 45.9763]},
        },
    ]
    write_collection(directory / "peaks" / "low" / "world.geojson", peaks[:1])
    write_collection(directory / "peaks" / "med" / "world.geojson", peaks)
    write_collection(directory / "rivers" / "med" / "world.geojson", [
        {
            "type": "Feature",
            "properties": {"NAME": "Rhône"},
            "geometry": {"type": "LineString", "coordinates": [[8.0, 46.5], [4.8, 45.7], [4.6, 43.4]]},
        },
    ])
    return directory
