# SPDX-License-Identifier: MIT
"""Tests for GeoJSON geometry helpers."""

import pytest

from lore_pipeline.utils.geo import (
    compute_centroid,
    coordinate_bounds,
    flatten_coordinates,
    format_coord,
    intersects_bbox,
    is_geojson_geometry,
    round_coord,
)


class TestFlattenCoordinates:
    """Test flatten_coordinates."""

    def test_point(self):
        assert list(flatten_coordinates({"type": "Point", "coordinates": [1, 2]})) == [(1.0, 2.0)]

    def test_multipolygon(self):
        geometry = {
            "type": "MultiPolygon",
            "coordinates": [
                [[[0, 0], [1, 0], [1, 1], [0, 0]]],
                [[[5, 5], [6, 5], [6, 6], [5, 5]]],
            ],
        }
        assert len(list(flatten_coordinates(geometry))) == 8

    def test_geometry_collection(self):
        geometry = {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "Point", "coordinates": [1, 1]},
                {"type": "LineString", "coordinates": [[2, 2], [3, 3]]},
            ],
        }
        assert list(flatten_coordinates(geometry)) == [(1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]

    def test_ignores_altitude(self):
        assert list(flatten_coordinates({"type": "Point", "coordinates": [1, 2, 300]})) == [(1.0, 2.0)]

    def test_bad_coordinates(self):
        with pytest.raises(ValueError):
            list(flatten_coordinates({"type": "LineString", "coordinates": [[0, 0], "x"]}))


class TestIsGeoJSONGeometry:
    """Test is_geojson_geometry."""

    def test_valid_polygon(self):
        assert is_geojson_geometry({"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]})

    @pytest.mark.parametrize("geometry", [
        None,
        "Polygon",
        {"type": "Circle", "coordinates": [0, 0]},
        {"type": "Point"},
        {"type": "Point", "coordinates": ["a", "b"]},
        {"type": "Point", "coordinates": [float("nan"), 1.0]},
        {"type": "LineString", "coordinates": [[0, 0], [float("inf"), 1.0]]},
        {"type": "GeometryCollection", "geometries": [{"type": "Nope"}]},
    ])
    def test_invalid(self, geometry):
        assert not is_geojson_geometry(geometry)


class TestCentroidAndRounding:
    """Test compute_centroid, round_coord and format_coord."""

    def test_vertex_mean(self):
        geometry = {"type": "LineString", "coordinates": [[0, 0], [2, 4]]}
        assert compute_centroid(geometry) == (1.0, 2.0)

    def test_empty_geometry(self):
        assert compute_centroid({"type": "MultiPoint", "coordinates": []}) == (0.0, 0.0)

    @pytest.mark.parametrize("value,expected", [
        (45.8326, 45.83),
        (6.8652, 6.87),
        (-1.236, -1.24),
        (12.0, 12.0),
    ])
    def test_round_coord(self, value, expected):
        assert round_coord(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value,expected", [
        (12.0, "12"),
        (12.5, "12.5"),
        (-3.25, "-3.25"),
        (0.0, "0"),
    ])
    def test_format_coord(self, value, expected):
        assert format_coord(value) == expected


class TestBoundingBox:
    """Test coordinate_bounds and intersects_bbox."""

    def test_bounds(self):
        geometry = {"type": "LineString", "coordinates": [[-5, 2], [3, -1]]}
        assert coordinate_bounds(geometry) == (-5.0, -1.0, 3.0, 2.0)

    def test_envelope_outside(self):
        geometry = {"type": "Point", "coordinates": [50, 50]}
        assert not intersects_bbox(geometry, (0, 0, 10, 10))

    def test_point_inside(self):
        geometry = {"type": "Point", "coordinates": [5, 5]}
        assert intersects_bbox(geometry, (0, 0, 10, 10))

    def test_envelope_overlaps_but_shape_does_not(self):
        # Diagonal line whose envelope covers the box corner but passes beside it
        geometry = {"type": "LineString", "coordinates": [[0, 20], [20, 0]]}
        assert not intersects_bbox(geometry, (0, 0, 5, 5))

    def test_empty_geometry(self):
        assert not intersects_bbox({"type": "MultiPoint", "coordinates": []}, (0, 0, 1, 1))
