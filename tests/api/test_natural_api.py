# SPDX-License-Identifier: MIT
"""Tests for the natural features layer, search and endpoints."""

import pytest
from sqlalchemy.exc import OperationalError

from lore_api.services import get_natural_layer, search_natural
from lore_pipeline.ingesters import NaturalImporter


@pytest.fixture
def seeded(db_session, natural_dir):
    NaturalImporter(session=db_session).import_directory(natural_dir)
    return db_session


def _names(body):
    return [f["properties"]["name"] for f in body["features"]]


class TestNaturalLayerService:
    """Test get_natural_layer."""

    def test_peaks_med(self, seeded):
        etag, body = get_natural_layer(seeded, "peaks", lod="med")

        assert sorted(_names(body)) == ["Matterhorn", "Mont Blanc"]
        assert etag == 'W/"nat-peaks-med-2"'

    def test_properties(self, seeded):
        _, body = get_natural_layer(seeded, "peaks", lod="low")

        feature = body["features"][0]
        assert feature["properties"]["id"]
        assert feature["properties"]["type"] == "peaks"
        assert feature["properties"]["elevation"] == 4808
        assert feature["geometry"] == {"type": "Point", "coordinates": [6.8652, 45.8326]}

    def test_lod_changes_etag(self, seeded):
        low_etag, low = get_natural_layer(seeded, "peaks", lod="low")
        med_etag, _ = get_natural_layer(seeded, "peaks", lod="med")

        assert _names(low) == ["Mont Blanc"]
        assert low_etag != med_etag

    def test_same_peak_shared_across_lods(self, seeded):
        _, low = get_natural_layer(seeded, "peaks", lod="low")
        _, med = get_natural_layer(seeded, "peaks", lod="med")

        low_ids = {f["properties"]["id"] for f in low["features"]}
        med_ids = {f["properties"]["id"] for f in med["features"]}
        assert low_ids < med_ids

    @pytest.mark.parametrize("alias", ["rivers", "RIVERS", "volcanoes", None])
    def test_unknown_type_is_rivers(self, seeded, alias):
        etag, body = get_natural_layer(seeded, alias, lod="med")
        assert _names(body) == ["Rhône"]
        assert etag == 'W/"nat-rivers-med-1"'

    @pytest.mark.parametrize("alias", ["ranges", "mountain_ranges", "mountain-ranges"])
    def test_range_aliases(self, seeded, alias):
        etag, body = get_natural_layer(seeded, alias, lod="med")
        assert body["features"] == []
        assert etag == 'W/"nat-mountain-ranges-med-0"'

    def test_limit(self, seeded):
        _, body = get_natural_layer(seeded, "peaks", lod="med", limit=1)
        assert len(body["features"]) == 1

    def test_bbox(self, seeded):
        _, body = get_natural_layer(seeded, "peaks", lod="med", bbox=(6.0, 45.0, 7.0, 46.0))
        assert _names(body) == ["Mont Blanc"]


class TestSearchNatural:
    """Test search_natural."""

    def test_finds_substring(self, seeded):
        results = search_natural(seeded, "mont")
        assert [r["name"] for r in results] == ["Mont Blanc"]
        assert results[0]["type"] == "peaks"

    def test_case_insensitive(self, seeded):
        assert [r["name"] for r in search_natural(seeded, "MATTER")] == ["Matterhorn"]

    @pytest.mark.parametrize("query", [None, "", "m", "  m  "])
    def test_short_query_is_empty(self, seeded, query):
        assert search_natural(seeded, query) == []

    def test_wildcards_are_literal(self, seeded):
        assert search_natural(seeded, "%%") == []
        assert search_natural(seeded, "__") == []

    def test_limit(self, seeded):
        assert len(search_natural(seeded, "on", limit=1)) == 1


class TestNaturalEndpoint:
    """Test GET /api/natural/{type}."""

    def test_layer(self, test_client, seeded):
        response = test_client.get("/api/natural/peaks", params={"lod": "low", "limit": 1})

        assert response.status_code == 200
        assert len(response.json()["features"]) <= 1
        assert response.headers["etag"] == 'W/"nat-peaks-low-1"'
        assert response.headers["x-worldlore-source"] == "db"
        assert "max-age=86400" in response.headers["cache-control"]

    def test_etag_differs_by_lod(self, test_client, seeded):
        low = test_client.get("/api/natural/peaks", params={"lod": "low"})
        med = test_client.get("/api/natural/peaks", params={"lod": "med"})
        assert low.headers["etag"] != med.headers["etag"]

    def test_if_none_match(self, test_client, seeded):
        etag = test_client.get("/api/natural/rivers").headers["etag"]

        response = test_client.get("/api/natural/rivers", headers={"If-None-Match": etag})
        assert response.status_code == 304

    def test_if_none_match_list(self, test_client, seeded):
        etag = test_client.get("/api/natural/rivers").headers["etag"]

        response = test_client.get("/api/natural/rivers", headers={"If-None-Match": f'W/"stale", {etag}'})
        assert response.status_code == 304

    def test_unknown_type(self, test_client, seeded):
        response = test_client.get("/api/natural/glaciers")
        assert response.status_code == 200
        assert response.headers["etag"] == 'W/"nat-rivers-med-1"'

    @pytest.mark.parametrize("params", [{"limit": "many"}, {"bbox": "a,b,c,d"}, {"bbox": "0,95,1,96"}])
    def test_bad_parameters(self, test_client, params):
        response = test_client.get("/api/natural/peaks", params=params)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_storage_fault(self, test_client, mocker):
        mocker.patch(
            "lore_api.routes.natural.get_natural_layer",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        )
        response = test_client.get("/api/natural/peaks")
        assert response.status_code == 501
        assert "error" in response.json()


class TestNaturalSearchEndpoint:
    """Test GET /api/natural/search/q."""

    def test_search(self, test_client, seeded):
        response = test_client.get("/api/natural/search/q", params={"q": "mont"})

        assert response.status_code == 200
        data = response.json()
        assert data["q"] == "mont"
        assert [r["name"] for r in data["results"]] == ["Mont Blanc"]

    def test_short_query(self, test_client, seeded):
        response = test_client.get("/api/natural/search/q", params={"q": "m"})
        assert response.json()["results"] == []

    def test_missing_query(self, test_client, seeded):
        response = test_client.get("/api/natural/search/q")
        assert response.status_code == 200
        assert response.json()["results"] == []

    def test_storage_fault(self, test_client, mocker):
        mocker.patch(
            "lore_api.routes.natural.search_natural",
            side_effect=OperationalError("SELECT", {}, Exception("no such table")),
        )
        response = test_client.get("/api/natural/search/q", params={"q": "mont"})
        assert response.status_code == 501
