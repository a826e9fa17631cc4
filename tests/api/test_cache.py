# SPDX-License-Identifier: MIT
"""Tests for the layer response cache (in-memory backend)."""

from lore_api import cache
from lore_api.cache import (
    cache_layer,
    get_cached_layer,
    invalidate_layers,
    layer_cache_key,
)
from lore_api.services.layers import LayerResponse, feature_collection


def _layer(tag: str) -> LayerResponse:
    return LayerResponse(f'W/"{tag}"', feature_collection([]))


class TestLayerCacheKey:
    def test_parts_joined(self):
        assert layer_cache_key("history", 1900, "MED", None, None) == "history:1900:MED:None:None"

    def test_bbox_distinguishes_keys(self):
        assert layer_cache_key("natural", "peaks", "LOW", 10, (0.0, 0.0, 1.0, 1.0)) != \
            layer_cache_key("natural", "peaks", "LOW", 10, None)


class TestMemoryCache:
    """Redis is disabled in tests, so the in-memory LRU is exercised."""

    def test_roundtrip(self):
        cache_layer("history:1900:MED:None:None", _layer("a"))
        assert get_cached_layer("history:1900:MED:None:None") == _layer("a")

    def test_miss(self):
        assert get_cached_layer("history:1:MED:None:None") is None

    def test_expiry(self, mocker):
        clock = mocker.patch("lore_api.cache.time.monotonic", return_value=1000.0)
        cache_layer("natural:peaks:LOW:None:None", _layer("b"), ttl=60)

        clock.return_value = 1059.0
        assert get_cached_layer("natural:peaks:LOW:None:None") is not None
        clock.return_value = 1061.0
        assert get_cached_layer("natural:peaks:LOW:None:None") is None

    def test_least_recently_used_evicted(self, monkeypatch):
        monkeypatch.setattr(cache, "MEMORY_CACHE_MAX_ENTRIES", 2)
        cache_layer("history:1:MED:None:None", _layer("1"))
        cache_layer("history:2:MED:None:None", _layer("2"))
        get_cached_layer("history:1:MED:None:None")
        cache_layer("history:3:MED:None:None", _layer("3"))

        assert get_cached_layer("history:1:MED:None:None") is not None
        assert get_cached_layer("history:2:MED:None:None") is None
        assert get_cached_layer("history:3:MED:None:None") is not None

    def test_invalidate_one_layer_kind(self):
        cache_layer("history:1900:MED:None:None", _layer("h"))
        cache_layer("natural:rivers:MED:None:None", _layer("n"))

        assert invalidate_layers("history") == 1
        assert get_cached_layer("history:1900:MED:None:None") is None
        assert get_cached_layer("natural:rivers:MED:None:None") is not None


class TestRouteCaching:
    """Endpoints serve repeated queries from the cache."""

    def test_second_request_skips_query(self, test_client, mocker):
        service = mocker.patch(
            "lore_api.routes.history.get_history_layer",
            return_value=LayerResponse('W/"hist-1900-MED-0"', feature_collection([])),
        )

        first = test_client.get("/api/history", params={"year": 1900})
        second = test_client.get("/api/history", params={"year": 1900, "lod": "med"})

        assert first.status_code == second.status_code == 200
        assert second.headers["etag"] == 'W/"hist-1900-MED-0"'
        service.assert_called_once()

    def test_other_year_is_queried(self, test_client, mocker):
        service = mocker.patch(
            "lore_api.routes.history.get_history_layer",
            return_value=LayerResponse('W/"hist-0-MED-0"', feature_collection([])),
        )

        test_client.get("/api/history", params={"year": 1900})
        test_client.get("/api/history", params={"year": 1901})

        assert service.call_count == 2
