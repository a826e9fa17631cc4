"""
Response cache for rendered layers.

A layer body is stored together with its ETag under a key built from the
resolved query (layer kind, year or type, LOD, limit, bbox). Redis is used
when enabled and reachable; otherwise a small LRU in process memory.
"""

import fnmatch
import json
import logging
import time
from collections import OrderedDict
from typing import Optional

import redis

from lore_api.services.layers import LayerResponse
from lore_pipeline.config import settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None
_redis_checked = False

# key -> (expires_at, LayerResponse), least recently used first
_memory_cache: "OrderedDict[str, tuple[float, LayerResponse]]" = OrderedDict()
MEMORY_CACHE_MAX_ENTRIES = 50


def layer_cache_key(layer: str, *parts) -> str:
    """history:1900:MED:None:None style key; None parts are kept so defaults stay distinct."""
    return ":".join([layer, *(str(p) for p in parts)])


def get_redis_client() -> Optional[redis.Redis]:
    """Connect once; None when Redis is disabled or unreachable."""
    global _redis_client, _redis_checked

    if _redis_checked:
        return _redis_client
    _redis_checked = True

    if not settings.redis.enabled:
        logger.info("Redis disabled, layer cache is in memory")
        return None

    try:
        client = redis.from_url(settings.redis.url, decode_responses=True, socket_connect_timeout=2)
        client.ping()
        _redis_client = client
        logger.info(f"Layer cache using Redis at {settings.redis.url}")
    except redis.RedisError as e:
        logger.warning(f"Redis unavailable at {settings.redis.url}, layer cache is in memory: {e}")
        _redis_client = None

    return _redis_client


def get_cached_layer(key: str) -> Optional[LayerResponse]:
    client = get_redis_client()
    if client:
        try:
            raw = client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Layer cache read failed for {key}: {e}")
        else:
            if raw:
                entry = json.loads(raw)
                return LayerResponse(entry["etag"], entry["body"])
            return None

    entry = _memory_cache.get(key)
    if entry is None:
        return None
    expires_at, response = entry
    if expires_at <= time.monotonic():
        del _memory_cache[key]
        return None
    _memory_cache.move_to_end(key)
    return response


def cache_layer(key: str, response: LayerResponse, ttl: Optional[int] = None) -> None:
    """Store a rendered layer for ttl seconds (default API_LAYER_CACHE_TTL)."""
    ttl = ttl or settings.api.layer_cache_ttl

    client = get_redis_client()
    if client:
        try:
            client.setex(key, ttl, json.dumps({"etag": response.etag, "body": response.body}))
            return
        except redis.RedisError as e:
            logger.warning(f"Layer cache write failed for {key}: {e}")

    _memory_cache[key] = (time.monotonic() + ttl, response)
    _memory_cache.move_to_end(key)
    while len(_memory_cache) > MEMORY_CACHE_MAX_ENTRIES:
        _memory_cache.popitem(last=False)


def invalidate_layers(layer: str) -> int:
    """Drop every cached response of one layer kind ("history" or "natural")."""
    pattern = layer_cache_key(layer, "*")
    count = 0

    client = get_redis_client()
    if client:
        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                count += client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Layer cache invalidation failed for {pattern}: {e}")

    for key in [k for k in _memory_cache if fnmatch.fnmatch(k, pattern)]:
        del _memory_cache[key]
        count += 1

    return count


def clear_memory_cache() -> None:
    _memory_cache.clear()
