"""Response headers shared by the layer routes."""

LAYER_CACHE_CONTROL = "public, max-age=86400, stale-while-revalidate=604800"
SOURCE_HEADER = "X-WorldLore-Source"


def layer_headers(etag: str) -> dict[str, str]:
    return {
        "Cache-Control": LAYER_CACHE_CONTROL,
        SOURCE_HEADER: "db",
        "ETag": etag,
    }


def _opaque_tag(tag: str) -> str:
    tag = tag.strip()
    return tag[2:] if tag.startswith("W/") else tag


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """
    Weak comparison of an If-None-Match header against the current ETag.

    The header may be "*" or a comma-separated list of entity tags.
    """
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    current = _opaque_tag(etag)
    return any(_opaque_tag(tag) == current for tag in if_none_match.split(","))
