"""
Polity canonicalization.

Historical basemaps label the same sovereign dozens of ways ("British Empire",
"Great Britain", "British Raj", ...). Each raw label is reduced to a canonical
polity key, which is the merge key for the historical_polities table.
"""

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from lore_pipeline.utils.text import normalize_label


# Normalized historical/alternate names -> canonical key
DEFAULT_ALIASES = {
    # Core European sovereigns + empires
    "united kingdom of great britain and ireland": "united kingdom",
    "united kingdom": "united kingdom",
    "great britain": "united kingdom",
    "britain": "united kingdom",
    "england": "united kingdom",
    "british empire": "united kingdom",

    "french republic": "france",
    "kingdom of france": "france",
    "france": "france",

    "spain": "spain",
    "kingdom of spain": "spain",

    "portugal": "portugal",
    "kingdom of portugal": "portugal",

    "netherlands": "netherlands",
    "kingdom of the netherlands": "netherlands",
    "holland": "netherlands",
    "dutch east indies": "netherlands",
    "netherlands indies": "netherlands",

    "belgium": "belgium",
    "kingdom of belgium": "belgium",
    "belgian congo": "belgium",
    "congo free state": "belgium",

    "germany": "germany",
    "german empire": "germany",
    "prussia": "germany",

    "austria": "austria",
    "austrian empire": "austria",
    "austria hungary": "austria",

    "italy": "italy",
    "kingdom of italy": "italy",

    "russia": "russia",
    "russian empire": "russia",
    "soviet union": "russia",

    "sweden": "sweden",
    "kingdom of sweden": "sweden",

    "denmark": "denmark",
    "kingdom of denmark": "denmark",

    "ottoman empire": "ottoman empire",
    "turkey": "turkey",

    "roman empire": "roman empire",

    "united states": "united states",
    "usa": "united states",
}

# Ordered (needles, canonical key) pairs; first needle found in the
# normalized label wins. Trailing spaces keep adjectives from matching
# inside longer words.
DEFAULT_HEURISTICS = [
    (("french ",), "france"),
    (("british ", "english "), "united kingdom"),
    (("spanish ",), "spain"),
    (("portuguese ",), "portugal"),
    (("dutch ", "netherlands", "holland"), "netherlands"),
    (("belgian ", "belgium"), "belgium"),
    (("russian ", "soviet "), "russia"),
    (("swedish ",), "sweden"),
    (("danish ",), "denmark"),
    (("italian ",), "italy"),
    (("german ", "prussian "), "germany"),
    (("austrian ", "habsburg"), "austria"),
    (("ottoman ", "turkish "), "ottoman empire"),
    (("roman ",), "roman empire"),
    (("american ", "united states"), "united states"),
]


class PolityCanonicalizer:
    """
    Maps raw polity labels to canonical keys.

    Resolution order:
    1. Exact match of the normalized label in the alias table
    2. First heuristic needle contained in the normalized label
    3. The normalized label itself
    """

    def __init__(self, aliases: dict | None = None, heuristics: list | None = None):
        aliases = DEFAULT_ALIASES if aliases is None else aliases
        heuristics = DEFAULT_HEURISTICS if heuristics is None else heuristics

        self.aliases = {normalize_label(k): normalize_label(v) for k, v in aliases.items()}
        self.heuristics = [
            (tuple(needles), normalize_label(key)) for needles, key in heuristics
        ]

    def derive_subject(self, label: str) -> Optional[str]:
        """Recover a sovereign from adjective-form names ("French Indochina" -> "france")."""
        normalized = normalize_label(label)
        for needles, key in self.heuristics:
            if any(needle in normalized for needle in needles):
                return key
        return None

    def canonicalize(self, label: str) -> str:
        """Canonical polity key for a raw label."""
        normalized = normalize_label(label)
        alias = self.aliases.get(normalized)
        if alias is not None:
            return alias
        return self.derive_subject(normalized) or normalized


def load_canonicalizer(path: Path) -> PolityCanonicalizer:
    """
    Build a canonicalizer from a JSON tables file.

    Expected shape::

        {"aliases": {"british empire": "united kingdom"},
         "heuristics": [[["french "], "france"]]}

    Either key may be omitted to keep the built-in table.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    heuristics = data.get("heuristics")
    if heuristics is not None:
        heuristics = [(tuple(needles), key) for needles, key in heuristics]

    return PolityCanonicalizer(aliases=data.get("aliases"), heuristics=heuristics)


_default = PolityCanonicalizer()


def canonicalize(label: str) -> str:
    """Canonicalize with the built-in tables."""
    return _default.canonicalize(label)


def derive_subject(label: str) -> Optional[str]:
    """Heuristic subject derivation with the built-in table."""
    return _default.derive_subject(label)


# =============================================================================
# Polity Field Merging
# =============================================================================

@dataclass(frozen=True)
class PolityFields:
    """Mergeable attributes of a polity row."""
    display_name: Optional[str] = None
    color_hex: Optional[str] = None
    valid_from_year: Optional[int] = None
    valid_to_year: Optional[int] = None


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def merge_polity_fields(existing: PolityFields, incoming: PolityFields) -> PolityFields:
    """
    Merge an import observation into a stored polity.

    Stored values are never regressed:
    - display_name: first non-blank value wins
    - color_hex: only filled when absent
    - valid_from_year / valid_to_year: widened to cover the observation
    """
    display_name = existing.display_name
    if _blank(display_name) and not _blank(incoming.display_name):
        display_name = incoming.display_name

    color_hex = existing.color_hex
    if _blank(color_hex) and not _blank(incoming.color_hex):
        color_hex = incoming.color_hex

    years_from = [y for y in (existing.valid_from_year, incoming.valid_from_year) if y is not None]
    years_to = [y for y in (existing.valid_to_year, incoming.valid_to_year) if y is not None]

    return replace(
        existing,
        display_name=display_name,
        color_hex=color_hex,
        valid_from_year=min(years_from) if years_from else None,
        valid_to_year=max(years_to) if years_to else None,
    )
