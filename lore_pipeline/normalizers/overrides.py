"""
Time-bounded sovereignty overrides.

Colonial-era polygons are usually labeled with the territory's modern name
("Philippines", "Angola") rather than the controlling power, and an alias
table cannot express that "Alaska" means Russia before 1868 and the United
States afterwards. Override rules run after generic canonicalization and
replace its result.

Rules are evaluated strictly in declaration order and the first match wins,
even when a later rule is more specific. Add narrow rules above broad ones.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from lore_pipeline.normalizers.polity import PolityCanonicalizer

OPEN_ENDED_YEAR = 9999


@dataclass(frozen=True)
class OverrideRule:
    """A (name pattern, inclusive year range, subject) rule."""
    pattern: re.Pattern
    year_from: int
    year_to: int
    subject: str

    @classmethod
    def build(cls, pattern: str, year_from: int, year_to: int, subject: str) -> "OverrideRule":
        return cls(re.compile(pattern, re.IGNORECASE), int(year_from), int(year_to), subject)

    def matches(self, raw_name: str, year: int) -> bool:
        return self.year_from <= year <= self.year_to and self.pattern.search(raw_name) is not None


DEFAULT_OVERRIDE_RULES = [
    # Philippines under the US
    OverrideRule.build(r"\bphilippines\b", 1900, 1945, "united states"),
    OverrideRule.build(r"\bpuerto rico\b", 1900, OPEN_ENDED_YEAR, "united states"),
    OverrideRule.build(r"\bangola\b", 1600, 1975, "portugal"),
    OverrideRule.build(r"\b(congo|zaire|kinshasa)\b", 1908, 1960, "belgium"),
    OverrideRule.build(r"\bindia\b", 1757, 1947, "united kingdom"),
    OverrideRule.build(r"\balgeria\b", 1830, 1962, "france"),
    # Protectorate 1881-1956
    OverrideRule.build(r"\btunisia\b", 1881, 1956, "france"),
    OverrideRule.build(r"\begypt\b", 1882, 1922, "united kingdom"),
    # Anglo-Egyptian Sudan
    OverrideRule.build(r"\bsudan\b", 1899, 1956, "united kingdom"),
    OverrideRule.build(r"\bnigeria\b", 1861, 1960, "united kingdom"),
    OverrideRule.build(r"\bghana|gold coast\b", 1821, 1957, "united kingdom"),
    OverrideRule.build(r"\bkenya\b", 1895, 1963, "united kingdom"),
    # Tanganyika mandate, British after 1918
    OverrideRule.build(r"\btanzania|tanganyika\b", 1919, 1961, "united kingdom"),
    OverrideRule.build(r"\bmozambique|portuguese east africa\b", 1500, 1975, "portugal"),
    OverrideRule.build(r"\bguinea[- ]?bissau|portuguese guinea\b", 1500, 1973, "portugal"),
    # German South West Africa
    OverrideRule.build(r"\bnamibia|german south[- ]?west africa\b", 1884, 1915, "germany"),
    OverrideRule.build(r"\bcameroon|kamerun\b", 1884, 1916, "germany"),
    OverrideRule.build(r"\btogo|togoland\b", 1884, 1916, "germany"),
    OverrideRule.build(r"\btaiwan|formosa\b", 1895, 1945, "japan"),
    OverrideRule.build(r"\bkorea\b", 1910, 1945, "japan"),
    OverrideRule.build(r"\bmanchuria|manchukuo\b", 1932, 1945, "japan"),
    # Papua: British until 1913, Australian mandate afterwards
    OverrideRule.build(r"\bpapua\b", 1900, 1913, "united kingdom"),
    OverrideRule.build(r"\bpapua\b", 1914, 1975, "australia"),
    # Alaska purchase, 1867
    OverrideRule.build(r"\balaska\b", 1700, 1867, "russia"),
    OverrideRule.build(r"\balaska\b", 1868, OPEN_ENDED_YEAR, "united states"),
]


class OverrideEngine:
    """Applies the first matching override rule to a resolved subject."""

    def __init__(self, rules: list[OverrideRule] | None = None, canonicalizer: PolityCanonicalizer | None = None):
        self.rules = list(DEFAULT_OVERRIDE_RULES if rules is None else rules)
        self.canonicalizer = canonicalizer or PolityCanonicalizer()

    def match(self, raw_name: str, year: int) -> Optional[OverrideRule]:
        """First rule (in declaration order) covering this name and year."""
        for rule in self.rules:
            if rule.matches(raw_name, year):
                return rule
        return None

    def resolve_subject(self, raw_name: str, year: int, resolved_subject: str) -> str:
        """
        Final canonical key for a feature.

        Args:
            raw_name: Feature name as it appears in the source file
            year: Source snapshot year
            resolved_subject: Key produced by alias/heuristic canonicalization

        Returns:
            The canonicalized override subject, or resolved_subject unchanged
        """
        rule = self.match(raw_name, year)
        if rule is None:
            return resolved_subject
        return self.canonicalizer.canonicalize(rule.subject)


def load_override_rules(path: Path) -> list[OverrideRule]:
    """
    Read override rules from a JSON array.

    Each entry: {"pattern": "\\\\bangola\\\\b", "year_from": 1600,
    "year_to": 1975, "subject": "portugal"}. File order is rule order.
    """
    with open(path, encoding="utf-8") as f:
        entries = json.load(f)

    return [
        OverrideRule.build(
            entry["pattern"],
            entry["year_from"],
            entry.get("year_to", OPEN_ENDED_YEAR),
            entry["subject"],
        )
        for entry in entries
    ]
