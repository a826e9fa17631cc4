"""
Polity identity normalization.

These modules turn raw historical labels into canonical polity keys and
stable display colors.
"""

from loguru import logger

from lore_pipeline.config import settings

from .color import color_from_key
from .overrides import DEFAULT_OVERRIDE_RULES, OverrideEngine, OverrideRule, load_override_rules
from .polity import (
    PolityCanonicalizer,
    PolityFields,
    canonicalize,
    derive_subject,
    load_canonicalizer,
    merge_polity_fields,
)


def build_canonicalizer() -> PolityCanonicalizer:
    """Canonicalizer from the configured tables file, else the built-in tables."""
    path = settings.pipeline.polity_tables_file
    if path:
        logger.info(f"Loading polity tables from {path}")
        return load_canonicalizer(path)
    return PolityCanonicalizer()


def build_override_engine(canonicalizer: PolityCanonicalizer) -> OverrideEngine:
    """Override engine from the configured rules file, else the built-in rules."""
    path = settings.pipeline.override_rules_file
    rules = None
    if path:
        logger.info(f"Loading override rules from {path}")
        rules = load_override_rules(path)
    return OverrideEngine(rules=rules, canonicalizer=canonicalizer)


__all__ = [
    'color_from_key',
    'canonicalize',
    'derive_subject',
    'merge_polity_fields',
    'PolityCanonicalizer',
    'PolityFields',
    'OverrideEngine',
    'OverrideRule',
    'DEFAULT_OVERRIDE_RULES',
    'load_canonicalizer',
    'load_override_rules',
    'build_canonicalizer',
    'build_override_engine',
]
