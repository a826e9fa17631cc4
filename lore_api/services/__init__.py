"""
Layer query services.

Plain functions taking a database session; the routes add HTTP concerns.
"""

from lore_api.services.history_layer import get_history_layer
from lore_api.services.layers import LayerResponse
from lore_api.services.natural_layer import get_natural_layer, search_natural

__all__ = [
    "LayerResponse",
    "get_history_layer",
    "get_natural_layer",
    "search_natural",
]
