"""
WorldLore Geo - Import Pipeline

Canonicalizes historical boundary labels into polities and loads historical
and natural GeoJSON layers into the database.
"""

__version__ = "0.1.0"
