"""Exceptions raised by the import pipeline and the layer query service."""


class LoreError(Exception):
    """Base class for WorldLore geo errors."""


class GeoJSONReadError(LoreError):
    """A source file could not be read or is not a GeoJSON FeatureCollection."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class InvalidQueryParameter(LoreError, ValueError):
    """A layer query parameter could not be parsed."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)
