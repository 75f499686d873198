"""Persisted formats: packaged (GeoParquet-style) and legacy (shapefile set)."""

from spatab.io.formats import FormatKind, detect_format
from spatab.io.codec import read, write

__all__ = [
    'FormatKind',
    'detect_format',
    'read',
    'write',
]
