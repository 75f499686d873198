"""Persisted format kinds and extension-based detection."""

from enum import Enum
from pathlib import Path
from typing import Union

__all__ = ['FormatKind', 'detect_format', 'coerce_format', 'LEGACY_COMPONENTS']

PathLike = Union[str, Path]


class FormatKind(str, Enum):
    """Supported on-disk layouts."""
    PACKAGE = "package"  # single GeoParquet-style .parquet file
    LEGACY = "legacy"    # ESRI shapefile component set


# Required legacy components, in write order
LEGACY_COMPONENTS = (".shp", ".shx", ".dbf", ".prj")

_SUFFIXES = {
    ".parquet": FormatKind.PACKAGE,
    ".geoparquet": FormatKind.PACKAGE,
    **{suffix: FormatKind.LEGACY for suffix in LEGACY_COMPONENTS},
}


def detect_format(path: PathLike) -> FormatKind:
    """Format kind from the path's extension marker only.

    The file is never opened; detection does not depend on content.

    Raises
    ------
    ValueError
        If the extension is not a known marker.

    Examples
    --------
    >>> detect_format("regions.shp")
    <FormatKind.LEGACY: 'legacy'>
    """
    suffix = Path(path).suffix.lower()
    try:
        return _SUFFIXES[suffix]
    except KeyError:
        raise ValueError(
            f"Cannot detect format of {path}: unknown extension {suffix!r} "
            f"(expected one of {', '.join(sorted(_SUFFIXES))})"
        ) from None


def coerce_format(format: Union[FormatKind, str, None], path: PathLike) -> FormatKind:
    """Explicit format if given, else detected from ``path``."""
    if format is None:
        return detect_format(path)
    return FormatKind(format)
