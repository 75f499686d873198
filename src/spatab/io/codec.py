"""read()/write(): format dispatch for persisted tables.

The format is given explicitly or detected from the path's extension. Reads
are bounded by ``max_rows`` and can be cancelled between batches through a
``threading.Event``. I/O errors from the filesystem propagate unchanged.
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Union

from spatab.io.formats import FormatKind, coerce_format
from spatab.io.legacy import read_legacy, write_legacy
from spatab.io.package import read_package, write_package
from spatab.schemas.internal import InternalConfig
from spatab.schemas.resolve import default_config
from spatab.table.table import SpatialTable

__all__ = ['read', 'write']

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_READERS = {
    FormatKind.PACKAGE: read_package,
    FormatKind.LEGACY: read_legacy,
}

_WRITERS = {
    FormatKind.PACKAGE: write_package,
    FormatKind.LEGACY: write_legacy,
}


def read(source: PathLike, format: Union[FormatKind, str, None] = None, *,
         max_rows: Optional[int] = None,
         stop_event: Optional[threading.Event] = None,
         config: Optional[InternalConfig] = None) -> SpatialTable:
    """Read a persisted table.

    Parameters
    ----------
    source : str or Path
        File to read (any component path for the legacy format).
    format : FormatKind or str, optional
        Explicit format; detected from the extension when omitted.
    max_rows : int, optional
        Row cap. Defaults to ``config.reader.max_rows``.
    stop_event : threading.Event, optional
        Set it from another thread to cancel the read.
    config : InternalConfig, optional
        Runtime configuration; resolved defaults when omitted.

    Returns
    -------
    SpatialTable

    Raises
    ------
    ValueError
        Format not given and the extension is unknown.
    IncompleteComponentSet
        A legacy component file is missing.
    CorruptContainer
        Packaged metadata disagrees with the stored data.
    ReadCancelled
        ``stop_event`` was set.

    Examples
    --------
    >>> regions = read("regions.parquet", max_rows=1000)
    """
    config = config or default_config()
    kind = coerce_format(format, source)
    if max_rows is None:
        max_rows = config.reader.max_rows
    if max_rows is not None and max_rows < 0:
        raise ValueError(f"max_rows must be >= 0, got {max_rows}")

    logger.info("Reading %s (format=%s, max_rows=%s)", source, kind.value, max_rows)
    table = _READERS[kind](source, config, max_rows=max_rows, stop_event=stop_event)
    logger.info("Read %d rows from %s (kind=%s, crs=%s)",
                len(table), source,
                table.kind.value if table.kind is not None else None, table.crs)
    return table


def write(table: SpatialTable, destination: PathLike,
          format: Union[FormatKind, str, None] = None, *,
          config: Optional[InternalConfig] = None) -> Path:
    """Persist a table; the inverse of read().

    Returns
    -------
    Path
        The written file (the ``.shp`` component for the legacy format).

    Raises
    ------
    ValueError
        Format not given and the extension is unknown.
    UnsupportedGeometryForFormat
        The format cannot store the table's geometry kind.
    SchemaError
        A column name is not representable in the format.
    """
    if not isinstance(table, SpatialTable):
        raise TypeError(
            f"write() expects a SpatialTable, got {type(table).__name__}"
        )
    config = config or default_config()
    kind = coerce_format(format, destination)

    path = _WRITERS[kind](table, destination, config)
    logger.info("Wrote %d rows to %s (format=%s)", len(table), path, kind.value)
    return path
