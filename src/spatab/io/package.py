"""Single-file packaged container: GeoParquet-style Parquet.

Layout
------
- One Parquet file; the schema columns in order, then a binary ``geometry``
  column holding WKB (null for a missing geometry).
- File metadata ``geo``: GeoParquet block (version, primary column, WKB
  encoding, geometry types, PROJJSON CRS, bbox) so other GeoParquet
  readers can open the file.
- File metadata ``spatab``: engine block (format version, typed schema,
  EPSG code, declared geometry kind, row count). It is authoritative on
  read; a file without it is read from the Arrow types and ``geo`` block.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pyarrow as pa
import pyarrow.parquet as pq
import shapely

from spatab.contracts.failure import CorruptContainer, ReadCancelled, TypeMismatch
from spatab.geometry.crs import lookup_crs, normalize_crs
from spatab.geometry.kinds import GeometryKind
from spatab.schemas.internal import InternalConfig
from spatab.table.schema import GEOMETRY_FIELD, Schema
from spatab.table.table import SpatialTable
from spatab.table.values import AttributeType

__all__ = ['write_package', 'read_package', 'FORMAT_VERSION']

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

_GEO_KEY = b"geo"
_SPATAB_KEY = b"spatab"

# GeoParquet default when a column declares no crs (OGC:CRS84)
_DEFAULT_GEO_CRS = 4326

_ARROW_TYPES = {
    AttributeType.INTEGER: pa.int64(),
    AttributeType.FLOAT: pa.float64(),
    AttributeType.TEXT: pa.string(),
    AttributeType.BOOLEAN: pa.bool_(),
}


def _attribute_type(field: pa.Field) -> AttributeType:
    """Attribute type for an Arrow field of a foreign file."""
    t = field.type
    if pa.types.is_boolean(t):
        return AttributeType.BOOLEAN
    if pa.types.is_integer(t):
        return AttributeType.INTEGER
    if pa.types.is_floating(t):
        return AttributeType.FLOAT
    if pa.types.is_string(t) or pa.types.is_large_string(t):
        return AttributeType.TEXT
    raise TypeMismatch(
        f"Column '{field.name}' has Arrow type {t}, which has no attribute type",
        column=field.name,
    )


def _geo_metadata(table: SpatialTable, config: InternalConfig) -> dict:
    geoms = [g for g in table.geometries if g is not None]
    column = {
        "encoding": "WKB",
        "geometry_types": sorted({g.geom_type for g in geoms}),
    }
    if table.crs is not None:
        column["crs"] = lookup_crs(table.crs).to_json_dict()
    else:
        column["crs"] = None
    if geoms:
        column["bbox"] = [float(v) for v in shapely.total_bounds(np.asarray(geoms, dtype=object))]
    return {
        "version": config.package.geo_metadata_version,
        "primary_column": GEOMETRY_FIELD,
        "columns": {GEOMETRY_FIELD: column},
    }


def _spatab_metadata(table: SpatialTable) -> dict:
    return {
        "format_version": FORMAT_VERSION,
        "schema": [{"name": c.name, "type": c.dtype.value} for c in table.schema],
        "crs": f"EPSG:{table.crs}" if table.crs is not None else None,
        "kind": table.kind.value if table.kind is not None else None,
        "row_count": len(table),
    }


def write_package(table: SpatialTable, path: Union[str, Path],
                  config: InternalConfig) -> Path:
    """Write ``table`` as one Parquet file.

    Parameters
    ----------
    table : SpatialTable
        Table to persist.
    path : str or Path
        Destination file; parent directories must exist.
    config : InternalConfig
        Uses ``config.package.compression``.

    Returns
    -------
    Path
        The written file.
    """
    path = Path(path)
    arrays = []
    fields = []
    for i, col in enumerate(table.schema):
        arrow_type = _ARROW_TYPES[col.dtype]
        arrays.append(pa.array([r[i] for r in table.rows], type=arrow_type))
        fields.append(pa.field(col.name, arrow_type))

    wkb = shapely.to_wkb(np.asarray(table.geometries, dtype=object), output_dimension=2)
    arrays.append(pa.array(list(wkb), type=pa.binary()))
    fields.append(pa.field(GEOMETRY_FIELD, pa.binary()))

    metadata = {
        _GEO_KEY: json.dumps(_geo_metadata(table, config), separators=(",", ":")).encode("utf-8"),
        _SPATAB_KEY: json.dumps(_spatab_metadata(table), separators=(",", ":")).encode("utf-8"),
    }
    arrow_table = pa.Table.from_arrays(arrays, schema=pa.schema(fields, metadata=metadata))

    compression = config.package.compression
    pq.write_table(arrow_table, path, compression=None if compression == "none" else compression)
    logger.debug("Packaged %d rows, %d columns, compression=%s",
                 len(table), len(table.schema), compression)
    return path


def _load_metadata(pf: pq.ParquetFile, path: Path):
    raw = pf.schema_arrow.metadata or {}
    try:
        spatab_meta = json.loads(raw[_SPATAB_KEY]) if _SPATAB_KEY in raw else None
        geo_meta = json.loads(raw[_GEO_KEY]) if _GEO_KEY in raw else None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CorruptContainer(f"{path}: unreadable file metadata ({e})") from e
    return spatab_meta, geo_meta


def _schema_from_metadata(spatab_meta: dict, pf: pq.ParquetFile, path: Path) -> Schema:
    try:
        schema = Schema((c["name"], c["type"]) for c in spatab_meta["schema"])
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptContainer(f"{path}: invalid schema block ({e})") from e
    expected = [*schema.names, GEOMETRY_FIELD]
    actual = pf.schema_arrow.names
    if actual != expected:
        raise CorruptContainer(f"{path}: columns {actual} do not match declared schema {expected}")
    return schema


def _crs_from_geo(geo_meta: Optional[dict]):
    """EPSG code from a foreign file's GeoParquet CRS (PROJJSON or string).

    An absent ``crs`` key means OGC:CRS84 (lon/lat WGS 84, EPSG:4326 in
    x/y order); an explicit null means the CRS is unknown.
    """
    if not geo_meta:
        return None
    column = geo_meta.get("columns", {}).get(geo_meta.get("primary_column", GEOMETRY_FIELD), {})
    if "crs" not in column:
        return _DEFAULT_GEO_CRS
    crs = column["crs"]
    if crs is None:
        return None
    if isinstance(crs, dict):
        crs_id = crs.get("id", {})
        if crs_id.get("authority") == "EPSG":
            return int(crs_id["code"])
        if crs_id.get("authority") == "OGC" and crs_id.get("code") == "CRS84":
            return _DEFAULT_GEO_CRS
        return None
    return normalize_crs(crs)


def read_package(path: Union[str, Path], config: InternalConfig,
                 max_rows: Optional[int] = None,
                 stop_event: Optional[threading.Event] = None) -> SpatialTable:
    """Read a packaged container in record batches.

    Parameters
    ----------
    path : str or Path
        Parquet file.
    config : InternalConfig
        Uses ``config.package.batch_size``.
    max_rows : int, optional
        Stop after this many rows.
    stop_event : threading.Event, optional
        Checked before every batch; when set the read is abandoned.

    Raises
    ------
    CorruptContainer
        Metadata is unreadable or disagrees with the stored columns or rows.
    ReadCancelled
        ``stop_event`` was set before the read finished.
    """
    path = Path(path)
    pf = pq.ParquetFile(path)
    spatab_meta, geo_meta = _load_metadata(pf, path)

    if spatab_meta is not None:
        schema = _schema_from_metadata(spatab_meta, pf, path)
        stored_rows = pf.metadata.num_rows
        if spatab_meta.get("row_count") != stored_rows:
            raise CorruptContainer(
                f"{path}: metadata declares {spatab_meta.get('row_count')} rows, "
                f"file holds {stored_rows}"
            )
        crs = normalize_crs(spatab_meta.get("crs"))
        kind = spatab_meta.get("kind")
    else:
        names = pf.schema_arrow.names
        if GEOMETRY_FIELD not in names:
            raise CorruptContainer(f"{path}: no '{GEOMETRY_FIELD}' column")
        schema = Schema(
            (f.name, _attribute_type(f)) for f in pf.schema_arrow if f.name != GEOMETRY_FIELD
        )
        crs = _crs_from_geo(geo_meta)
        kind = None

    columns = [*schema.names, GEOMETRY_FIELD]
    rows = []
    geometries = []
    for batch in pf.iter_batches(batch_size=config.package.batch_size, columns=columns):
        if stop_event is not None and stop_event.is_set():
            raise ReadCancelled(path, len(rows))
        n = batch.num_rows
        if max_rows is not None:
            n = min(n, max_rows - len(rows))
        values = [batch.column(i).slice(0, n).to_pylist() for i in range(len(schema))]
        rows.extend(zip(*values) if values else [()] * n)
        wkb = batch.column(len(schema)).slice(0, n).to_pylist()
        geometries.extend(shapely.from_wkb(np.asarray(wkb, dtype=object)))
        if max_rows is not None and len(rows) >= max_rows:
            break

    if kind is not None:
        kind = GeometryKind(kind)
    return SpatialTable(schema, rows, geometries, crs=crs, kind=kind)
