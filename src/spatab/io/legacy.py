"""Legacy multi-component format: ESRI shapefile sets.

A dataset is four sibling files sharing a base name: ``.shp`` (geometry),
``.shx`` (shape index), ``.dbf`` (attributes) and ``.prj`` (CRS as WKT).
pyshp handles the binary layouts; this module maps between them and the
table model.

Format limits
-------------
- Field names are at most 10 characters.
- One shape type per file, so GEOMETRY (mixed) tables cannot be written.
- Shape types do not distinguish single-part Multi rows from simple rows;
  the kind read back is the narrowest kind covering every row.
- Text fields are space padded; empty text reads back as missing, and
  surrounding whitespace is not preserved.
- Floats are stored as fixed-point text with ``float_decimals`` decimals.
"""

import logging
import math
import threading
from pathlib import Path
from typing import Optional, Union

import shapefile
from shapely.geometry import shape as shape_from_geojson
from shapely.geometry.polygon import orient

from spatab.contracts.failure import (
    IncompleteComponentSet,
    MalformedGeometry,
    ReadCancelled,
    SchemaError,
    TypeMismatch,
    UnsupportedGeometryForFormat,
)
from spatab.geometry.crs import crs_from_wkt, crs_to_wkt
from spatab.geometry.kinds import GeometryKind, common_kind, geometry_kind
from spatab.geometry.model import geometry_parts
from spatab.io.formats import LEGACY_COMPONENTS
from spatab.schemas.internal import InternalConfig
from spatab.table.schema import Schema
from spatab.table.table import SpatialTable
from spatab.table.values import AttributeType

__all__ = ['write_legacy', 'read_legacy', 'component_paths', 'MAX_FIELD_NAME']

logger = logging.getLogger(__name__)

FORMAT_NAME = "legacy shapefile"

# dBASE field names are limited to 10 characters
MAX_FIELD_NAME = 10

# dBASE needs at least one field; used only for tables without attributes
_PLACEHOLDER_FIELD = "__noattr__"

_SHAPE_TYPES = {
    GeometryKind.POINT: shapefile.POINT,
    GeometryKind.MULTIPOINT: shapefile.MULTIPOINT,
    GeometryKind.LINESTRING: shapefile.POLYLINE,
    GeometryKind.MULTILINESTRING: shapefile.POLYLINE,
    GeometryKind.POLYGON: shapefile.POLYGON,
    GeometryKind.MULTIPOLYGON: shapefile.POLYGON,
}

# Kind of an empty file by shape type (Z and M variants share the last digit)
_EMPTY_FILE_KINDS = {
    shapefile.POINT: GeometryKind.POINT,
    shapefile.MULTIPOINT: GeometryKind.MULTIPOINT,
    shapefile.POLYLINE: GeometryKind.LINESTRING,
    shapefile.POLYGON: GeometryKind.POLYGON,
}


def component_paths(path: Union[str, Path]) -> dict:
    """Paths of the four components for a base name or any component path.

    Examples
    --------
    >>> component_paths("out/regions.shp")[".dbf"]
    PosixPath('out/regions.dbf')
    """
    path = Path(path)
    if path.suffix.lower() in LEGACY_COMPONENTS:
        path = path.with_suffix("")
    # concatenation keeps dots inside the base name; pyshp strips only the
    # last suffix from the .shp path it is given
    return {suffix: Path(f"{path}{suffix}") for suffix in LEGACY_COMPONENTS}


# =============================================================================
# Write
# =============================================================================

def _check_field_names(schema: Schema) -> None:
    for name in schema.names:
        if len(name) > MAX_FIELD_NAME:
            raise SchemaError(
                f"Column '{name}' is longer than {MAX_FIELD_NAME} characters, "
                f"the limit of the {FORMAT_NAME} format; rename it first",
                column=name,
            )
    upper = [n.upper() for n in schema.names]
    for name in schema.names:
        if upper.count(name.upper()) > 1:
            raise SchemaError(
                f"Column '{name}' differs from another column only by case, "
                f"which the {FORMAT_NAME} format cannot store",
                column=name,
            )


def _add_fields(writer: shapefile.Writer, schema: Schema, config: InternalConfig) -> None:
    legacy = config.legacy
    if not len(schema):
        writer.field(_PLACEHOLDER_FIELD, "N", size=1, decimal=0)
    for col in schema:
        if col.dtype is AttributeType.TEXT:
            writer.field(col.name, "C", size=legacy.text_field_size)
        elif col.dtype is AttributeType.INTEGER:
            writer.field(col.name, "N", size=legacy.int_field_size, decimal=0)
        elif col.dtype is AttributeType.FLOAT:
            writer.field(col.name, "N", size=legacy.float_field_size,
                         decimal=legacy.float_decimals)
        else:
            writer.field(col.name, "L", size=1)


def _record_values(values: tuple, row: int, schema: Schema, config: InternalConfig) -> list:
    legacy = config.legacy
    out = []
    for value, col in zip(values, schema):
        if value is None:
            out.append("" if col.dtype is AttributeType.TEXT else None)
            continue
        if col.dtype is AttributeType.TEXT:
            encoded = value.encode(legacy.encoding)
            if len(encoded) > legacy.text_field_size:
                logger.warning(
                    "Row %d column '%s': text of %d bytes truncated to %d",
                    row, col.name, len(encoded), legacy.text_field_size,
                )
                # cut on a character boundary
                value = encoded[:legacy.text_field_size].decode(legacy.encoding, errors="ignore")
        elif col.dtype.is_numeric:
            if not math.isfinite(value):
                raise TypeMismatch(
                    f"Row {row} column '{col.name}': {value!r} cannot be stored",
                    column=col.name,
                    row=row,
                )
            digits = len(str(abs(int(value)))) + (value < 0)
            width = legacy.int_field_size if col.dtype is AttributeType.INTEGER \
                else legacy.float_field_size
            if digits > width:
                raise TypeMismatch(
                    f"Row {row} column '{col.name}': {value!r} does not fit a "
                    f"{width}-character numeric field",
                    column=col.name,
                    row=row,
                )
        out.append(value)
    if not len(schema):
        out.append(None)
    return out


def _write_shape(writer: shapefile.Writer, geom) -> None:
    kind = geometry_kind(geom)
    if kind is None:
        writer.null()
    elif kind is GeometryKind.POINT:
        writer.point(geom.x, geom.y)
    elif kind is GeometryKind.MULTIPOINT:
        writer.multipoint([(p.x, p.y) for p in geom.geoms])
    elif kind.base is GeometryKind.LINESTRING:
        writer.line([list(part.coords) for part in geometry_parts(geom)])
    else:
        rings = []
        for part in geometry_parts(geom):
            # exterior clockwise, holes counter-clockwise
            part = orient(part, sign=-1.0)
            rings.append(list(part.exterior.coords))
            rings.extend(list(hole.coords) for hole in part.interiors)
        writer.poly(rings)


def write_legacy(table: SpatialTable, path: Union[str, Path],
                 config: InternalConfig) -> Path:
    """Write ``table`` as a shapefile component set.

    Parameters
    ----------
    table : SpatialTable
        Table to persist.
    path : str or Path
        Base name, or the path of any component.
    config : InternalConfig
        Uses the ``legacy`` field sizes and encoding.

    Returns
    -------
    Path
        The ``.shp`` component.

    Raises
    ------
    UnsupportedGeometryForFormat
        The table kind is GEOMETRY (mixed base kinds).
    SchemaError
        A column name exceeds the field name limit.
    """
    if table.kind is GeometryKind.GEOMETRY:
        raise UnsupportedGeometryForFormat(table.kind.value, FORMAT_NAME)
    _check_field_names(table.schema)

    paths = component_paths(path)
    shape_type = shapefile.NULL if table.kind is None else _SHAPE_TYPES[table.kind]

    with shapefile.Writer(str(paths[".shp"]), shapeType=shape_type,
                          encoding=config.legacy.encoding) as writer:
        _add_fields(writer, table.schema, config)
        for i, (values, geom) in enumerate(zip(table.rows, table.geometries)):
            _write_shape(writer, geom)
            writer.record(*_record_values(values, i, table.schema, config))

    paths[".prj"].write_text(crs_to_wkt(table.crs), encoding="utf-8")
    return paths[".shp"]


# =============================================================================
# Read
# =============================================================================

def _field_type(name: str, field_type: str, decimals: int) -> AttributeType:
    if field_type in ("C", "D", "M"):
        return AttributeType.TEXT
    if field_type == "L":
        return AttributeType.BOOLEAN
    if field_type in ("N", "F"):
        return AttributeType.FLOAT if decimals else AttributeType.INTEGER
    raise TypeMismatch(f"Field '{name}' has unsupported dBASE type {field_type!r}", column=name)


def _read_value(value, dtype: AttributeType):
    if dtype is AttributeType.TEXT:
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            # dates come back as date objects
            return value.isoformat()
        return value
    if dtype is AttributeType.FLOAT and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def _base_shape_type(shape_type: int) -> int:
    """Plain 2D shape type for Z and M variants; multipatch has none."""
    if shape_type == shapefile.MULTIPATCH:
        return -1
    return shape_type % 10


def _read_shape(shape, row: int):
    base_type = _base_shape_type(shape.shapeType)
    if shape.shapeType == shapefile.NULL or not shape.points:
        return None
    if base_type not in _EMPTY_FILE_KINDS:
        raise MalformedGeometry(f"Row {row}: unsupported shape type {shape.shapeType}")
    return shape_from_geojson(shape.__geo_interface__)


def read_legacy(path: Union[str, Path], config: InternalConfig,
                max_rows: Optional[int] = None,
                stop_event: Optional[threading.Event] = None) -> SpatialTable:
    """Read a shapefile component set.

    All four components are checked before any is opened. The stop event
    is polled every ``config.package.batch_size`` rows.

    Raises
    ------
    IncompleteComponentSet
        One or more of ``.shp/.shx/.dbf/.prj`` is absent.
    ReadCancelled
        ``stop_event`` was set before the read finished.
    """
    paths = component_paths(path)
    missing = [suffix for suffix, p in paths.items() if not p.exists()]
    if missing:
        raise IncompleteComponentSet(paths[".shp"].with_suffix(""), missing)

    crs = crs_from_wkt(paths[".prj"].read_text(encoding="utf-8"))
    batch_size = config.package.batch_size

    with shapefile.Reader(str(paths[".shp"]),
                          encoding=config.legacy.encoding) as reader:
        # first entry is the deletion flag
        fields = [f for f in reader.fields[1:] if f[0] != _PLACEHOLDER_FIELD]
        positions = [i for i, f in enumerate(reader.fields[1:]) if f[0] != _PLACEHOLDER_FIELD]
        schema = Schema((f[0], _field_type(f[0], f[1], f[3])) for f in fields)
        dtypes = schema.dtypes
        file_kind = _EMPTY_FILE_KINDS.get(_base_shape_type(reader.shapeType))

        rows = []
        geometries = []
        for i, shape_record in enumerate(reader.iterShapeRecords()):
            if max_rows is not None and i >= max_rows:
                break
            if i % batch_size == 0 and stop_event is not None and stop_event.is_set():
                raise ReadCancelled(paths[".shp"], len(rows))
            record = shape_record.record
            rows.append(tuple(_read_value(record[p], t) for p, t in zip(positions, dtypes)))
            geometries.append(_read_shape(shape_record.shape, i))

    kind = common_kind(geometry_kind(g) for g in geometries) or file_kind
    return SpatialTable(schema, rows, geometries, crs=crs, kind=kind)
