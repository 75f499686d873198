"""Spatial and plain relational tables.

A SpatialTable is an immutable ordered sequence of rows, each holding the
attribute values of a shared Schema plus exactly one geometry (or None).
The geometry lives outside the schema as a table-level field; only
drop_geometry() removes it, returning a plain AttributeTable.

Tables are values: rows are tuples, geometries are immutable shapely
objects, attribute assignment is blocked, and every operator returns a new
table. Operators build their results through ``_derive()``, which skips
per-value coercion but still enforces the table contract.
"""

import logging
import math
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from spatab.contracts.base import require
from spatab.contracts.failure import SchemaError, TypeMismatch, UnknownCRS
from spatab.contracts.table import assert_table
from spatab.geometry.crs import CRSLike, lookup_crs, normalize_crs, transform_geometry
from spatab.geometry.kinds import GeometryKind, common_kind, geometry_kind
from spatab.geometry.model import geometries_close, geometries_equal, promote, validate_geometry
from spatab.schemas.internal import InternalConfig
from spatab.schemas.resolve import default_config
from spatab.table.row import Row
from spatab.table.schema import GEOMETRY_FIELD, Schema
from spatab.table.values import AttributeType, coerce_value, infer_column_type

__all__ = ['AttributeTable', 'SpatialTable']

logger = logging.getLogger(__name__)

_KEEP = object()


def _values_close(a: Any, b: Any, tolerance: float) -> bool:
    if isinstance(a, float) and isinstance(b, float):
        return math.isclose(a, b, rel_tol=1e-12, abs_tol=tolerance)
    return a == b and type(a) is type(b)


class AttributeTable:
    """Plain relational table: a Schema plus rows of attribute values.

    This is what a SpatialTable becomes after ``drop_geometry()``, and the
    usual right-hand side of ``left_join``.
    """

    __slots__ = ("_schema", "_rows")

    is_spatial = False

    def __init__(self, schema: Schema | Iterable, rows: Iterable[Sequence[Any]] = ()):
        schema = schema if isinstance(schema, Schema) else Schema(schema)
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_rows", self._coerce_rows(schema, rows))

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @staticmethod
    def _coerce_rows(schema: Schema, rows: Iterable[Sequence[Any]]) -> tuple:
        out = []
        width = len(schema)
        for i, row in enumerate(rows):
            row = tuple(row)
            if len(row) != width:
                raise SchemaError(
                    f"Row {i} has {len(row)} values, schema has {width} columns", row=i
                )
            out.append(tuple(
                coerce_value(value, col.dtype, col.name, i) for value, col in zip(row, schema)
            ))
        return tuple(out)

    @classmethod
    def _derive_plain(cls, schema: Schema, rows: tuple) -> "AttributeTable":
        table = object.__new__(AttributeTable)
        object.__setattr__(table, "_schema", schema)
        object.__setattr__(table, "_rows", rows)
        require(all(len(r) == len(schema) for r in rows),
                "Table contract violated: row width differs from schema width")
        return table

    @classmethod
    def from_columns(cls, columns: Mapping[str, Sequence[Any]],
                     dtypes: Optional[Mapping[str, AttributeType | str]] = None) -> "AttributeTable":
        """Build a table from equal-length column sequences."""
        schema, rows = _columns_to_rows(columns, dtypes, None)
        return cls(schema, rows)

    def _derive(self, schema: Schema = None, rows: tuple = None) -> "AttributeTable":
        return self._derive_plain(
            self._schema if schema is None else schema,
            self._rows if rows is None else rows,
        )

    # -- accessors ----------------------------------------------------------

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def columns(self) -> tuple:
        """Attribute column names in schema order."""
        return self._schema.names

    @property
    def rows(self) -> tuple:
        """Raw attribute tuples in row order."""
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def num_rows(self) -> int:
        return len(self._rows)

    def column(self, name: str) -> tuple:
        idx = self._schema.index(name)
        return tuple(r[idx] for r in self._rows)

    def __getitem__(self, name: str) -> tuple:
        return self.column(name)

    def row(self, i: int) -> Row:
        return Row(self._schema, self._rows[i], None, i)

    def iter_rows(self) -> Iterator[Row]:
        for i, values in enumerate(self._rows):
            yield Row(self._schema, values, None, i)

    def records(self) -> list:
        """Rows as plain dicts."""
        names = self._schema.names
        return [dict(zip(names, values)) for values in self._rows]

    # -- comparison ---------------------------------------------------------

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._schema == other._schema and self._rows == other._rows

    __hash__ = None

    def equals(self, other, tolerance: float = 0.0) -> bool:
        """Equality allowing float attributes to differ by ``tolerance``."""
        if type(other) is not type(self) or self._schema != other._schema:
            return False
        if len(self) != len(other):
            return False
        return all(
            _values_close(a, b, tolerance)
            for ra, rb in zip(self._rows, other._rows)
            for a, b in zip(ra, rb)
        )

    def __repr__(self) -> str:
        return f"<AttributeTable rows={len(self)} columns={list(self.columns)}>"


class SpatialTable(AttributeTable):
    """Attribute rows bound to one geometry each, with a CRS and geometry kind.

    Parameters
    ----------
    schema : Schema or iterable of (name, type)
        Attribute columns. The geometry is not part of it.
    rows : iterable of sequences
        Attribute values per row, in schema order.
    geometries : sequence of shapely geometries or None
        One entry per row. Empty geometries are stored as None.
    crs : int or str, optional
        EPSG code of the table's coordinate reference system.
    kind : GeometryKind or str, optional
        Declared geometry kind. Inferred from the geometries when omitted;
        simple geometries are promoted when the kind is a Multi kind.

    Raises
    ------
    SchemaError
        Row width or geometry count does not match.
    TypeMismatch
        A value does not fit its column type, or a geometry does not fit
        the declared kind.
    MalformedGeometry
        A geometry fails validation.

    Examples
    --------
    >>> t = SpatialTable.from_columns(
    ...     {"id": [1, 2]}, geometry=[point(0, 0), point(1, 1)], crs=4326)
    >>> t.kind
    <GeometryKind.POINT: 'Point'>
    """

    __slots__ = ("_geometries", "_crs", "_kind")

    is_spatial = True

    def __init__(self, schema: Schema | Iterable, rows: Iterable[Sequence[Any]] = (),
                 geometries: Sequence[Any] = (), crs: CRSLike = None,
                 kind: GeometryKind | str | None = None):
        super().__init__(schema, rows)
        geoms = [validate_geometry(g, row=i) for i, g in enumerate(geometries)]
        if len(geoms) != len(self._rows):
            raise SchemaError(
                f"{len(geoms)} geometries for {len(self._rows)} rows"
            )
        kinds = [geometry_kind(g) for g in geoms]
        if kind is None:
            kind = common_kind(kinds)
        else:
            kind = GeometryKind(kind)
            for i, k in enumerate(kinds):
                if k is not None and not kind.accepts(k):
                    raise TypeMismatch(
                        f"Row {i} geometry is {k.value}, table kind is {kind.value}",
                        column=GEOMETRY_FIELD,
                        row=i,
                    )
        object.__setattr__(self, "_geometries", tuple(promote(g, kind) for g in geoms))
        object.__setattr__(self, "_crs", normalize_crs(crs))
        object.__setattr__(self, "_kind", kind)

    @classmethod
    def from_columns(cls, columns: Mapping[str, Sequence[Any]],
                     geometry: Sequence[Any] = (), crs: CRSLike = None,
                     dtypes: Optional[Mapping[str, AttributeType | str]] = None,
                     kind: GeometryKind | str | None = None) -> "SpatialTable":
        """Build a table from equal-length column sequences and a geometry sequence."""
        geometry = list(geometry)
        schema, rows = _columns_to_rows(columns, dtypes, len(geometry))
        return cls(schema, rows, geometry, crs=crs, kind=kind)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], crs: CRSLike = None,
                     schema: Optional[Schema] = None,
                     kind: GeometryKind | str | None = None) -> "SpatialTable":
        """Build a table from dicts; each dict's ``"geometry"`` entry is the row geometry.

        Column order follows first appearance across records; absent keys are missing.
        """
        records = list(records)
        if schema is None:
            names = []
            for rec in records:
                for key in rec:
                    if key != GEOMETRY_FIELD and key not in names:
                        names.append(key)
            columns = {n: [rec.get(n) for rec in records] for n in names}
            schema, rows = _columns_to_rows(columns, None, len(records))
        else:
            rows = [[rec.get(n) for n in schema.names] for rec in records]
        geometries = [rec.get(GEOMETRY_FIELD) for rec in records]
        return cls(schema, rows, geometries, crs=crs, kind=kind)

    def _derive(self, schema: Schema = None, rows: tuple = None,
                geometries: tuple = None, crs=_KEEP, kind=_KEEP) -> "SpatialTable":
        table = object.__new__(SpatialTable)
        object.__setattr__(table, "_schema", self._schema if schema is None else schema)
        object.__setattr__(table, "_rows", self._rows if rows is None else tuple(rows))
        object.__setattr__(
            table, "_geometries", self._geometries if geometries is None else tuple(geometries)
        )
        object.__setattr__(table, "_crs", self._crs if crs is _KEEP else crs)
        object.__setattr__(table, "_kind", self._kind if kind is _KEEP else kind)
        assert_table(table)
        return table

    # -- accessors ----------------------------------------------------------

    @property
    def geometries(self) -> tuple:
        return self._geometries

    @property
    def crs(self) -> Optional[int]:
        return self._crs

    @property
    def kind(self) -> Optional[GeometryKind]:
        return self._kind

    def column(self, name: str) -> tuple:
        if name == GEOMETRY_FIELD:
            return self._geometries
        return super().column(name)

    def row(self, i: int) -> Row:
        return Row(self._schema, self._rows[i], self._geometries[i], i)

    def iter_rows(self) -> Iterator[Row]:
        for i, (values, geom) in enumerate(zip(self._rows, self._geometries)):
            yield Row(self._schema, values, geom, i)

    def records(self) -> list:
        """Rows as dicts, with the geometry under ``"geometry"``."""
        names = self._schema.names
        return [
            {**dict(zip(names, values)), GEOMETRY_FIELD: geom}
            for values, geom in zip(self._rows, self._geometries)
        ]

    # -- geometry-level operations ------------------------------------------

    def to_crs(self, target: CRSLike) -> "SpatialTable":
        """Reproject every geometry; rows, order and attributes are unchanged.

        Raises
        ------
        UnknownCRS
            If the table CRS is unknown or either code is unregistered.
        TransformUndefined
            If no mapping exists between the two systems.
        """
        if self._crs is None:
            raise UnknownCRS(None)
        target_code = normalize_crs(target)
        if target_code is None:
            raise UnknownCRS(target)
        # checked up front so empty tables fail the same way
        lookup_crs(self._crs)
        lookup_crs(target_code)
        geoms = tuple(transform_geometry(g, self._crs, target_code) for g in self._geometries)
        logger.debug("Reprojected %d rows: EPSG:%s -> EPSG:%s", len(self), self._crs, target_code)
        return self._derive(geometries=geoms, crs=target_code)

    def set_crs(self, crs: CRSLike) -> "SpatialTable":
        """Relabel the CRS without touching coordinates.

        Raises
        ------
        UnknownCRS
            If ``crs`` is not a registered code. None clears the CRS.
        """
        code = normalize_crs(crs)
        if code is not None:
            lookup_crs(code)
        return self._derive(crs=code)

    def drop_geometry(self) -> AttributeTable:
        """Detach the geometry, reclassifying the table as a plain AttributeTable."""
        return AttributeTable._derive_plain(self._schema, self._rows)

    # -- comparison ---------------------------------------------------------

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return (
            self._schema == other._schema
            and self._crs == other._crs
            and self._kind == other._kind
            and self._rows == other._rows
            and all(geometries_equal(a, b) for a, b in zip(self._geometries, other._geometries))
        )

    __hash__ = None

    def equals(self, other, tolerance: Optional[float] = None,
               config: Optional[InternalConfig] = None) -> bool:
        """Equality up to coordinate tolerance (ring orientation ignored).

        ``tolerance`` defaults to ``config.geometry.equality_tolerance``,
        using the resolved defaults when no config is given.
        """
        if tolerance is None:
            tolerance = (config or default_config()).geometry.equality_tolerance
        if not super().equals(other, tolerance):
            return False
        if self._crs != other._crs or self._kind != other._kind:
            return False
        return all(
            geometries_close(a, b, tolerance)
            for a, b in zip(self._geometries, other._geometries)
        )

    def __repr__(self) -> str:
        kind = self._kind.value if self._kind is not None else None
        crs = f"EPSG:{self._crs}" if self._crs is not None else None
        return (f"<SpatialTable rows={len(self)} columns={list(self.columns)} "
                f"kind={kind} crs={crs}>")


def _columns_to_rows(columns: Mapping[str, Sequence[Any]],
                     dtypes: Optional[Mapping[str, Any]],
                     n_rows: Optional[int]):
    dtypes = dict(dtypes or {})
    names = list(columns)
    unknown = set(dtypes) - set(names)
    if unknown:
        raise SchemaError(f"dtypes given for unknown columns: {sorted(unknown)}")

    lengths = {name: len(columns[name]) for name in names}
    if n_rows is None:
        n_rows = next(iter(lengths.values()), 0)
    for name, length in lengths.items():
        if length != n_rows:
            raise SchemaError(
                f"Column '{name}' has {length} values, expected {n_rows}", column=name
            )

    schema = Schema(
        (name, dtypes[name] if name in dtypes else infer_column_type(columns[name], name))
        for name in names
    )
    rows = [tuple(columns[name][i] for name in names) for i in range(n_rows)]
    return schema, rows
