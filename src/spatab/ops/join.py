"""Combining tables: row binding and attribute joins.

Both operations refuse to mix coordinate reference systems; reprojection
must be requested explicitly with ``SpatialTable.to_crs()``.
"""

import logging
from typing import Sequence, Union

from spatab.contracts.failure import CRSMismatch, SchemaError, TypeMismatch
from spatab.geometry.kinds import common_kind
from spatab.geometry.model import promote
from spatab.table.schema import Schema
from spatab.table.table import AttributeTable, SpatialTable
from spatab.table.values import AttributeType

__all__ = ['bind_rows', 'left_join']

logger = logging.getLogger(__name__)


def _merge_dtype(name: str, a: AttributeType, b: AttributeType) -> AttributeType:
    if a is b:
        return a
    if a.is_numeric and b.is_numeric:
        return AttributeType.FLOAT
    raise TypeMismatch(
        f"Column '{name}' is {a.value} in one table and {b.value} in another", column=name
    )


def bind_rows(*tables: SpatialTable) -> SpatialTable:
    """Stack tables with the same columns (matched by name) into one.

    Column order follows the first table. Integer and float versions of a
    column merge to float. The geometry kind is the narrowest kind covering
    every input.

    Raises
    ------
    CRSMismatch
        If the tables' CRS identifiers differ.
    SchemaError
        If the column sets differ.
    """
    if not tables:
        raise ValueError("bind_rows needs at least one table")
    first = tables[0]
    names = first.schema.names

    for other in tables[1:]:
        if other.crs != first.crs:
            raise CRSMismatch(first.crs, other.crs)
        if set(other.schema.names) != set(names):
            raise SchemaError(
                f"Cannot bind tables with columns {list(names)} and {list(other.schema.names)}"
            )

    dtypes = list(first.schema.dtypes)
    for other in tables[1:]:
        dtypes = [_merge_dtype(n, d, other.schema.dtype(n)) for n, d in zip(names, dtypes)]
    schema = Schema(zip(names, dtypes))

    kind = common_kind(t.kind for t in tables)
    rows = []
    geoms = []
    for t in tables:
        idx = [t.schema.index(n) for n in names]
        for r in t.rows:
            rows.append(tuple(
                float(r[i]) if d is AttributeType.FLOAT and r[i] is not None else r[i]
                for i, d in zip(idx, dtypes)
            ))
        geoms.extend(promote(g, kind) for g in t.geometries)

    logger.debug("bind_rows: %d tables -> %d rows", len(tables), len(rows))
    return first._derive(schema=schema, rows=tuple(rows), geometries=tuple(geoms), kind=kind)


def left_join(table: SpatialTable, other: Union[AttributeTable, SpatialTable],
              by: Union[str, Sequence[str]], suffix: str = "_y") -> SpatialTable:
    """Attach the attributes of ``other`` to matching rows of ``table``.

    Every left row is kept, in order. A left row matching several right rows
    is repeated once per match (geometry replicated); an unmatched row gets
    missing values. Missing keys match missing keys. Right-hand column names
    that collide with left ones get ``suffix``.

    Raises
    ------
    CRSMismatch
        If ``other`` is spatial with a different CRS. Its geometry is ignored.
    UnknownColumn
        If a key is absent from either table.
    TypeMismatch
        If key column types are incompatible.
    """
    if isinstance(other, SpatialTable):
        if other.crs != table.crs:
            raise CRSMismatch(table.crs, other.crs)
        other = other.drop_geometry()

    keys = [by] if isinstance(by, str) else list(by)
    left_idx = [table.schema.index(k) for k in keys]
    right_idx = [other.schema.index(k) for k in keys]
    for k in keys:
        _merge_dtype(k, table.schema.dtype(k), other.schema.dtype(k))

    carry = [c for c in other.schema if c.name not in keys]
    left_names = set(table.schema.names)
    added = [
        (c.name + suffix if c.name in left_names else c.name, c.dtype) for c in carry
    ]
    schema = Schema([*table.schema, *added])
    carry_idx = [other.schema.index(c.name) for c in carry]

    index = {}
    for r in other.rows:
        index.setdefault(tuple(r[i] for i in right_idx), []).append(
            tuple(r[i] for i in carry_idx)
        )

    empty = (None,) * len(carry)
    rows = []
    geoms = []
    for r, g in zip(table.rows, table.geometries):
        for extra in index.get(tuple(r[i] for i in left_idx), [empty]):
            rows.append(r + extra)
            geoms.append(g)

    logger.debug("left_join on %s: %d -> %d rows", keys, len(table), len(rows))
    return table._derive(schema=schema, rows=tuple(rows), geometries=tuple(geoms))
