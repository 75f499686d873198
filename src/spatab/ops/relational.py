"""Row/column operators: select, select_drop, rename, mutate, filter_rows, arrange, head.

Every operator is pure: it takes a SpatialTable, leaves it untouched and
returns a new one. The geometry field is table-level, so column projection
can never drop it.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from spatab.contracts.failure import SchemaError, TypeMismatch, UnknownColumn
from spatab.ops.expressions import ExprLike, evaluate, referenced_columns
from spatab.table.row import Row
from spatab.table.schema import GEOMETRY_FIELD
from spatab.table.table import SpatialTable
from spatab.table.values import AttributeType, coerce_value, infer_column_type

__all__ = [
    'select', 'select_drop', 'rename', 'mutate', 'filter_rows', 'arrange', 'head',
]

logger = logging.getLogger(__name__)

Names = Union[str, Sequence[str]]


def _as_names(names: Names) -> List[str]:
    if isinstance(names, str):
        return [names]
    return list(names)


def select(table: SpatialTable, names: Names) -> SpatialTable:
    """Keep only the listed attribute columns, in the given order.

    The geometry is always retained; listing ``"geometry"`` is accepted and
    has no effect on the attribute list.

    Raises
    ------
    UnknownColumn
        If a name is not in the schema.
    DuplicateColumn
        If a name is listed twice.
    """
    names = [n for n in _as_names(names) if n != GEOMETRY_FIELD]
    schema = table.schema.select(names)
    indices = [table.schema.index(n) for n in names]
    rows = tuple(tuple(r[i] for i in indices) for r in table.rows)
    logger.debug("select: %d -> %d columns", len(table.schema), len(schema))
    return table._derive(schema=schema, rows=rows)


def select_drop(table: SpatialTable, names: Names) -> SpatialTable:
    """Keep every attribute column except the listed ones.

    ``"geometry"`` cannot be dropped this way; use ``drop_geometry()``.
    """
    names = [n for n in _as_names(names) if n != GEOMETRY_FIELD]
    keep = [n for n in table.schema.names if n not in set(names)]
    table.schema.require(names)
    return select(table, keep)


def rename(table: SpatialTable, mapping: Mapping[str, str]) -> SpatialTable:
    """Rename attribute columns; positions and values are unchanged."""
    if GEOMETRY_FIELD in mapping:
        raise SchemaError(f"'{GEOMETRY_FIELD}' cannot be renamed", column=GEOMETRY_FIELD)
    return table._derive(schema=table.schema.rename(mapping))


def _assignments(assignments, named) -> List[Tuple[str, ExprLike]]:
    items = []
    if assignments is not None:
        if isinstance(assignments, Mapping):
            items.extend(assignments.items())
        else:
            items.extend(assignments)
    items.extend(named.items())
    return items


def mutate(table: SpatialTable,
           assignments: Optional[Union[Mapping[str, ExprLike], Sequence[Tuple[str, ExprLike]]]] = None,
           **named: ExprLike) -> SpatialTable:
    """Add or overwrite columns computed row by row.

    Assignments run in order and each one sees the columns produced by the
    ones before it. An existing column keeps its position; a new column is
    appended. Division by zero yields missing.

    Parameters
    ----------
    table : SpatialTable
    assignments : mapping or sequence of (name, expression), optional
        Expressions built from ``col()``/``lit()``, callables taking a Row,
        or constants.
    **named
        Further assignments, applied after ``assignments``.

    Raises
    ------
    TypeMismatch
        If an expression meets incompatible value types (carries column and row).
    UnknownColumn
        If an expression references a column that does not exist at that point.

    Examples
    --------
    >>> out = mutate(t, [("delta_abs", col("rate05") - col("rate17"))])
    """
    schema = table.schema
    rows = table.rows
    geoms = table.geometries

    for name, expr in _assignments(assignments, named):
        if name == GEOMETRY_FIELD:
            raise SchemaError(
                f"'{GEOMETRY_FIELD}' is not an attribute column; it cannot be mutated",
                column=name,
            )
        for ref in referenced_columns(expr):
            if ref != GEOMETRY_FIELD and ref not in schema:
                raise UnknownColumn(ref, schema.names)

        values = []
        for i, (r, g) in enumerate(zip(rows, geoms)):
            try:
                values.append(evaluate(expr, Row(schema, r, g, i)))
            except TypeMismatch as e:
                raise TypeMismatch(f"mutate '{name}', row {i}: {e}", column=name, row=i) from e

        previous = schema.dtype(name) if name in schema else None
        dtype = infer_column_type(values, name, default=previous or AttributeType.FLOAT)
        values = [coerce_value(v, dtype, name, i) for i, v in enumerate(values)]

        if name in schema:
            idx = schema.index(name)
            rows = tuple(r[:idx] + (v,) + r[idx + 1:] for r, v in zip(rows, values))
        else:
            rows = tuple(r + (v,) for r, v in zip(rows, values))
        schema = schema.with_column(name, dtype)
        logger.debug("mutate: column '%s' -> %s", name, dtype.value)

    return table._derive(schema=schema, rows=rows)


def filter_rows(table: SpatialTable, predicate: ExprLike) -> SpatialTable:
    """Keep rows whose predicate is true; missing counts as false.

    Survivors keep their relative order.

    Raises
    ------
    TypeMismatch
        If the predicate yields a non-boolean value for some row.
    """
    for ref in referenced_columns(predicate):
        if ref != GEOMETRY_FIELD and ref not in table.schema:
            raise UnknownColumn(ref, table.schema.names)

    keep = []
    for row in table.iter_rows():
        try:
            result = evaluate(predicate, row)
        except TypeMismatch as e:
            raise TypeMismatch(f"filter, row {row.index}: {e}", row=row.index) from e
        if result is None:
            continue
        if not isinstance(result, bool):
            raise TypeMismatch(
                f"Predicate returned {type(result).__name__} for row {row.index}, expected bool",
                row=row.index,
            )
        if result:
            keep.append(row.index)

    logger.debug("filter: %d -> %d rows", len(table), len(keep))
    return _take(table, keep)


def _take(table: SpatialTable, indices: Sequence[int]) -> SpatialTable:
    rows = table.rows
    geoms = table.geometries
    return table._derive(
        rows=tuple(rows[i] for i in indices),
        geometries=tuple(geoms[i] for i in indices),
    )


def arrange(table: SpatialTable, key: Names, descending: Union[bool, Sequence[bool]] = False) -> SpatialTable:
    """Stable sort by one or more columns; missing values always sort last.

    Parameters
    ----------
    key : str or sequence of str
        Sort column(s), most significant first.
    descending : bool or sequence of bool
        Direction, for all keys or per key.

    Raises
    ------
    UnknownColumn
        If a key column does not exist.
    """
    keys = _as_names(key)
    if isinstance(descending, bool):
        directions = [descending] * len(keys)
    else:
        directions = list(descending)
        if len(directions) != len(keys):
            raise SchemaError(f"{len(directions)} directions for {len(keys)} sort keys")
    positions = [table.schema.index(k) for k in keys]

    order = list(range(len(table)))
    rows = table.rows
    # Successive stable passes from the least significant key
    for pos, desc, name in reversed(list(zip(positions, directions, keys))):
        present = [i for i in order if rows[i][pos] is not None]
        missing = [i for i in order if rows[i][pos] is None]
        try:
            present = sorted(present, key=lambda i: rows[i][pos], reverse=desc)
        except TypeError as e:
            raise TypeMismatch(f"Cannot sort column '{name}': {e}", column=name) from e
        order = present + missing

    return _take(table, order)


def head(table: SpatialTable, n: int = 5) -> SpatialTable:
    """First ``n`` rows."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return _take(table, range(min(n, len(table))))
