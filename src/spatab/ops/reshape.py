"""Wide/long reshaping that keeps every row tied to its geometry.

pivot_longer replicates each row's geometry onto all rows it emits.
pivot_wider groups on the remaining attributes AND on geometry identity,
so rows that differ only in geometry are never collapsed.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from spatab.contracts.failure import NonUniquePivot, SchemaError, TypeMismatch
from spatab.geometry.model import geometry_key
from spatab.table.schema import Schema
from spatab.table.table import SpatialTable
from spatab.table.values import AttributeType

__all__ = ['pivot_longer', 'pivot_wider', 'split_name']

logger = logging.getLogger(__name__)

# Column name used for a missing names_from value in pivot_wider
MISSING_NAME = "NA"


def split_name(name: str, name_split: Optional[str], drop_fragment: Optional[int]) -> str:
    """Derive a long-format key from a wide column name.

    The name is split on ``name_split``, fragment ``drop_fragment`` (the
    value marker) is removed and the rest is re-joined with ``name_split``.

    >>> split_name("rate_2005", "_", 0)
    '2005'
    >>> split_name("pop_total_2017", "_", 1)
    'pop_2017'
    """
    if name_split is None or drop_fragment is None:
        return name
    parts = name.split(name_split)
    if not -len(parts) <= drop_fragment < len(parts):
        raise SchemaError(
            f"Column '{name}' splits into {len(parts)} fragments on {name_split!r}; "
            f"fragment {drop_fragment} does not exist",
            column=name,
        )
    if len(parts) == 1:
        raise SchemaError(
            f"Column '{name}' has no {name_split!r} separator; dropping the only fragment "
            f"would leave an empty key",
            column=name,
        )
    del parts[drop_fragment]
    return name_split.join(parts)


def _value_dtype(table: SpatialTable, columns: Sequence[str]) -> AttributeType:
    dtypes = {table.schema.dtype(c) for c in columns}
    if len(dtypes) == 1:
        return dtypes.pop()
    if all(d.is_numeric for d in dtypes):
        return AttributeType.FLOAT
    raise TypeMismatch(
        f"Cannot pivot columns of different types together: "
        f"{', '.join(f'{c}={table.schema.dtype(c).value}' for c in columns)}"
    )


def pivot_longer(table: SpatialTable, value_columns: Sequence[str],
                 name_column: str = "name", value_column: str = "value",
                 name_split: Optional[str] = None,
                 drop_fragment: Optional[int] = None) -> SpatialTable:
    """Turn value columns into (key, value) rows.

    For each input row and each value column, one output row carries the
    row's other attributes, its geometry (replicated), the key derived from
    the column name in ``name_column`` and the cell value in ``value_column``.

    Parameters
    ----------
    value_columns : sequence of str
        Columns to stack, in emission order.
    name_column, value_column : str
        Names of the new key and value columns.
    name_split : str, optional
        Separator for splitting column names into fragments.
    drop_fragment : int, optional
        Index of the fragment to discard (the value marker). The caller
        designates it; it is never guessed.

    Raises
    ------
    UnknownColumn
        If a value column does not exist.
    SchemaError
        If derived keys collide, or a fragment index is out of range.
    TypeMismatch
        If value columns have incompatible types.

    Examples
    --------
    >>> long = pivot_longer(t, ["rate_05", "rate_17"], "year", "rate", "_", 0)
    """
    value_columns = list(value_columns)
    table.schema.require(value_columns)
    if len(set(value_columns)) != len(value_columns):
        raise SchemaError(f"Value columns listed more than once: {value_columns}")

    keys = [split_name(c, name_split, drop_fragment) for c in value_columns]
    if len(set(keys)) != len(keys):
        raise SchemaError(f"Derived keys are not unique: {dict(zip(value_columns, keys))}")

    kept = [c for c in table.schema if c.name not in set(value_columns)]
    dtype = _value_dtype(table, value_columns) if value_columns else AttributeType.FLOAT
    schema = Schema([*kept, (name_column, AttributeType.TEXT), (value_column, dtype)])

    kept_idx = [table.schema.index(c.name) for c in kept]
    value_idx = [table.schema.index(c) for c in value_columns]
    as_float = dtype is AttributeType.FLOAT

    rows = []
    geoms = []
    for r, g in zip(table.rows, table.geometries):
        base = tuple(r[i] for i in kept_idx)
        for key, i in zip(keys, value_idx):
            value = r[i]
            if as_float and value is not None:
                value = float(value)
            rows.append(base + (key, value))
            geoms.append(g)

    logger.debug("pivot_longer: %d rows x %d columns -> %d rows",
                 len(table), len(value_columns), len(rows))
    return table._derive(schema=schema, rows=tuple(rows), geometries=tuple(geoms))


def pivot_wider(table: SpatialTable, names_from: str, values_from: str) -> SpatialTable:
    """Spread (key, value) rows back into one column per distinct key.

    Rows are grouped by every attribute except ``names_from`` and
    ``values_from`` plus exact geometry identity. New columns appear in
    first-seen key order; absent cells are missing.

    Raises
    ------
    NonUniquePivot
        If two source rows map to the same (group, key) cell.
    DuplicateColumn
        If a new column name collides with a kept column.
    """
    name_pos = table.schema.index(names_from)
    value_pos = table.schema.index(values_from)
    if name_pos == value_pos:
        raise SchemaError("names_from and values_from must be different columns",
                          column=names_from)

    id_cols = [c for c in table.schema if c.name not in (names_from, values_from)]
    id_idx = [table.schema.index(c.name) for c in id_cols]

    new_names: List[str] = []
    groups: Dict[Tuple[Any, Any], int] = {}
    group_rows: List[tuple] = []
    group_geoms: List[Any] = []
    cells: Dict[Tuple[int, str], Any] = {}

    for i, (r, g) in enumerate(zip(table.rows, table.geometries)):
        key = (tuple(r[j] for j in id_idx), geometry_key(g))
        gid = groups.get(key)
        if gid is None:
            gid = groups[key] = len(group_rows)
            group_rows.append(key[0])
            group_geoms.append(g)

        raw_name = r[name_pos]
        name = MISSING_NAME if raw_name is None else str(raw_name)
        if name not in new_names:
            new_names.append(name)
        if (gid, name) in cells:
            raise NonUniquePivot(name, i)
        cells[(gid, name)] = r[value_pos]

    value_dtype = table.schema.dtype(values_from)
    schema = Schema([*id_cols, *((n, value_dtype) for n in new_names)])
    rows = tuple(
        base + tuple(cells.get((gid, n)) for n in new_names)
        for gid, base in enumerate(group_rows)
    )

    logger.debug("pivot_wider: %d rows -> %d rows, %d new columns",
                 len(table), len(rows), len(new_names))
    return table._derive(schema=schema, rows=rows, geometries=tuple(group_geoms))
