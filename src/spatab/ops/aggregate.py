"""Group-by, summarise and dissolve.

``summarise`` returns exactly one row per group: the key values, one value
per aggregate, and the union of the members' geometries. Aggregates skip
missing values; a group with nothing to aggregate yields missing (count
yields 0).
"""

import logging
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from spatab.contracts.failure import TypeMismatch
from spatab.geometry.kinds import common_kind, geometry_kind
from spatab.geometry.model import dissolve as dissolve_geometries
from spatab.geometry.model import promote
from spatab.table.schema import Schema
from spatab.table.table import SpatialTable
from spatab.table.values import AttributeType

__all__ = ['Aggregate', 'GroupedTable', 'group_by', 'summarise', 'dissolve']

logger = logging.getLogger(__name__)


class Aggregate:
    """One aggregate function applied to one column.

    Build with the class methods::

        Aggregate.count()          # rows in the group
        Aggregate.count("x")       # non-missing values of x
        Aggregate.mean("rate17")
        Aggregate.sum("pop"), Aggregate.min("x"), Aggregate.max("x")
    """

    FUNCTIONS = ("count", "mean", "sum", "min", "max")

    def __init__(self, function: str, column: Optional[str] = None):
        if function not in self.FUNCTIONS:
            raise ValueError(f"Unknown aggregate '{function}', expected one of {self.FUNCTIONS}")
        if column is None and function != "count":
            raise ValueError(f"Aggregate '{function}' needs a column")
        self.function = function
        self.column = column

    @classmethod
    def count(cls, column: Optional[str] = None) -> "Aggregate":
        return cls("count", column)

    @classmethod
    def mean(cls, column: str) -> "Aggregate":
        return cls("mean", column)

    @classmethod
    def sum(cls, column: str) -> "Aggregate":
        return cls("sum", column)

    @classmethod
    def min(cls, column: str) -> "Aggregate":
        return cls("min", column)

    @classmethod
    def max(cls, column: str) -> "Aggregate":
        return cls("max", column)

    def __repr__(self) -> str:
        return f"Aggregate.{self.function}({self.column!r})"

    def result_type(self, schema: Schema) -> AttributeType:
        """Output column type; checks the input column exists and fits."""
        if self.function == "count":
            if self.column is not None:
                schema.index(self.column)
            return AttributeType.INTEGER
        dtype = schema.dtype(self.column)
        if self.function in ("mean", "sum") and not dtype.is_numeric:
            raise TypeMismatch(
                f"Aggregate '{self.function}' needs a numeric column, "
                f"'{self.column}' is {dtype.value}",
                column=self.column,
            )
        if self.function == "mean":
            return AttributeType.FLOAT
        return dtype

    def compute(self, values: List[Any], n_rows: int, dtype: Optional[AttributeType]) -> Any:
        if self.function == "count":
            return n_rows if self.column is None else len(values)
        if not values:
            return None
        if self.function == "mean":
            return float(np.mean(np.asarray(values, dtype=float)))
        if self.function == "sum":
            if dtype is AttributeType.INTEGER:
                # exact for unbounded Python ints
                return sum(values)
            return float(np.sum(np.asarray(values, dtype=float)))
        if self.function == "min":
            return min(values)
        return max(values)


AggregateLike = Union[Aggregate, Tuple[str, Optional[str]]]


def _as_aggregate(spec: AggregateLike) -> Aggregate:
    if isinstance(spec, Aggregate):
        return spec
    function, column = spec
    return Aggregate(function, column)


class GroupedTable:
    """A table partitioned by equal key values, groups in first-appearance order.

    Missing key values form their own group.
    """

    def __init__(self, table: SpatialTable, keys: Sequence[str]):
        self.table = table
        self.keys = tuple(keys)
        positions = [table.schema.index(k) for k in self.keys]

        groups = {}
        for i, r in enumerate(table.rows):
            groups.setdefault(tuple(r[p] for p in positions), []).append(i)
        self._groups = tuple((k, tuple(v)) for k, v in groups.items())

    @property
    def groups(self) -> Tuple[Tuple[tuple, Tuple[int, ...]], ...]:
        """(key values, member row indices) per group."""
        return self._groups

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[Tuple[tuple, SpatialTable]]:
        """Yield (key values, member sub-table) per group."""
        rows = self.table.rows
        geoms = self.table.geometries
        for key, members in self._groups:
            yield key, self.table._derive(
                rows=tuple(rows[i] for i in members),
                geometries=tuple(geoms[i] for i in members),
            )

    def __repr__(self) -> str:
        return f"<GroupedTable keys={list(self.keys)} groups={len(self)}>"


def group_by(table: SpatialTable, keys: Union[str, Sequence[str]]) -> GroupedTable:
    """Partition rows by the values of ``keys``.

    Raises
    ------
    UnknownColumn
        If a key column does not exist.
    """
    keys = [keys] if isinstance(keys, str) else list(keys)
    grouped = GroupedTable(table, keys)
    logger.debug("group_by %s: %d rows -> %d groups", keys, len(table), len(grouped))
    return grouped


def summarise(grouped: Union[GroupedTable, SpatialTable],
              aggregations: Optional[Union[Mapping[str, AggregateLike],
                                           Sequence[Tuple[str, AggregateLike]]]] = None,
              **named: AggregateLike) -> SpatialTable:
    """One output row per group: keys, aggregates and the dissolved geometry.

    An ungrouped table is treated as a single group (one output row, even
    when the table is empty).

    Parameters
    ----------
    grouped : GroupedTable or SpatialTable
    aggregations : mapping or sequence of (name, aggregate), optional
        ``Aggregate`` objects or ``(function, column)`` tuples.
    **named
        Further aggregates.

    Returns
    -------
    SpatialTable
        Schema is key columns followed by aggregate columns. The geometry
        kind is promoted to its Multi kind if any group's union has several
        parts.

    Raises
    ------
    TypeMismatch
        mean/sum over a non-numeric column.
    UnknownColumn
        Aggregate over a missing column.

    Examples
    --------
    >>> out = summarise(group_by(t, "group"), [("avg17", Aggregate.mean("rate17"))])
    """
    if isinstance(grouped, SpatialTable):
        table = grouped
        keys: Tuple[str, ...] = ()
        groups = (((), tuple(range(len(table)))),)
    else:
        table = grouped.table
        keys = grouped.keys
        groups = grouped.groups

    items = []
    if aggregations is not None:
        items.extend(aggregations.items() if isinstance(aggregations, Mapping) else aggregations)
    items.extend(named.items())
    aggs = [(name, _as_aggregate(spec)) for name, spec in items]

    schema_in = table.schema
    out_schema = Schema(
        [(k, schema_in.dtype(k)) for k in keys]
        + [(name, agg.result_type(schema_in)) for name, agg in aggs]
    )
    columns = {
        name: (schema_in.index(agg.column) if agg.column is not None else None)
        for name, agg in aggs
    }

    rows = []
    geoms = []
    for key, members in groups:
        out = list(key)
        for name, agg in aggs:
            pos = columns[name]
            values = [] if pos is None else [
                table.rows[i][pos] for i in members if table.rows[i][pos] is not None
            ]
            dtype = None if agg.column is None else schema_in.dtype(agg.column)
            out.append(agg.compute(values, len(members), dtype))
        rows.append(tuple(out))
        geoms.append(dissolve_geometries((table.geometries[i] for i in members), table.kind))

    kind = common_kind(geometry_kind(g) for g in geoms) or table.kind
    geoms = [promote(g, kind) for g in geoms]
    logger.debug("summarise: %d groups, %d aggregates, kind=%s", len(rows), len(aggs), kind)
    return table._derive(schema=out_schema, rows=tuple(rows), geometries=tuple(geoms), kind=kind)


def dissolve(table: SpatialTable, by: Union[str, Sequence[str]],
             aggregations=None, **named) -> SpatialTable:
    """Shorthand for ``summarise(group_by(table, by), ...)``."""
    return summarise(group_by(table, by), aggregations, **named)
