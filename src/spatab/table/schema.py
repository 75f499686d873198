"""Column schema: ordered, uniquely named, typed columns."""

from typing import Iterable, Iterator, Mapping, NamedTuple, Sequence, Tuple, Union

from spatab.contracts.failure import DuplicateColumn, SchemaError, UnknownColumn
from spatab.table.values import AttributeType

__all__ = ['GEOMETRY_FIELD', 'Column', 'Schema']

# Reserved logical name of the table-level geometry field
GEOMETRY_FIELD = "geometry"


class Column(NamedTuple):
    name: str
    dtype: AttributeType


ColumnLike = Union[Column, Tuple[str, Union[AttributeType, str]]]


class Schema:
    """Immutable ordered sequence of (name, type) columns.

    The geometry field is never part of a schema; ``GEOMETRY_FIELD`` is
    rejected as a column name.
    """

    __slots__ = ("_columns", "_index")

    def __init__(self, columns: Iterable[ColumnLike] = ()):
        cols = []
        index = {}
        for item in columns:
            name, dtype = item
            if not isinstance(name, str) or not name:
                raise SchemaError(f"Column names must be non-empty strings, got {name!r}")
            if name == GEOMETRY_FIELD:
                raise SchemaError(
                    f"'{GEOMETRY_FIELD}' is reserved for the table geometry", column=name
                )
            if name in index:
                raise DuplicateColumn(name)
            index[name] = len(cols)
            cols.append(Column(name, AttributeType(dtype)))
        self._columns = tuple(cols)
        self._index = index

    # -- container protocol -------------------------------------------------

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __contains__(self, name) -> bool:
        return name in self._index

    def __eq__(self, other) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self._columns == other._columns

    def __hash__(self) -> int:
        return hash(self._columns)

    def __repr__(self) -> str:
        inner = ", ".join(f"{c.name}: {c.dtype.value}" for c in self._columns)
        return f"Schema({inner})"

    # -- lookups ------------------------------------------------------------

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self._columns)

    @property
    def dtypes(self) -> Tuple[AttributeType, ...]:
        return tuple(c.dtype for c in self._columns)

    def index(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise UnknownColumn(name, self.names) from None

    def dtype(self, name: str) -> AttributeType:
        return self._columns[self.index(name)].dtype

    def require(self, names: Iterable[str]) -> None:
        """Raise UnknownColumn for the first name not in the schema."""
        for name in names:
            self.index(name)

    # -- derivations --------------------------------------------------------

    def select(self, names: Sequence[str]) -> "Schema":
        seen = set()
        for name in names:
            if name in seen:
                raise DuplicateColumn(name)
            seen.add(name)
        return Schema(self._columns[self.index(n)] for n in names)

    def drop(self, names: Iterable[str]) -> "Schema":
        names = set(names)
        self.require(names)
        return Schema(c for c in self._columns if c.name not in names)

    def with_column(self, name: str, dtype: AttributeType) -> "Schema":
        """Overwrite a column's type in place, or append a new column."""
        if name in self._index:
            return Schema(Column(c.name, dtype) if c.name == name else c for c in self._columns)
        return Schema([*self._columns, Column(name, dtype)])

    def rename(self, mapping: Mapping[str, str]) -> "Schema":
        self.require(mapping)
        return Schema(Column(mapping.get(c.name, c.name), c.dtype) for c in self._columns)
