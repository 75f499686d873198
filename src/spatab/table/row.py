"""Read-only row view handed to expressions and predicates."""

from collections.abc import Mapping
from typing import Any, Iterator, Optional, Tuple

from spatab.contracts.failure import UnknownColumn
from spatab.table.schema import GEOMETRY_FIELD, Schema

__all__ = ['Row']


class Row(Mapping):
    """Mapping of column name to value for one table row.

    ``row["geometry"]`` (and ``row.geometry``) gives the row's geometry;
    iteration and ``len()`` cover attribute columns only.
    """

    __slots__ = ("_schema", "_values", "_geometry", "_index")

    def __init__(self, schema: Schema, values: Tuple[Any, ...], geometry=None,
                 index: Optional[int] = None):
        self._schema = schema
        self._values = values
        self._geometry = geometry
        self._index = index

    @property
    def geometry(self):
        return self._geometry

    @property
    def index(self) -> Optional[int]:
        """Position of the row in its table."""
        return self._index

    @property
    def attributes(self) -> Tuple[Any, ...]:
        """Attribute values in schema order."""
        return self._values

    def __getitem__(self, name: str) -> Any:
        if name == GEOMETRY_FIELD:
            return self._geometry
        if name not in self._schema:
            raise UnknownColumn(name, self._schema.names)
        return self._values[self._schema.index(name)]

    def get(self, name: str, default: Any = None) -> Any:
        if name != GEOMETRY_FIELD and name not in self._schema:
            return default
        return self[name]

    def __contains__(self, name) -> bool:
        return name in self._schema

    def __iter__(self) -> Iterator[str]:
        return iter(self._schema.names)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v!r}" for k, v in zip(self._schema.names, self._values))
        return f"Row({body})"
