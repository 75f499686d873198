"""Attribute value types.

An attribute value is an int, float, str, bool or ``None`` (missing). Values
coming from numpy or pandas are normalized to those Python types on ingest,
and NaN floats become missing.
"""

import math
from enum import Enum
from typing import Any, Iterable, Optional

import numpy as np

from spatab.contracts.failure import TypeMismatch

__all__ = [
    'AttributeType', 'MISSING', 'is_missing', 'normalize_value',
    'infer_type', 'infer_column_type', 'coerce_value',
]

MISSING = None


class AttributeType(str, Enum):
    """Declared type of a schema column."""
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    BOOLEAN = "boolean"

    @property
    def is_numeric(self) -> bool:
        return self in (AttributeType.INTEGER, AttributeType.FLOAT)


def is_missing(value: Any) -> bool:
    """True for ``None`` and NaN floats."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def normalize_value(value: Any) -> Any:
    """Convert numpy scalars to Python scalars and NaN to missing."""
    if isinstance(value, np.generic):
        value = value.item()
    if is_missing(value):
        return MISSING
    return value


def infer_type(value: Any) -> Optional[AttributeType]:
    """Attribute type of a single normalized value (None for missing).

    Raises
    ------
    TypeMismatch
        For values outside the attribute value variant set.
    """
    value = normalize_value(value)
    if value is None:
        return None
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return AttributeType.BOOLEAN
    if isinstance(value, int):
        return AttributeType.INTEGER
    if isinstance(value, float):
        return AttributeType.FLOAT
    if isinstance(value, str):
        return AttributeType.TEXT
    raise TypeMismatch(f"Unsupported attribute value {value!r} ({type(value).__name__})")


def infer_column_type(values: Iterable[Any], column: Optional[str] = None,
                      default: AttributeType = AttributeType.FLOAT) -> AttributeType:
    """Narrowest declared type holding every value of a column.

    Integers mixed with floats promote to FLOAT. An all-missing column takes
    ``default``. Any other mix is a TypeMismatch.
    """
    seen = set()
    for i, value in enumerate(values):
        kind = infer_type(value)
        if kind is not None:
            seen.add(kind)
            if len(seen) > 1 and seen != {AttributeType.INTEGER, AttributeType.FLOAT}:
                raise TypeMismatch(
                    f"Column '{column}' mixes {', '.join(sorted(k.value for k in seen))} values",
                    column=column,
                    row=i,
                )
    if not seen:
        return default
    if len(seen) == 2:
        return AttributeType.FLOAT
    return seen.pop()


def coerce_value(value: Any, dtype: AttributeType, column: Optional[str] = None,
                 row: Optional[int] = None) -> Any:
    """Check a value against a declared column type.

    Integers are widened to float in FLOAT columns; integral floats are
    accepted in INTEGER columns. Everything else must match exactly.
    """
    value = normalize_value(value)
    if value is None:
        return MISSING
    kind = infer_type(value)
    if kind is dtype:
        return value
    if dtype is AttributeType.FLOAT and kind is AttributeType.INTEGER:
        return float(value)
    if dtype is AttributeType.INTEGER and kind is AttributeType.FLOAT and value.is_integer():
        return int(value)
    raise TypeMismatch(
        f"Column '{column}' expects {dtype.value}, got {kind.value} value {value!r}",
        column=column,
        row=row,
    )
