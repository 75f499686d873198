"""Tests for attribute value types and coercion."""

import math

import numpy as np
import pytest

from spatab.contracts import TypeMismatch
from spatab.table.values import (
    AttributeType,
    coerce_value,
    infer_column_type,
    infer_type,
    is_missing,
    normalize_value,
)

pytestmark = pytest.mark.unit


def test_missing_values():
    assert is_missing(None)
    assert is_missing(math.nan)
    assert not is_missing(0)
    assert not is_missing("")


def test_numpy_scalars_normalized():
    assert normalize_value(np.int64(3)) == 3
    assert type(normalize_value(np.int64(3))) is int
    assert normalize_value(np.float64("nan")) is None
    assert type(normalize_value(np.bool_(True))) is bool


@pytest.mark.parametrize("value, expected", [
    (True, AttributeType.BOOLEAN),
    (1, AttributeType.INTEGER),
    (1.5, AttributeType.FLOAT),
    ("x", AttributeType.TEXT),
    (None, None),
])
def test_infer_type(value, expected):
    assert infer_type(value) is expected


def test_unsupported_value_type():
    with pytest.raises(TypeMismatch):
        infer_type(b"bytes")


class TestInferColumnType:

    def test_int_and_float_promote(self):
        assert infer_column_type([1, 2.5, None]) is AttributeType.FLOAT

    def test_all_missing_takes_default(self):
        assert infer_column_type([None, None]) is AttributeType.FLOAT
        assert infer_column_type([], default=AttributeType.TEXT) is AttributeType.TEXT

    def test_mixed_text_and_number_rejected(self):
        with pytest.raises(TypeMismatch) as exc:
            infer_column_type([1, "a"], "code")
        assert exc.value.column == "code"
        assert exc.value.row == 1

    def test_bool_is_not_an_integer(self):
        with pytest.raises(TypeMismatch):
            infer_column_type([True, 2])


class TestCoerceValue:

    def test_int_widened_in_float_column(self):
        value = coerce_value(3, AttributeType.FLOAT)
        assert value == 3.0 and isinstance(value, float)

    def test_integral_float_in_integer_column(self):
        value = coerce_value(3.0, AttributeType.INTEGER)
        assert value == 3 and isinstance(value, int)

    def test_fractional_float_in_integer_column(self):
        with pytest.raises(TypeMismatch):
            coerce_value(3.5, AttributeType.INTEGER, "n", 2)

    def test_missing_fits_any_type(self):
        for dtype in AttributeType:
            assert coerce_value(None, dtype) is None

    def test_text_in_numeric_column(self):
        with pytest.raises(TypeMismatch, match="expects float"):
            coerce_value("1.5", AttributeType.FLOAT, "rate")
