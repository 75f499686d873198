"""Tests for pivot_longer and pivot_wider."""

import pytest

from spatab.contracts import DuplicateColumn, NonUniquePivot, SchemaError, TypeMismatch
from spatab.geometry import point
from spatab.ops import pivot_longer, pivot_wider, rename
from spatab.ops.reshape import split_name
from spatab.table import AttributeType, SpatialTable
from tests.helpers.shapes import square

pytestmark = pytest.mark.unit


@pytest.fixture
def wide():
    return SpatialTable.from_columns(
        {"id": [1, 2], "rate_05": [10, 20], "rate_17": [5, None]},
        geometry=[square(0, 0), square(2, 0)],
        crs=3857,
    )


class TestSplitName:

    def test_drop_value_marker(self):
        assert split_name("rate_2005", "_", 0) == "2005"
        assert split_name("pop_total_2017", "_", 1) == "pop_2017"
        assert split_name("pop_total_2017", "_", -1) == "pop_total"

    def test_no_split_keeps_name(self):
        assert split_name("rate_2005", None, None) == "rate_2005"

    def test_fragment_out_of_range(self):
        with pytest.raises(SchemaError, match="does not exist"):
            split_name("rate_2005", "_", 2)

    def test_no_separator(self):
        with pytest.raises(SchemaError):
            split_name("rate", "_", 0)


class TestPivotLonger:

    def test_rows_per_value_column(self, wide):
        long = pivot_longer(wide, ["rate_05", "rate_17"], "year", "rate", "_", 0)

        assert long.columns == ("id", "year", "rate")
        assert long.rows == ((1, "05", 10), (1, "17", 5), (2, "05", 20), (2, "17", None))
        assert long.schema.dtype("year") is AttributeType.TEXT
        assert long.schema.dtype("rate") is AttributeType.INTEGER

    def test_geometry_replicated(self, wide):
        long = pivot_longer(wide, ["rate_05", "rate_17"])
        assert long.geometries == (wide.geometries[0],) * 2 + (wide.geometries[1],) * 2
        assert long.column("name") == ("rate_05", "rate_17") * 2

    def test_int_and_float_values_promote(self):
        t = SpatialTable.from_columns({"a": [1], "b": [0.5]}, geometry=[point(0, 0)])
        long = pivot_longer(t, ["a", "b"])
        assert long.schema.dtype("value") is AttributeType.FLOAT
        assert long.column("value") == (1.0, 0.5)

    def test_incompatible_value_types(self):
        t = SpatialTable.from_columns({"a": [1], "b": ["x"]}, geometry=[point(0, 0)])
        with pytest.raises(TypeMismatch):
            pivot_longer(t, ["a", "b"])

    def test_colliding_keys(self):
        t = SpatialTable.from_columns({"a_x": [1], "b_x": [2]}, geometry=[point(0, 0)])
        with pytest.raises(SchemaError, match="not unique"):
            pivot_longer(t, ["a_x", "b_x"], name_split="_", drop_fragment=0)

    def test_new_column_collides_with_kept(self, wide):
        with pytest.raises(DuplicateColumn):
            pivot_longer(wide, ["rate_05", "rate_17"], name_column="id")


class TestPivotWider:

    def test_longer_then_wider_reconstructs(self, wide):
        long = pivot_longer(wide, ["rate_05", "rate_17"], "year", "rate", "_", 0)
        back = pivot_wider(long, "year", "rate")

        assert back == rename(wide, {"rate_05": "05", "rate_17": "17"})

    def test_rows_differing_only_in_geometry_stay_apart(self):
        long = SpatialTable.from_columns(
            {"k": ["x", "x"], "v": [1, 2]}, geometry=[point(0, 0), point(1, 1)]
        )
        out = pivot_wider(long, "k", "v")
        assert len(out) == 2
        assert out.column("x") == (1, 2)

    def test_absent_cells_are_missing(self):
        long = SpatialTable.from_columns(
            {"id": [1, 1, 2], "k": ["a", "b", "a"], "v": [1.0, 2.0, 3.0]},
            geometry=[point(0, 0), point(0, 0), point(1, 1)],
        )
        out = pivot_wider(long, "k", "v")
        assert out.columns == ("id", "a", "b")
        assert out.rows == ((1, 1.0, 2.0), (2, 3.0, None))

    def test_duplicate_cell(self):
        long = SpatialTable.from_columns(
            {"id": [1, 1], "k": ["a", "a"], "v": [1, 2]},
            geometry=[point(0, 0), point(0, 0)],
        )
        with pytest.raises(NonUniquePivot) as exc:
            pivot_wider(long, "k", "v")
        assert exc.value.name == "a"
        assert exc.value.row == 1

    def test_names_are_stringified(self):
        long = SpatialTable.from_columns(
            {"id": [1, 1], "year": [2005, None], "v": [1, 2]},
            geometry=[point(0, 0), point(0, 0)],
        )
        assert pivot_wider(long, "year", "v").columns == ("id", "2005", "NA")

    def test_new_name_collides(self):
        long = SpatialTable.from_columns(
            {"id": [1], "k": ["id"], "v": [1]}, geometry=[point(0, 0)]
        )
        with pytest.raises(DuplicateColumn):
            pivot_wider(long, "k", "v")
