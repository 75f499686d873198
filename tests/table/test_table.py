"""Tests for SpatialTable and AttributeTable construction and access."""

import pytest
from shapely.geometry import Polygon

from spatab.contracts import (
    MalformedGeometry,
    SchemaError,
    TransformUndefined,
    TypeMismatch,
    UnknownCRS,
    UnknownColumn,
)
from spatab.geometry import GeometryKind, line_string, multi_point, point
from spatab.table import AttributeTable, AttributeType, Row, Schema, SpatialTable

pytestmark = pytest.mark.unit


class TestConstruction:

    def test_from_columns_infers_types_and_kind(self, rates_table):
        assert rates_table.columns == ("id", "group", "rate05", "rate17")
        assert rates_table.schema.dtype("group") is AttributeType.TEXT
        assert rates_table.kind is GeometryKind.POINT
        assert rates_table.crs == 4326
        assert len(rates_table) == rates_table.num_rows == 3

    def test_crs_is_normalized(self):
        t = SpatialTable.from_columns({"a": [1]}, geometry=[point(0, 0)], crs="EPSG:3857")
        assert t.crs == 3857

    def test_explicit_dtypes(self):
        t = SpatialTable.from_columns({"a": [None, None]}, geometry=[None, None],
                                      dtypes={"a": "text"})
        assert t.schema.dtype("a") is AttributeType.TEXT
        assert t.kind is None

    def test_multi_kind_promotes_simple_rows(self):
        t = SpatialTable.from_columns(
            {"a": [1, 2]}, geometry=[point(0, 0), multi_point([(1, 1), (2, 2)])]
        )
        assert t.kind is GeometryKind.MULTIPOINT
        assert [g.geom_type for g in t.geometries] == ["MultiPoint", "MultiPoint"]

    def test_mixed_kinds_are_generic(self):
        t = SpatialTable.from_columns(
            {"a": [1, 2]}, geometry=[point(0, 0), line_string([(0, 0), (1, 1)])]
        )
        assert t.kind is GeometryKind.GEOMETRY

    def test_declared_kind_must_fit(self):
        with pytest.raises(TypeMismatch) as exc:
            SpatialTable.from_columns({"a": [1]}, geometry=[line_string([(0, 0), (1, 1)])],
                                      kind="Point")
        assert exc.value.row == 0

    def test_self_intersecting_polygon_rejected(self):
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1), (0, 0)])
        with pytest.raises(MalformedGeometry) as exc:
            SpatialTable.from_columns({"g": ["A"]}, geometry=[bowtie])
        assert exc.value.row == 0

    def test_geometry_count_must_match(self):
        with pytest.raises(SchemaError):
            SpatialTable(Schema([("a", "integer")]), [(1,), (2,)], [point(0, 0)])

    def test_column_length_must_match(self):
        with pytest.raises(SchemaError, match="expected 2"):
            SpatialTable.from_columns({"a": [1]}, geometry=[point(0, 0), point(1, 1)])

    def test_value_checked_against_type(self):
        with pytest.raises(TypeMismatch):
            SpatialTable(Schema([("a", "integer")]), [("x",)], [None])

    def test_from_records(self):
        t = SpatialTable.from_records(
            [{"id": 1, "geometry": point(0, 0)}, {"id": 2, "note": "x", "geometry": None}],
            crs=4326,
        )
        assert t.columns == ("id", "note")
        assert t.column("note") == (None, "x")
        assert t.geometries[1] is None

    def test_empty_table(self):
        t = SpatialTable(Schema([("a", "float")]), [], [], crs=4326)
        assert len(t) == 0
        assert t.kind is None


class TestAccess:

    def test_column_and_geometry_column(self, rates_table):
        assert rates_table["rate05"] == (10, 20, 30)
        assert rates_table.column("geometry") == rates_table.geometries

    def test_unknown_column(self, rates_table):
        with pytest.raises(UnknownColumn):
            rates_table.column("rate99")

    def test_row_view(self, rates_table):
        row = rates_table.row(1)
        assert isinstance(row, Row)
        assert row["id"] == 2
        assert row["geometry"] == point(1, 1)
        assert row.index == 1
        assert dict(row) == {"id": 2, "group": "A", "rate05": 20, "rate17": 40}
        assert row.get("missing", "fallback") == "fallback"
        assert "group" in row and "nope" not in row

    def test_records_include_geometry(self, rates_table):
        rec = rates_table.records()[2]
        assert rec["id"] == 3
        assert rec["geometry"].equals(point(2, 2))


class TestImmutability:

    def test_attributes_cannot_be_set(self, rates_table):
        with pytest.raises(AttributeError):
            rates_table.crs = 3857

    def test_rows_are_tuples(self, rates_table):
        assert isinstance(rates_table.rows, tuple)
        assert all(isinstance(r, tuple) for r in rates_table.rows)


class TestCrsOperations:

    def test_to_crs_keeps_rows_and_attributes(self, rates_table):
        moved = rates_table.to_crs(3857)

        assert moved.crs == 3857
        assert moved.rows == rates_table.rows
        assert moved.geometries[1].x == pytest.approx(111319.4908, rel=1e-9)
        assert abs(moved.geometries[2].y) > abs(rates_table.geometries[2].y)
        # input untouched
        assert rates_table.crs == 4326

    def test_to_crs_without_source(self, roads_table):
        with pytest.raises(UnknownCRS):
            roads_table.to_crs(4326)

    def test_to_crs_checks_registry_on_empty_table(self):
        empty = SpatialTable(Schema([("id", "integer")]), [], [], crs=4326)
        with pytest.raises(UnknownCRS):
            empty.to_crs(999999)
        assert empty.to_crs(3857).crs == 3857

    def test_to_crs_undefined_mapping(self):
        """A latitude beyond the pole has no Web Mercator image."""
        t = SpatialTable.from_columns({"id": [1]}, geometry=[point(0, 95)], crs=4326)
        with pytest.raises(TransformUndefined) as exc:
            t.to_crs(3857)
        assert exc.value.source == 4326
        assert exc.value.target == 3857

    def test_set_crs_relabels(self, roads_table):
        labelled = roads_table.set_crs("EPSG:32633")
        assert labelled.crs == 32633
        assert labelled.geometries == roads_table.geometries

    def test_set_crs_unregistered(self, roads_table):
        with pytest.raises(UnknownCRS):
            roads_table.set_crs(999999)
        assert roads_table.set_crs(None).crs is None

    def test_drop_geometry(self, rates_table):
        plain = rates_table.drop_geometry()
        assert type(plain) is AttributeTable
        assert plain.rows == rates_table.rows
        assert not plain.is_spatial


class TestEquality:

    def test_equal_tables(self, rates_table):
        copy = SpatialTable(rates_table.schema, rates_table.rows, rates_table.geometries, crs=4326)
        assert copy == rates_table

    def test_crs_difference(self, rates_table):
        assert rates_table.set_crs(3857) != rates_table

    def test_equals_with_tolerance(self, rates_table):
        nudged = rates_table._derive(
            geometries=tuple(point(g.x + 1e-12, g.y) for g in rates_table.geometries)
        )
        assert nudged != rates_table
        assert nudged.equals(rates_table)

    def test_equals_uses_configured_tolerance(self, rates_table, make_config):
        nudged = rates_table._derive(
            geometries=tuple(point(g.x + 0.0005, g.y) for g in rates_table.geometries)
        )
        assert not nudged.equals(rates_table)
        assert nudged.equals(rates_table, config=make_config(tolerance=0.001))
        assert not nudged.equals(rates_table, tolerance=1e-6, config=make_config(tolerance=0.001))

    def test_attribute_table_equality(self, names_table):
        assert names_table == AttributeTable(names_table.schema, names_table.rows)
        assert names_table != names_table._derive(rows=names_table.rows[:1])
