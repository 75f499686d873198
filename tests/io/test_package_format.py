"""Tests for the single-file packaged (GeoParquet-style) format."""

import json
import threading

import pyarrow as pa
import pyarrow.parquet as pq
import pytest
import shapely

from spatab.contracts import CorruptContainer, ReadCancelled
from spatab.geometry import GeometryKind, point
from spatab.io import read, write
from spatab.table import AttributeType, Schema, SpatialTable

pytestmark = pytest.mark.integration


class TestRoundTrip:

    def test_polygons_with_all_types(self, regions_table, temp_dir, internal_config):
        path = write(regions_table, temp_dir / "regions.parquet", config=internal_config)
        back = read(path, config=internal_config)

        assert back == regions_table
        assert back.schema.dtype("coastal") is AttributeType.BOOLEAN
        assert back.column("pop") == (100, 200, 50, None)

    def test_points(self, rates_table, temp_dir):
        path = write(rates_table, temp_dir / "rates.parquet")
        assert read(path) == rates_table

    @pytest.mark.parametrize("compression", ["none", "gzip", "zstd"])
    def test_compression(self, compression, rates_table, temp_dir, make_config):
        config = make_config(compression=compression)
        path = write(rates_table, temp_dir / "rates.parquet", config=config)
        assert read(path, config=config) == rates_table

    def test_empty_table(self, temp_dir):
        empty = SpatialTable(Schema([("a", "text"), ("b", "float")]), [], [], crs=4326)
        back = read(write(empty, temp_dir / "empty.parquet"))

        assert len(back) == 0
        assert back.schema == empty.schema
        assert back.crs == 4326
        assert back.kind is None

    def test_declared_kind_preserved(self, temp_dir):
        t = SpatialTable.from_columns({"a": [1]}, geometry=[point(0, 0)], kind="MultiPoint")
        back = read(write(t, temp_dir / "t.parquet"))
        assert back.kind is GeometryKind.MULTIPOINT
        assert back.geometries[0].geom_type == "MultiPoint"


class TestMetadata:

    def test_geo_and_engine_blocks(self, regions_table, temp_dir):
        path = write(regions_table, temp_dir / "regions.parquet")
        metadata = pq.read_schema(path).metadata

        geo = json.loads(metadata[b"geo"])
        assert geo["version"] == "1.1.0"
        assert geo["primary_column"] == "geometry"
        column = geo["columns"]["geometry"]
        assert column["encoding"] == "WKB"
        assert column["geometry_types"] == ["Polygon"]
        assert column["crs"]["id"] == {"authority": "EPSG", "code": 3857}
        assert column["bbox"] == [0.0, 0.0, 9.0, 9.0]

        engine = json.loads(metadata[b"spatab"])
        assert engine["row_count"] == 4
        assert engine["crs"] == "EPSG:3857"
        assert engine["kind"] == "Polygon"
        assert engine["schema"][0] == {"name": "name", "type": "text"}

    def test_row_count_disagreement(self, rates_table, temp_dir):
        path = write(rates_table, temp_dir / "rates.parquet")
        stored = pq.read_table(path)
        metadata = dict(stored.schema.metadata)
        engine = json.loads(metadata[b"spatab"])
        engine["row_count"] = 99
        metadata[b"spatab"] = json.dumps(engine).encode()
        pq.write_table(stored.replace_schema_metadata(metadata), path)

        with pytest.raises(CorruptContainer, match="99"):
            read(path)

    def test_schema_disagreement(self, rates_table, temp_dir):
        path = write(rates_table, temp_dir / "rates.parquet")
        stored = pq.read_table(path)
        trimmed = stored.select(["id", "group", "rate05", "geometry"])
        pq.write_table(trimmed.replace_schema_metadata(stored.schema.metadata), path)

        with pytest.raises(CorruptContainer, match="do not match"):
            read(path)

    def test_foreign_geoparquet(self, temp_dir):
        """Files without the engine block are read from Arrow types and the geo block."""
        from pyproj import CRS

        geo = {
            "version": "1.0.0",
            "primary_column": "geometry",
            "columns": {"geometry": {"encoding": "WKB",
                                     "crs": CRS.from_epsg(4326).to_json_dict()}},
        }
        wkb = shapely.to_wkb([shapely.Point(1, 2), shapely.Point(3, 4)])
        table = pa.table(
            {"name": ["a", "b"], "n": pa.array([1, 2], pa.int32()), "geometry": list(wkb)},
        ).replace_schema_metadata({b"geo": json.dumps(geo).encode()})
        path = temp_dir / "foreign.parquet"
        pq.write_table(table, path)

        back = read(path)
        assert back.columns == ("name", "n")
        assert back.schema.dtype("n") is AttributeType.INTEGER
        assert back.crs == 4326
        assert back.kind is GeometryKind.POINT

    @pytest.mark.parametrize("column_meta, expected", [
        ({"encoding": "WKB"}, 4326),
        ({"encoding": "WKB", "crs": None}, None),
        ({"encoding": "WKB", "crs": {"id": {"authority": "OGC", "code": "CRS84"}}}, 4326),
    ])
    def test_foreign_geoparquet_crs_defaults(self, temp_dir, column_meta, expected):
        """An absent crs key means OGC:CRS84; an explicit null means unknown."""
        geo = {"version": "1.0.0", "primary_column": "geometry",
               "columns": {"geometry": column_meta}}
        wkb = shapely.to_wkb([shapely.Point(1, 2)])
        table = pa.table({"name": ["a"], "geometry": list(wkb)}).replace_schema_metadata(
            {b"geo": json.dumps(geo).encode()}
        )
        path = temp_dir / "foreign.parquet"
        pq.write_table(table, path)

        assert read(path).crs == expected


class TestBoundedRead:

    def test_max_rows(self, regions_table, temp_dir):
        path = write(regions_table, temp_dir / "regions.parquet")
        back = read(path, max_rows=2)
        assert back.column("name") == ("a1", "a2")

    def test_max_rows_across_batches(self, regions_table, temp_dir, make_config):
        config = make_config(batch_size=1)
        path = write(regions_table, temp_dir / "regions.parquet", config=config)
        back = read(path, max_rows=3, config=config)
        assert back.column("name") == ("a1", "a2", "b1")

    def test_config_default_cap(self, regions_table, temp_dir, make_config):
        path = write(regions_table, temp_dir / "regions.parquet")
        assert len(read(path, config=make_config(max_rows=1))) == 1

    def test_stop_event_cancels(self, regions_table, temp_dir):
        path = write(regions_table, temp_dir / "regions.parquet")
        stop = threading.Event()
        stop.set()

        with pytest.raises(ReadCancelled) as exc:
            read(path, stop_event=stop)
        assert exc.value.rows_read == 0

    def test_unset_stop_event(self, regions_table, temp_dir):
        path = write(regions_table, temp_dir / "regions.parquet")
        assert len(read(path, stop_event=threading.Event())) == 4
