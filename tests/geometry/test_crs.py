"""Tests for CRS registry lookups and coordinate transforms."""

import pytest

from spatab.contracts import UnknownCRS
from spatab.geometry import is_geographic, lookup_crs, normalize_crs, point, transform_geometry
from spatab.geometry.crs import crs_from_wkt, crs_to_wkt, get_transformer

pytestmark = pytest.mark.unit


class TestNormalize:

    @pytest.mark.parametrize("value", [4326, "4326", "EPSG:4326", "epsg:4326", " EPSG:4326 "])
    def test_forms_of_the_same_code(self, value):
        assert normalize_crs(value) == 4326

    def test_none_stays_unknown(self):
        assert normalize_crs(None) is None

    @pytest.mark.parametrize("value", ["WGS84", "EPSG:", True, 4326.0])
    def test_unreadable_identifiers(self, value):
        with pytest.raises(UnknownCRS):
            normalize_crs(value)


class TestRegistry:

    def test_lookup_known_code(self):
        assert lookup_crs(3857).to_epsg() == 3857

    def test_lookup_unregistered_code(self):
        with pytest.raises(UnknownCRS):
            lookup_crs(999999)

    def test_geographic_vs_projected(self):
        assert is_geographic(4326)
        assert not is_geographic("EPSG:3857")

    def test_transformer_is_cached(self):
        assert get_transformer(4326, 3857) is get_transformer(4326, 3857)


class TestTransform:

    def test_lon_lat_to_web_mercator(self):
        """Axis order is lon/lat regardless of the registry definition."""
        out = transform_geometry(point(10, 50), 4326, 3857)
        assert out.x == pytest.approx(1113194.9079, rel=1e-9)
        assert out.y == pytest.approx(6446275.8410, rel=1e-9)

    def test_round_trip(self):
        there = transform_geometry(point(10, 50), 4326, 3857)
        back = transform_geometry(there, 3857, 4326)
        assert back.x == pytest.approx(10)
        assert back.y == pytest.approx(50)

    def test_none_geometry_passes_through(self):
        assert transform_geometry(None, 4326, 3857) is None

    def test_unknown_codes_rejected_even_for_identity(self):
        with pytest.raises(UnknownCRS):
            transform_geometry(point(0, 0), 999999, 999999)

    def test_missing_source_rejected(self):
        with pytest.raises(UnknownCRS):
            transform_geometry(point(0, 0), None, 4326)


class TestWkt:

    @pytest.mark.parametrize("code", [4326, 3857, 32633])
    def test_wkt_round_trip(self, code):
        assert crs_from_wkt(crs_to_wkt(code)) == code

    def test_unknown_crs_is_empty_definition(self):
        assert crs_to_wkt(None) == ""
        assert crs_from_wkt("  ") is None

    def test_garbage_definition(self):
        with pytest.raises(UnknownCRS):
            crs_from_wkt("NOT A CRS")
