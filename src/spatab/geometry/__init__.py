"""Geometry model: kinds, validated construction, CRS registry and transforms."""

from spatab.geometry.kinds import GeometryKind, geometry_kind, common_kind
from spatab.geometry.model import (
    point,
    line_string,
    polygon,
    multi_point,
    multi_line_string,
    multi_polygon,
    validate_geometry,
    geometries_equal,
    geometries_close,
    geometry_key,
    geometry_parts,
    promote,
    dissolve,
)
from spatab.geometry.crs import (
    normalize_crs,
    lookup_crs,
    is_geographic,
    transform_geometry,
)

__all__ = [
    "GeometryKind",
    "geometry_kind",
    "common_kind",
    "point",
    "line_string",
    "polygon",
    "multi_point",
    "multi_line_string",
    "multi_polygon",
    "validate_geometry",
    "geometries_equal",
    "geometries_close",
    "geometry_key",
    "geometry_parts",
    "promote",
    "dissolve",
    "normalize_crs",
    "lookup_crs",
    "is_geographic",
    "transform_geometry",
]
