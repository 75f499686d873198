"""Geometry kinds and the rules for combining them."""

from enum import Enum
from typing import Iterable, Optional

__all__ = ['GeometryKind', 'geometry_kind', 'common_kind']


class GeometryKind(str, Enum):
    """Declared geometry kind of a table (and of a single geometry)."""
    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"
    MULTIPOINT = "MultiPoint"
    MULTILINESTRING = "MultiLineString"
    MULTIPOLYGON = "MultiPolygon"
    GEOMETRY = "Geometry"  # generic: rows of different base kinds

    @property
    def base(self) -> "GeometryKind":
        """Simple kind underlying a Multi kind (identity for simple kinds)."""
        return _BASE[self]

    @property
    def multi(self) -> "GeometryKind":
        """Multi promotion of a simple kind (identity for Multi kinds)."""
        return _MULTI[self]

    @property
    def is_multi(self) -> bool:
        return self in (GeometryKind.MULTIPOINT, GeometryKind.MULTILINESTRING,
                        GeometryKind.MULTIPOLYGON)

    @property
    def is_polygonal(self) -> bool:
        return self.base is GeometryKind.POLYGON

    def accepts(self, kind: "GeometryKind") -> bool:
        """Whether a geometry of ``kind`` may live in a table declared as self."""
        if self is GeometryKind.GEOMETRY:
            return True
        if kind is self:
            return True
        return self.is_multi and kind.base is self.base


_BASE = {
    GeometryKind.POINT: GeometryKind.POINT,
    GeometryKind.LINESTRING: GeometryKind.LINESTRING,
    GeometryKind.POLYGON: GeometryKind.POLYGON,
    GeometryKind.MULTIPOINT: GeometryKind.POINT,
    GeometryKind.MULTILINESTRING: GeometryKind.LINESTRING,
    GeometryKind.MULTIPOLYGON: GeometryKind.POLYGON,
    GeometryKind.GEOMETRY: GeometryKind.GEOMETRY,
}

_MULTI = {
    GeometryKind.POINT: GeometryKind.MULTIPOINT,
    GeometryKind.LINESTRING: GeometryKind.MULTILINESTRING,
    GeometryKind.POLYGON: GeometryKind.MULTIPOLYGON,
    GeometryKind.MULTIPOINT: GeometryKind.MULTIPOINT,
    GeometryKind.MULTILINESTRING: GeometryKind.MULTILINESTRING,
    GeometryKind.MULTIPOLYGON: GeometryKind.MULTIPOLYGON,
    GeometryKind.GEOMETRY: GeometryKind.GEOMETRY,
}


def geometry_kind(geom) -> Optional[GeometryKind]:
    """Kind of a shapely geometry, or None for an empty/absent geometry.

    Raises
    ------
    ValueError
        If the geometry type is not one of the six supported kinds.
    """
    if geom is None or geom.is_empty:
        return None
    return GeometryKind(geom.geom_type)


def common_kind(kinds: Iterable[Optional[GeometryKind]]) -> Optional[GeometryKind]:
    """Narrowest declared kind that accepts every kind in ``kinds``.

    One distinct kind is kept as is; kinds sharing a base promote to the
    Multi kind; anything else is GEOMETRY. Returns None if no kinds given.
    """
    distinct = {GeometryKind(k) for k in kinds if k is not None}
    if not distinct:
        return None
    if len(distinct) == 1:
        return distinct.pop()
    bases = {k.base for k in distinct}
    if len(bases) == 1:
        return bases.pop().multi
    return GeometryKind.GEOMETRY
