"""Validated construction and comparison of vector geometries.

Geometries are shapely objects. Shapely silently closes polygon rings and
accepts degenerate parts, so every geometry entering a table goes through
validate_geometry(), and the constructors here check ring closure on the raw
coordinates before shapely sees them.
"""

import logging
from typing import Iterable, Optional, Sequence

import numpy as np
import shapely
from shapely.errors import GEOSException
from shapely.geometry import (
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)

from spatab.contracts.failure import MalformedGeometry
from spatab.geometry.kinds import GeometryKind, common_kind, geometry_kind

__all__ = [
    'point', 'line_string', 'polygon',
    'multi_point', 'multi_line_string', 'multi_polygon',
    'validate_geometry', 'geometries_equal', 'geometries_close', 'geometry_key',
    'geometry_parts', 'promote', 'dissolve',
]

logger = logging.getLogger(__name__)

_MULTI_TYPES = {
    GeometryKind.POINT: MultiPoint,
    GeometryKind.LINESTRING: MultiLineString,
    GeometryKind.POLYGON: MultiPolygon,
}


# =============================================================================
# Constructors
# =============================================================================

def _check_ring(ring: Sequence[Sequence[float]], where: str) -> list:
    coords = [tuple(float(c) for c in xy) for xy in ring]
    if len(coords) < 4:
        raise MalformedGeometry(f"{where}: ring needs at least 4 coordinates, got {len(coords)}")
    if coords[0] != coords[-1]:
        raise MalformedGeometry(f"{where}: ring is not closed ({coords[0]} != {coords[-1]})")
    if len(set(coords[:-1])) < 3:
        raise MalformedGeometry(f"{where}: ring needs at least 3 distinct vertices")
    return coords


def point(x: float, y: float) -> Point:
    return validate_geometry(Point(float(x), float(y)))


def line_string(coords: Sequence[Sequence[float]]) -> LineString:
    coords = list(coords)
    if len(coords) < 2:
        raise MalformedGeometry(f"LineString needs at least 2 coordinates, got {len(coords)}")
    return validate_geometry(LineString(coords))


def polygon(exterior: Sequence[Sequence[float]],
            holes: Iterable[Sequence[Sequence[float]]] = ()) -> Polygon:
    """Build a polygon from an explicitly closed exterior ring and holes."""
    shell = _check_ring(exterior, "Polygon exterior")
    interiors = [_check_ring(h, f"Polygon hole {i}") for i, h in enumerate(holes)]
    return validate_geometry(Polygon(shell, interiors))


def multi_point(coords: Sequence[Sequence[float]]) -> MultiPoint:
    coords = list(coords)
    if not coords:
        raise MalformedGeometry("MultiPoint needs at least one point")
    return validate_geometry(MultiPoint([Point(*xy) for xy in coords]))


def multi_line_string(lines: Sequence[Sequence[Sequence[float]]]) -> MultiLineString:
    parts = [line_string(line) for line in lines]
    if not parts:
        raise MalformedGeometry("MultiLineString needs at least one part")
    return MultiLineString(parts)


def multi_polygon(polygons) -> MultiPolygon:
    """Build a MultiPolygon from ``(exterior, holes)`` pairs or Polygon objects."""
    parts = []
    for item in polygons:
        if isinstance(item, Polygon):
            parts.append(validate_geometry(item))
        else:
            exterior, holes = item
            parts.append(polygon(exterior, holes))
    if not parts:
        raise MalformedGeometry("MultiPolygon needs at least one part")
    return MultiPolygon(parts)


# =============================================================================
# Validation and comparison
# =============================================================================

def _validate_part(part, where: str) -> None:
    kind = GeometryKind(part.geom_type)
    if kind is GeometryKind.LINESTRING:
        if len(part.coords) < 2:
            raise MalformedGeometry(f"{where}: LineString needs at least 2 coordinates")
    elif kind is GeometryKind.POLYGON:
        for i, ring in enumerate([part.exterior, *part.interiors]):
            label = "exterior" if i == 0 else f"hole {i - 1}"
            _check_ring(ring.coords, f"{where} {label}")


def validate_geometry(geom, row: Optional[int] = None):
    """Check a shapely geometry against the engine's geometry invariants.

    Returns the geometry unchanged, or None for absent/empty geometries.

    Raises
    ------
    MalformedGeometry
        Unsupported type, non-finite coordinates, degenerate part, or a
        Multi geometry containing empty members, or a self-intersecting
        polygon.
    """
    if geom is None:
        return None
    where = "Geometry" if row is None else f"Geometry in row {row}"
    if not isinstance(geom, shapely.Geometry):
        raise MalformedGeometry(f"{where}: expected a shapely geometry, got {type(geom).__name__}")
    if geom.is_empty:
        return None
    try:
        kind = geometry_kind(geom)
    except ValueError:
        raise MalformedGeometry(f"{where}: unsupported geometry type {geom.geom_type}") from None

    coords = shapely.get_coordinates(geom)
    if not np.all(np.isfinite(coords)):
        raise MalformedGeometry(f"{where}: non-finite coordinate")

    if kind.is_multi:
        for i, part in enumerate(geom.geoms):
            if part.is_empty:
                raise MalformedGeometry(f"{where}: part {i} is empty")
            _validate_part(part, f"{where} part {i}")
    else:
        _validate_part(geom, where)
    if kind.is_polygonal and not shapely.is_valid(geom):
        raise MalformedGeometry(
            f"{where}: invalid polygon ({shapely.is_valid_reason(geom)})", row=row
        )
    return geom


def geometries_equal(a, b) -> bool:
    """Exact coordinate-wise equality (same kind, same coordinates in order)."""
    if a is None or b is None:
        return a is None and b is None
    return a.geom_type == b.geom_type and a.equals_exact(b, 0.0)


def geometry_key(geom):
    """Hashable identity consistent with geometries_equal()."""
    if geom is None:
        return None
    return (geom.geom_type, shapely.to_wkb(geom, hex=True, output_dimension=2))


def geometries_close(a, b, tolerance: float) -> bool:
    """Equality up to coordinate tolerance, ignoring ring orientation and part order."""
    if a is None or b is None:
        return a is None and b is None
    if a.geom_type != b.geom_type:
        return False
    return shapely.normalize(a).equals_exact(shapely.normalize(b), tolerance)


# =============================================================================
# Parts, promotion and union
# =============================================================================

def geometry_parts(geom) -> list:
    """Simple member geometries of a (Multi)Geometry."""
    if geom is None:
        return []
    if hasattr(geom, "geoms"):
        return list(geom.geoms)
    return [geom]


def promote(geom, kind: Optional[GeometryKind]):
    """Wrap a simple geometry into the Multi ``kind`` if the table declares one."""
    if geom is None or kind is None or not kind.is_multi:
        return geom
    own = geometry_kind(geom)
    if own is kind.base:
        return _MULTI_TYPES[own]([geom])
    return geom


def dissolve(geoms: Iterable, kind: Optional[GeometryKind]):
    """Union of member geometries into a single geometry of the same base kind.

    Polygonal members are merged with ``shapely.unary_union`` so shared
    boundaries disappear; point and line members are collected part-wise.
    A single resulting part stays simple. All-empty input gives None.
    """
    members = [g for g in geoms if g is not None]
    if not members:
        return None
    if kind is None or kind is GeometryKind.GEOMETRY:
        kind = common_kind(geometry_kind(g) for g in members)
    base = kind.base

    if base is GeometryKind.POLYGON:
        try:
            merged = shapely.unary_union(members)
        except GEOSException as e:
            raise MalformedGeometry(f"Dissolve failed: {e}") from e
        if merged.geom_type not in ("Polygon", "MultiPolygon"):
            # unary_union of polygons never yields lower dimensions unless
            # every member is degenerate, which validation already rejects
            raise MalformedGeometry(f"Dissolve produced {merged.geom_type} from polygons")
        return merged

    if base is GeometryKind.GEOMETRY:
        raise MalformedGeometry("Cannot dissolve members of different geometry kinds into one geometry")

    parts = [p for g in members for p in geometry_parts(g)]
    if len(parts) == 1:
        return parts[0]
    return _MULTI_TYPES[base](parts)
