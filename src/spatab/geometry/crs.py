"""CRS registry lookup and coordinate transforms.

pyproj is the geodesy collaborator: it supplies the registry (EPSG codes)
and the forward coordinate mapping. The engine only tracks integer codes and
fails closed whenever pyproj cannot resolve a code or a transform.
"""

import logging
from functools import lru_cache
from typing import Optional, Union

import numpy as np
import shapely
from pyproj import CRS, Transformer
from pyproj.enums import WktVersion
from pyproj.exceptions import CRSError as ProjCRSError, ProjError

from spatab.contracts.failure import TransformUndefined, UnknownCRS

__all__ = [
    'normalize_crs', 'lookup_crs', 'is_geographic', 'get_transformer',
    'transform_geometry', 'crs_to_wkt', 'crs_from_wkt',
]

logger = logging.getLogger(__name__)

CRSLike = Union[int, str, None]


def normalize_crs(crs: CRSLike) -> Optional[int]:
    """Normalize a CRS identifier to its integer registry code.

    Accepts ``4326``, ``"4326"`` or ``"EPSG:4326"``; ``None`` stays None
    (unknown CRS). Registry membership is NOT checked here.

    Raises
    ------
    UnknownCRS
        If the identifier cannot be read as an EPSG code.
    """
    if crs is None:
        return None
    if isinstance(crs, bool):
        raise UnknownCRS(crs)
    if isinstance(crs, (int, np.integer)):
        return int(crs)
    if isinstance(crs, str):
        text = crs.strip().upper()
        if text.startswith("EPSG:"):
            text = text[5:]
        if text.isdigit():
            return int(text)
    raise UnknownCRS(crs)


@lru_cache(maxsize=128)
def lookup_crs(code: int) -> CRS:
    """Registry lookup of an EPSG code.

    Raises
    ------
    UnknownCRS
        If the code is not registered.
    """
    try:
        return CRS.from_epsg(int(code))
    except (ProjCRSError, TypeError, ValueError) as e:
        raise UnknownCRS(code) from e


def is_geographic(crs: CRSLike) -> bool:
    """True for unprojected (angular, lon/lat) systems, False for projected ones."""
    code = normalize_crs(crs)
    if code is None:
        raise UnknownCRS(crs)
    return bool(lookup_crs(code).is_geographic)


@lru_cache(maxsize=128)
def get_transformer(source: int, target: int) -> Transformer:
    """Cached lon/lat-ordered transformer between two registered codes."""
    src = lookup_crs(source)
    dst = lookup_crs(target)
    try:
        transformer = Transformer.from_crs(src, dst, always_xy=True)
    except ProjError as e:
        raise TransformUndefined(source, target, str(e)) from e
    logger.debug("Transformer built: EPSG:%s -> EPSG:%s", source, target)
    return transformer


def transform_geometry(geom, source: CRSLike, target: CRSLike):
    """Apply the source->target mapping to every coordinate of ``geom``.

    Both identifiers are checked against the registry even when they are
    equal or the geometry is absent.

    Raises
    ------
    UnknownCRS
        If either identifier is unknown.
    TransformUndefined
        If pyproj has no mapping or produces non-finite coordinates.
    """
    src_code = normalize_crs(source)
    dst_code = normalize_crs(target)
    if src_code is None:
        raise UnknownCRS(source)
    if dst_code is None:
        raise UnknownCRS(target)
    lookup_crs(src_code)
    lookup_crs(dst_code)

    if geom is None or src_code == dst_code:
        return geom

    transformer = get_transformer(src_code, dst_code)

    def _apply(coords: np.ndarray) -> np.ndarray:
        try:
            xs, ys = transformer.transform(coords[:, 0], coords[:, 1], errcheck=True)
        except ProjError as e:
            raise TransformUndefined(src_code, dst_code, str(e)) from e
        out = np.column_stack([np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)])
        if not np.all(np.isfinite(out)):
            raise TransformUndefined(src_code, dst_code, "non-finite coordinates produced")
        return out

    return shapely.transform(geom, _apply)


def crs_to_wkt(crs: CRSLike) -> str:
    """WKT1 definition written to the legacy CRS component ('' for unknown)."""
    code = normalize_crs(crs)
    if code is None:
        return ""
    return lookup_crs(code).to_wkt(WktVersion.WKT1_GDAL)


def crs_from_wkt(text: str) -> Optional[int]:
    """Registry code for a WKT definition (None for an empty definition).

    Raises
    ------
    UnknownCRS
        If the definition does not resolve to a registered code.
    """
    text = text.strip()
    if not text:
        return None
    try:
        crs = CRS.from_wkt(text)
    except ProjCRSError as e:
        raise UnknownCRS(text[:60]) from e
    code = crs.to_epsg()
    if code is None:
        authority = crs.to_authority(min_confidence=25)
        if authority is not None and authority[0] == "EPSG":
            code = int(authority[1])
    if code is None:
        raise UnknownCRS(crs.name)
    return code
