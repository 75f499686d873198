"""Hand-off of tables to rendering and analysis code.

Plotting code consumes tables through these read-only views and never
mutates them. pandas is the interchange format: ``to_dataframe`` keeps the
geometry as a column of shapely objects, which geopandas accepts directly
(``geopandas.GeoDataFrame(df, crs=table.crs)``).
"""

import logging
from typing import Any, Iterator, Optional, Tuple

import pandas as pd
from pandas.api import types as ptypes

from spatab.contracts.failure import UnknownColumn
from spatab.geometry.crs import CRSLike
from spatab.ops.aggregate import group_by
from spatab.table.schema import GEOMETRY_FIELD, Schema
from spatab.table.table import AttributeTable, SpatialTable
from spatab.table.values import AttributeType, infer_column_type

__all__ = ['to_dataframe', 'from_dataframe', 'iter_facets', 'render_columns']

logger = logging.getLogger(__name__)

# Nullable pandas dtypes so missing integers/booleans do not turn into floats
_PANDAS_DTYPES = {
    AttributeType.INTEGER: "Int64",
    AttributeType.FLOAT: "float64",
    AttributeType.TEXT: "string",
    AttributeType.BOOLEAN: "boolean",
}


def to_dataframe(table: AttributeTable) -> pd.DataFrame:
    """Copy a table into a pandas DataFrame.

    Columns follow schema order; a spatial table gets a trailing
    ``geometry`` column of shapely objects (None when absent). The CRS code
    is stored in ``df.attrs["crs"]``.
    """
    data = {}
    for i, col in enumerate(table.schema):
        data[col.name] = pd.Series([r[i] for r in table.rows], dtype=_PANDAS_DTYPES[col.dtype])
    if table.is_spatial:
        data[GEOMETRY_FIELD] = pd.Series(list(table.geometries), dtype=object)
    df = pd.DataFrame(data, index=pd.RangeIndex(len(table)))
    if table.is_spatial:
        df.attrs["crs"] = table.crs
    return df


def _column_type(series: pd.Series, values: list) -> AttributeType:
    if ptypes.is_bool_dtype(series.dtype):
        return AttributeType.BOOLEAN
    if ptypes.is_integer_dtype(series.dtype):
        return AttributeType.INTEGER
    if ptypes.is_float_dtype(series.dtype):
        return AttributeType.FLOAT
    if isinstance(series.dtype, pd.StringDtype):
        return AttributeType.TEXT
    return infer_column_type(values, series.name)


def from_dataframe(df: pd.DataFrame, geometry: str = GEOMETRY_FIELD,
                   crs: CRSLike = None, kind=None) -> SpatialTable:
    """Build a SpatialTable from a DataFrame with a column of shapely geometries.

    Parameters
    ----------
    df : pandas.DataFrame
        One row per table row. The index is ignored.
    geometry : str
        Name of the geometry column.
    crs : int or str, optional
        EPSG code; falls back to ``df.attrs["crs"]``.
    kind : GeometryKind or str, optional
        Declared geometry kind; inferred when omitted.

    Raises
    ------
    UnknownColumn
        If the geometry column is absent.
    """
    if geometry not in df.columns:
        raise UnknownColumn(geometry, [str(c) for c in df.columns])
    if crs is None:
        crs = df.attrs.get("crs")

    columns = []
    values = []
    for name in df.columns:
        if name == geometry:
            continue
        series = df[name]
        # pd.NA and NaN become None
        column_values = series.astype(object).where(series.notna(), None).tolist()
        columns.append((str(name), _column_type(series, column_values)))
        values.append(column_values)

    rows = list(zip(*values)) if values else [()] * len(df)
    geoms = [g if g is not None and not (isinstance(g, float) and pd.isna(g)) else None
             for g in df[geometry].tolist()]
    table = SpatialTable(Schema(columns), rows, geoms, crs=crs, kind=kind)
    logger.debug("from_dataframe: %d rows, %d columns", len(table), len(columns))
    return table


def iter_facets(table: SpatialTable, key: str) -> Iterator[Tuple[Any, SpatialTable]]:
    """Yield ``(value, sub_table)`` per distinct ``key`` value, first appearance first.

    Each sub-table keeps the full schema, CRS and kind, so every facet can be
    drawn with the same styling.
    """
    for values, sub_table in group_by(table, key):
        yield values[0], sub_table


def render_columns(table: SpatialTable, column: Optional[str] = None) -> Tuple[tuple, ...]:
    """Read-only ``(geometry, value)`` pairs for drawing, in row order.

    ``value`` is the cell of ``column`` (None when no column is given), so a
    choropleth can be drawn straight from the pairs.

    Examples
    --------
    >>> for geom, rate in render_columns(regions, "rate17"):
    ...     ax.fill(*geom.exterior.xy, color=cmap(norm(rate)))
    """
    if column is None:
        values = (None,) * len(table)
    else:
        values = table.column(column)
    return tuple(zip(table.geometries, values))
