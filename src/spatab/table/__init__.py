"""Spatial table data model.

- values: attribute value types and coercion
- schema: typed column schema
- row: read-only row view
- table: SpatialTable and AttributeTable
"""

from spatab.table.values import AttributeType, MISSING, is_missing
from spatab.table.schema import GEOMETRY_FIELD, Column, Schema
from spatab.table.row import Row
from spatab.table.table import AttributeTable, SpatialTable

__all__ = [
    "AttributeType",
    "MISSING",
    "is_missing",
    "GEOMETRY_FIELD",
    "Column",
    "Schema",
    "Row",
    "AttributeTable",
    "SpatialTable",
]
