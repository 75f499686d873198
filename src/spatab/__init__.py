"""`spatab` - geometry-attached tabular data engine.

Subpackages:
- table: SpatialTable, schema and attribute values
- geometry: Geometry kinds, validation, CRS registry and transforms
- ops: Relational operators, aggregation and reshaping
- io: Packaged (GeoParquet-style) and legacy (shapefile) formats
- schemas: Layered pydantic configuration
- contracts: Error taxonomy and table invariants
- views: pandas hand-off for rendering
"""

__version__ = "0.1.0"
