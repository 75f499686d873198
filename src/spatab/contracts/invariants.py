"""Formal table invariants.

This file documents what every table and operator output MUST satisfy.
Use it as a reviewer anchor and system reference.
"""

TABLE_INVARIANTS = {
    "schema": [
        "Column names are unique non-empty strings",
        "'geometry' is reserved and never a schema column",
        "Every row has exactly one value per schema column",
        "Values are int, float, str, bool or None (missing); NaN is stored as None",
    ],

    "geometry": [
        "Exactly one geometry slot per row (None for empty geometry)",
        "Every geometry's kind equals the declared kind (Multi kinds hold promoted parts)",
        "Polygon rings are closed with at least 3 distinct vertices",
        "Geometries carry no CRS; the table's CRS applies to all of them",
    ],

    "operators": [
        "Inputs are never modified; a new table is returned",
        "select/select_drop/filter_rows/mutate/arrange keep the geometry field",
        "arrange is stable and sorts missing values last in both directions",
        "summarise returns one row per group with a dissolved geometry",
        "pivot_longer replicates the geometry; pivot_wider keys on geometry identity",
    ],

    "combination": [
        "bind_rows and spatial left_join require equal CRS identifiers",
        "Reprojection is explicit (to_crs) and never implied by a combine",
    ],
}
