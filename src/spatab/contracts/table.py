"""Table contract.

Enforces the guarantees every operator output must keep: row widths match
the schema, there is one geometry slot per row, and every geometry fits the
declared kind.
"""

from typing import TYPE_CHECKING

from spatab.contracts.base import require
from spatab.geometry.kinds import geometry_kind

if TYPE_CHECKING:
    from spatab.table.table import SpatialTable


def assert_table(table: "SpatialTable") -> None:
    """Enforce the spatial table contract.

    Called by every operator when it assembles its output table.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    width = len(table.schema)
    require(
        all(len(r) == width for r in table.rows),
        f"Table contract violated: row width differs from schema width {width}"
    )
    require(
        len(table.geometries) == len(table.rows),
        f"Table contract violated: {len(table.geometries)} geometries for {len(table.rows)} rows"
    )

    kind = table.kind
    kinds = {geometry_kind(g) for g in table.geometries} - {None}
    if kind is None:
        require(
            not kinds,
            "Table contract violated: geometries present but no declared kind"
        )
        return
    for k in kinds:
        require(
            k is kind or kind.value == "Geometry",
            f"Table contract violated: {k.value} geometry in {kind.value} table"
        )
