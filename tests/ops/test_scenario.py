"""End-to-end regional rates scenario."""

import pytest

from spatab.geometry import point
from spatab.ops import Aggregate, col, filter_rows, group_by, mutate, summarise

pytestmark = pytest.mark.unit


def test_rates_scenario(rates_table):
    changed = mutate(rates_table, delta_abs=col("rate05") - col("rate17"))
    assert changed.column("delta_abs") == (5, -20, 5)

    group_a = filter_rows(changed, col("group") == "A")
    assert group_a.column("id") == (1, 2)

    summary = summarise(group_by(changed, "group"), avg17=Aggregate.mean("rate17"))
    assert summary.rows == (("A", 22.5), ("B", 25.0))
    a, b = summary.geometries
    assert {(p.x, p.y) for p in a.geoms} == {(0.0, 0.0), (1.0, 1.0)}
    assert b.geoms[0] == point(2, 2)


def test_reprojection_scenario(rates_table):
    moved = rates_table.to_crs(3857)

    assert len(moved) == len(rates_table)
    assert moved.rows == rates_table.rows
    assert moved.geometries[0].x == pytest.approx(0.0, abs=1e-6)
    assert moved.geometries[2].x > 1000
