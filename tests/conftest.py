"""Root-level pytest fixtures for the spatab test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus small sample tables. Tests use these fixtures instead of
building raw dict configs or ad-hoc tables.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from spatab.schemas import ParamConfig, UserConfig, resolve_config
from spatab.geometry import point, line_string
from spatab.table import SpatialTable, AttributeTable
from tests.helpers.shapes import square


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Examples
    --------
    >>> def test_roundtrip(internal_config, temp_dir):
    ...     write(table, temp_dir / "t.parquet", config=internal_config)
    """
    return resolve_config(param_config, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_small_batches(make_config):
    ...     config = make_config(batch_size=2)
    ...     assert config.package.batch_size == 2
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            return resolve_config(param_config, UserConfig(**user_overrides))
        return resolve_config(param_config, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Table Fixtures
# =============================================================================

@pytest.fixture
def rates_table():
    """Three regions in two groups with point geometries (EPSG:4326).

    id | group | rate05 | rate17
     1 |   A   |   10   |    5
     2 |   A   |   20   |   40
     3 |   B   |   30   |   25
    """
    return SpatialTable.from_columns(
        {
            "id": [1, 2, 3],
            "group": ["A", "A", "B"],
            "rate05": [10, 20, 30],
            "rate17": [5, 40, 25],
        },
        geometry=[point(0, 0), point(1, 1), point(2, 2)],
        crs=4326,
    )


@pytest.fixture
def regions_table():
    """Four square regions; A squares share an edge, B squares are apart."""
    return SpatialTable.from_columns(
        {
            "name": ["a1", "a2", "b1", "b2"],
            "group": ["A", "A", "B", "B"],
            "pop": [100, 200, 50, None],
            "share": [0.5, 0.25, None, 1.0],
            "coastal": [True, False, None, True],
        },
        geometry=[square(0, 0), square(1, 0), square(5, 5), square(8, 8)],
        crs=3857,
    )


@pytest.fixture
def roads_table():
    """Two line features without a CRS."""
    return SpatialTable.from_columns(
        {"road": ["main", "side"], "lanes": [4, 2]},
        geometry=[line_string([(0, 0), (1, 1), (2, 1)]), line_string([(0, 1), (0, 3)])],
    )


@pytest.fixture
def names_table():
    """Plain attribute table keyed by group."""
    return AttributeTable.from_columns(
        {"group": ["A", "B", "C"], "label": ["Alpha", "Beta", "Gamma"]}
    )
