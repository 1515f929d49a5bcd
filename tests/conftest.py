import sys
from pathlib import Path

import numpy as np
import pytest

# Add repo root to path so the host script imports without installation
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from buddhabrot import Grid, RunConfig
from buddhabrot.density import accumulate
from buddhabrot.orbits import mark_escapes


@pytest.fixture
def small_config():
    """The 4x4, 50-iteration render over the default viewport."""
    return RunConfig(width=4, height=4, max_iterations=50)


@pytest.fixture
def medium_config():
    return RunConfig(width=24, height=16, max_iterations=60)


@pytest.fixture
def accumulated_grid(medium_config):
    grid = Grid.empty(medium_config)
    mark_escapes(grid, backend="python")
    accumulate(grid)
    return grid


@pytest.fixture
def sample_counts():
    return np.array([[0, 1, 1, 2], [3, 0, 5, 10]], dtype=np.int64)
