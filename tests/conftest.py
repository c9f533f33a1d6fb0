"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from helpers import GaussianPotential, make_plain_model  # noqa: E402


@pytest.fixture
def chain_model():
    """Three Gaussian observations on a chain x_0 - x_1 - x_2 - x_3."""
    rows = [[0, 1], [1, 2], [2, 3]]
    coeffs = [[1.0, -1.0], [1.0, -1.0], [0.5, 2.0]]
    pots = [GaussianPotential(0.3, 0.5), GaussianPotential(-1.0, 0.2),
            GaussianPotential(2.0, 1.0)]
    return make_plain_model(rows, coeffs, pots, prior_pi=np.ones(4),
                            prior_beta=np.array([0.0, 0.5, -0.5, 1.0]))
