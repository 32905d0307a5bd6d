import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest


# Orthogonal (4-connected) neighbors only.
FOUR_CONNECTED = np.array([
    [0.0, 1.0, 0.0],
    [1.0, 0.0, 1.0],
    [0.0, 1.0, 0.0],
])


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def checkerboard():
    """4x4 two-class checkerboard, 0 at the origin."""
    return (np.indices((4, 4)).sum(axis=0) % 2).astype(np.int64)


@pytest.fixture
def two_region_problem():
    """
    4x4 image: columns 0-1 are class 0, columns 2-3 class 1.

    Distances are 0 to the true class and 2 to the other; the seed labels
    have two flipped elements, (1, 1) and (2, 3).
    """
    truth = np.zeros((4, 4), dtype=np.int64)
    truth[:, 2:] = 1
    distance_map = np.where(truth[None] == np.arange(2)[:, None, None], 0.0, 2.0)
    seed = truth.copy()
    seed[1, 1] = 1
    seed[2, 3] = 0
    return truth, distance_map, seed
