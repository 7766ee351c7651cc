import os
import sys

import matplotlib
import numpy as np
import pytest

# Make the package importable when running tests from a source checkout
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

# Figures are rendered off-screen
matplotlib.use('Agg')

FS_COMPOSITE = 8000


@pytest.fixture(scope="session")
def composite_signal():
    """100 Hz cosine for 2000 samples followed by a 200 Hz cosine for 2000 samples, at 8000 Hz."""
    t = np.arange(2000) / FS_COMPOSITE
    return np.concatenate((np.cos(2 * np.pi * 100 * t), np.cos(2 * np.pi * 200 * t)))


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    import matplotlib.pyplot as plt
    plt.close('all')
