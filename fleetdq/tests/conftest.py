import os
import sys
from unittest.mock import MagicMock

import numpy as np
import pytest

# Add the fleetdq module directory to the Python path so tests can import modules by name
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Keep a developer's .env from changing test expectations
for _name in (
    "FLEETDQ_SEED",
    "FLEETDQ_ALERT_THRESHOLD",
    "FLEETDQ_REALTIME_CHECKS",
    "FLEETDQ_AUTO_REFRESH",
    "FLEETDQ_SHOW_MINOR_ISSUES",
):
    os.environ.pop(_name, None)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def zero_jitter_rng():
    """Generator stand-in whose uniform() draws are always 0."""
    mock = MagicMock()
    mock.uniform.return_value = 0.0
    return mock
