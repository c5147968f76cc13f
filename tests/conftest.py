"""
Shared fixtures for the skate_system test suite.

Everything runs without hardware: samples are built by hand at 100 Hz
with the device held +y up, and persistence uses in-memory SQLite.
"""

import pytest

from skate_system.models import ConditionedSample, SensorSample
from skate_system.session import SessionStore, StoreConfig

RATE = 100
G = 9.81


def sample_run(duration, start=0.0, g_force=1.0, alpha=0.0, beta=0.0, gamma=0.0, rate=RATE):
    """Samples covering [start, start + duration) with constant acceleration and rotation."""
    count = int(round(duration * rate))
    return [
        SensorSample(ax=0.0, ay=g_force * G, az=0.0,
                     rot_alpha=alpha, rot_beta=beta, rot_gamma=gamma,
                     t=start + i / rate)
        for i in range(count)
    ]


def conditioned_run(g_values, start=0.0, rotation=0.0, yaw_rate=0.0, rate=RATE):
    """One conditioned sample per G value, spaced at ``rate``."""
    return [
        ConditionedSample(g_force=g, rotation_magnitude=rotation, yaw_rate=yaw_rate,
                          accumulated_yaw=0.0, dt=1.0 / rate, t=start + i / rate)
        for i, g in enumerate(g_values)
    ]


@pytest.fixture
def make_samples():
    return sample_run


@pytest.fixture
def make_conditioned():
    return conditioned_run


@pytest.fixture
def store():
    s = SessionStore(StoreConfig.in_memory())
    yield s
    s.close()
