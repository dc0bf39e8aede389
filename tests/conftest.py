import math

import matplotlib
import pytest

matplotlib.use("Agg")

from motion_control.interfaces import SensorSample  # noqa: E402


class FakeSensor:
    """Sensor returning queued samples, then repeating the last one."""

    def __init__(self, samples=None):
        self.samples = list(samples or [SensorSample(0.0, 0.0, 0.0)])
        self.reads = 0

    def read(self):
        self.reads += 1
        if len(self.samples) > 1:
            return self.samples.pop(0)
        return self.samples[0]


@pytest.fixture(autouse=True)
def no_run_dir_env(monkeypatch):
    monkeypatch.delenv("RUN_DIR", raising=False)


def approx_angle(value, expected, abs_tol=1e-9):
    return abs(math.atan2(math.sin(value - expected), math.cos(value - expected))) <= abs_tol
