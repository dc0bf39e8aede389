import math

import pytest

from motion_control.model import WheelCommand, differential_mix, forward_kinematics
from motion_control.slew import SlewLimiter, limit


def test_limit_converges_without_overshoot():
    previous = 0.0
    history = []
    for _ in range(32):
        previous = limit(100.0, previous, 4.0, 1.0)
        history.append(previous)

    assert history[-1] == 100.0
    assert max(history) <= 100.0
    assert all(b - a <= 4.0 + 1e-9 for a, b in zip([0.0] + history, history))


def test_limit_holds_without_elapsed_time():
    assert limit(100.0, 12.0, 4.0, 0.0) == 12.0


def test_limit_passes_small_changes():
    assert limit(10.0, 8.0, 4.0, 1.0) == 10.0
    assert limit(-10.0, 0.0, 4.0, 1.0) == -4.0


def test_limit_rejects_non_finite_inputs():
    assert limit(math.nan, 5.0, 4.0, 1.0) == 5.0
    assert limit(50.0, 5.0, math.inf, 1.0) == 5.0


def test_slew_limiter_tracks_output():
    limiter = SlewLimiter(rate=100.0)
    assert limiter.step(127.0, 0.5) == pytest.approx(50.0)
    assert limiter.step(127.0, 0.5) == pytest.approx(100.0)
    assert limiter.step(127.0, 0.5) == pytest.approx(127.0)
    limiter.reset()
    assert limiter.output == 0.0


def test_differential_mix_turns_clockwise_for_positive_angular():
    assert differential_mix(50.0, 10.0) == WheelCommand(60.0, 40.0)


def test_differential_mix_clamps():
    command = differential_mix(120.0, 30.0)
    assert command.left == 127.0
    assert command.right == 90.0


def test_differential_mix_stops_on_nan():
    assert differential_mix(math.nan, 1.0) == WheelCommand.stop()


def test_forward_kinematics():
    v, omega = forward_kinematics(10.0, 20.0, 10.0)
    assert v == pytest.approx(15.0)
    assert omega == pytest.approx(1.0)
    assert forward_kinematics(1.0, 2.0, 0.0)[1] == 0.0
