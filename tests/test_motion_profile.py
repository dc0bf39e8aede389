import math

import numpy as np
import pytest

from motion_control.motion_profile import ProfileSegment, plan, position_at, sample_profile, velocity_at


def test_phase_distances_sum_to_total():
    segment = plan(100.0, 20.0, 10.0)
    total = segment.accel_distance + segment.cruise_distance + segment.decel_distance
    assert total == pytest.approx(100.0)
    assert segment.accel_time == pytest.approx(2.0)
    assert segment.cruise_distance == pytest.approx(60.0)
    assert segment.cruise_time == pytest.approx(3.0)


def test_velocity_zero_at_start_and_end():
    segment = plan(100.0, 20.0, 10.0)
    assert velocity_at(segment, 0.0) == 0.0
    assert velocity_at(segment, segment.total_time) == 0.0
    assert velocity_at(segment, -1.0) == 0.0


def test_short_move_is_triangular():
    segment = plan(1.0, 100.0, 50.0)
    assert segment.cruise_time == 0.0
    assert segment.cruise_distance == 0.0
    assert segment.accel_time == pytest.approx(segment.decel_time)
    assert segment.peak_velocity < 100.0
    assert segment.total_distance == pytest.approx(1.0)


def test_velocity_phases():
    segment = plan(100.0, 20.0, 10.0)
    assert velocity_at(segment, 1.0) == pytest.approx(10.0)
    assert velocity_at(segment, 3.0) == pytest.approx(20.0)
    assert velocity_at(segment, 6.0) == pytest.approx(10.0)


def test_negative_distance_reverses_velocity():
    segment = plan(-100.0, 20.0, 10.0)
    assert segment.direction == -1
    assert segment.total_distance == pytest.approx(100.0)
    assert velocity_at(segment, 3.0) == pytest.approx(-20.0)
    assert position_at(segment, segment.total_time) == pytest.approx(-100.0)


@pytest.mark.parametrize(
    "distance, velocity, acceleration",
    [(0.0, 10.0, 10.0), (10.0, 0.0, 10.0), (10.0, 10.0, -1.0), (math.nan, 10.0, 10.0), (10.0, math.inf, 1.0)],
)
def test_degenerate_inputs_give_empty_profile(distance, velocity, acceleration):
    segment = plan(distance, velocity, acceleration)
    assert segment == ProfileSegment()
    assert segment.total_time == 0.0
    assert velocity_at(segment, 0.5) == 0.0


def test_position_at_matches_phase_distances():
    segment = plan(100.0, 20.0, 10.0)
    assert position_at(segment, 0.0) == 0.0
    assert position_at(segment, segment.accel_time) == pytest.approx(segment.accel_distance)
    assert position_at(segment, segment.accel_time + segment.cruise_time) == pytest.approx(
        segment.accel_distance + segment.cruise_distance
    )
    assert position_at(segment, segment.total_time + 1.0) == pytest.approx(100.0)


def test_sample_profile_covers_whole_move():
    segment = plan(24.0, 48.0, 60.0)
    samples = sample_profile(segment, dt=0.01)
    assert samples["t"][0] == 0.0
    assert samples["t"][-1] == pytest.approx(segment.total_time)
    assert samples["position"][-1] == pytest.approx(24.0)
    assert np.all(samples["velocity"] >= 0.0)
    assert np.max(samples["velocity"]) <= segment.peak_velocity + 1e-9
