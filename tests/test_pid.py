import math

import pytest

from motion_control import config
from motion_control.pid import AntiWindup, PIDController


def test_integral_is_sum_of_constant_error():
    pid = PIDController(kp=1.0, ki=0.5, kd=0.0)
    for _ in range(7):
        pid.update(2.5)
    assert pid.integral == pytest.approx(7 * 2.5)


def test_reset_matches_fresh_controller():
    used = PIDController(kp=2.0, ki=0.3, kd=1.5)
    for error in (4.0, -2.0, 9.0):
        used.update(error)
    used.reset()

    fresh = PIDController(kp=2.0, ki=0.3, kd=1.5)
    assert used.update(3.0) == pytest.approx(fresh.update(3.0))
    assert used.integral == fresh.integral
    assert used.previous_error == fresh.previous_error


def test_state_carries_into_next_movement_without_reset():
    gains = dict(kp=2.0, ki=0.5, kd=1.0)
    used = PIDController(**gains)
    for error in (5.0, 5.0, 5.0):
        used.update(error)

    # Next movement starts without a reset: stale integral and derivative leak in
    fresh = PIDController(**gains)
    assert used.update(1.0) != pytest.approx(fresh.update(1.0))

    used.reset()
    fresh.reset()
    assert used.update(1.0) == pytest.approx(fresh.update(1.0))


def test_zero_crossing_resets_integral():
    pid = PIDController(ki=1.0, anti_windup=AntiWindup(reset_on_zero_crossing=True))
    for error in (5.0, 5.0, 5.0):
        pid.update(error)
    assert pid.integral == pytest.approx(15.0)

    pid.update(-1.0)
    assert pid.integral == pytest.approx(-1.0)


def test_zero_error_counts_as_crossing():
    pid = PIDController(ki=1.0, anti_windup=AntiWindup(reset_on_zero_crossing=True))
    pid.update(3.0)
    pid.update(3.0)
    pid.update(0.0)
    assert pid.integral == 0.0


def test_windup_range_gates_accumulation():
    pid = PIDController(ki=1.0, anti_windup=AntiWindup(windup_range=5.0))
    pid.update(10.0)
    assert pid.integral == 0.0
    pid.update(2.0)
    assert pid.integral == pytest.approx(2.0)
    pid.update(5.0)
    assert pid.integral == pytest.approx(2.0)


def test_integral_cap_stops_accumulation_once_reached():
    pid = PIDController(ki=1.0, anti_windup=AntiWindup(integral_cap=4.0))
    for _ in range(5):
        pid.update(3.0)
    # 0 -> 3 -> 6, then |6| >= 4 holds it
    assert pid.integral == pytest.approx(6.0)


def test_derivative_is_plain_difference():
    pid = PIDController(kd=2.0)
    assert pid.update(1.0) == pytest.approx(2.0)
    assert pid.update(4.0) == pytest.approx(6.0)
    assert pid.update(4.0) == pytest.approx(0.0)


def test_dt_scales_integral_and_derivative():
    pid = PIDController(ki=1.0, kd=1.0, dt=0.1)
    output = pid.update(2.0)
    assert pid.integral == pytest.approx(0.2)
    assert output == pytest.approx(0.2 + 20.0)


def test_nan_error_leaves_state_untouched():
    pid = PIDController(kp=1.0, ki=1.0, kd=1.0)
    pid.update(3.0)
    assert math.isnan(pid.update(math.nan))
    assert pid.integral == pytest.approx(3.0)
    assert pid.previous_error == 3.0


def test_zero_gains_output_zero():
    pid = PIDController()
    assert pid.update(123.0) == 0.0


def test_output_clamp():
    pid = PIDController(kp=100.0, output_min=-127.0, output_max=127.0)
    assert pid.update(10.0) == 127.0
    assert pid.update(-10.0) == -127.0


def test_set_gains_keeps_state():
    pid = PIDController(ki=1.0)
    pid.update(2.0)
    pid.set_gains(1.0, 0.0, 0.0)
    assert pid.integral == pytest.approx(2.0)
    assert pid.update(2.0) == pytest.approx(2.0)


def test_diagnostics_report_terms():
    pid = PIDController(kp=2.0, ki=1.0, kd=3.0)
    pid.update(1.0)
    pid.update(2.0)
    diagnostics = pid.get_diagnostics(2.0)
    assert diagnostics["p_term"] == pytest.approx(4.0)
    assert diagnostics["i_term"] == pytest.approx(3.0)
    assert diagnostics["d_term"] == pytest.approx(3.0)


def test_from_config_builders():
    linear = PIDController.linear_from_config()
    angular = PIDController.angular_from_config(config)
    assert linear.kp == config.LINEAR_KP
    assert angular.kd == config.ANGULAR_KD
    assert linear.anti_windup.reset_on_zero_crossing == config.PID_RESET_ON_ZERO_CROSSING
    assert linear.output_max == config.OUTPUT_MAX
