import math

import pytest

from motion_control.boomerang import BoomerangController, ControlState, compute_carrot
from motion_control.geometry import Point, Pose
from motion_control.model import WheelCommand
from motion_control.pid import PIDController


def make_controller(target, **kwargs):
    return BoomerangController(target, PIDController(kp=1.0), PIDController(kp=10.0), **kwargs)


@pytest.mark.parametrize("lead", [0.0, 0.5, 0.6, 1.0])
def test_on_target_settles_immediately(lead):
    target = Pose(1.0, 2.0, math.pi / 2)
    assert compute_carrot(target, target, lead) == target.point

    controller = make_controller(target, lead_fraction=lead)
    assert controller.step(target) == WheelCommand.stop()
    assert controller.state is ControlState.SETTLED
    assert controller.is_settled(target)


def test_carrot_sits_behind_target():
    carrot = compute_carrot(Pose(0.0, 0.0, 0.0), Pose(0.0, 10.0, math.pi / 2), 0.5)
    assert carrot.x == pytest.approx(0.0, abs=1e-9)
    assert carrot.y == pytest.approx(5.0)


def test_carrot_slides_onto_target():
    target = Pose(0.0, 10.0, math.pi / 2)
    far = compute_carrot(Pose(0.0, 0.0, 0.0), target, 0.6)
    near = compute_carrot(Pose(0.0, 8.0, 0.0), target, 0.6)
    assert far.y < near.y < target.y


def test_carrot_without_target_heading_is_target():
    target = Pose(3.0, 4.0)
    assert compute_carrot(Pose(0.0, 0.0, 0.0), target, 0.6) == Point(3.0, 4.0)


def test_lead_fraction_is_clamped():
    target = Pose(0.0, 10.0, math.pi / 2)
    assert compute_carrot(Pose(), target, 2.0) == compute_carrot(Pose(), target, 1.0)
    assert compute_carrot(Pose(), target, -1.0) == target.point


def test_steers_clockwise_towards_target_on_the_right():
    controller = make_controller(Pose(10.0, 10.0))
    command = controller.step(Pose(0.0, 0.0, math.pi / 2))
    assert controller.state is ControlState.RUNNING
    assert command.left > command.right


def test_backs_up_after_overshoot():
    controller = make_controller(Pose(0.0, 10.0, math.pi / 2))
    command = controller.step(Pose(0.0, 11.0, math.pi / 2))
    assert command.left == pytest.approx(-1.0)
    assert command.right == pytest.approx(-1.0)


def test_cosine_scaling_holds_forward_power_while_facing_away():
    controller = make_controller(Pose(0.0, -20.0), cosine_scaling=True)
    command = controller.step(Pose(0.0, 0.0, math.pi / 2))
    # Facing directly away: all output is turning
    assert command.left == pytest.approx(-command.right)


def test_cancel_stops_further_steps():
    controller = make_controller(Pose(0.0, 20.0, math.pi / 2))
    controller.step(Pose(0.0, 0.0, math.pi / 2))
    controller.cancel()
    assert controller.state is ControlState.CANCELLED
    assert controller.step(Pose(0.0, 0.0, math.pi / 2)) == WheelCommand.stop()
    assert controller.iterations == 1


def test_retarget_clears_pid_state():
    controller = BoomerangController(
        Pose(0.0, 20.0, math.pi / 2), PIDController(kp=1.0, ki=1.0), PIDController(kp=1.0, ki=1.0)
    )
    controller.step(Pose(0.0, 0.0, math.pi / 2))
    assert controller.linear_pid.integral != 0.0

    controller.retarget(Pose(5.0, 5.0, 0.0))
    assert controller.linear_pid.integral == 0.0
    assert controller.state is ControlState.RUNNING
    assert controller.iterations == 0


def test_diagnostics_include_carrot():
    controller = make_controller(Pose(0.0, 20.0, math.pi / 2))
    controller.step(Pose(0.0, 0.0, math.pi / 2))
    diagnostics = controller.get_diagnostics()
    assert diagnostics["linear_error"] == pytest.approx(20.0)
    assert diagnostics["carrot_y"] == pytest.approx(8.0)


def test_from_config_overrides():
    controller = BoomerangController.from_config(Pose(0.0, 0.0, 0.0), lead_fraction=0.2, cosine_scaling=False)
    assert controller.lead_fraction == 0.2
    assert controller.cosine_scaling is False


@pytest.mark.parametrize("target", [Pose(2.0, 0.0, math.pi / 2), Pose(2.0, 0.0)])
def test_turns_towards_target_beside_robot(target):
    controller = make_controller(target)
    command = controller.step(Pose(0.0, 0.0, math.pi / 2))
    assert controller.state is ControlState.RUNNING
    # Target on the right: pivot clockwise
    assert command.left > 0.0 > command.right


def test_reverses_towards_target_behind_and_beside():
    controller = make_controller(Pose(1.0, -2.0))
    command = controller.step(Pose(0.0, 0.0, math.pi / 2))
    assert command.left + command.right < 0.0


def test_cross_track_error():
    controller = make_controller(Pose(2.0, 0.0, math.pi / 2))
    assert controller.cross_track_error(Pose(0.0, 5.0, 0.0)) == pytest.approx(2.0)
    assert controller.cross_track_error(Pose(2.0, -1.0, 0.0)) == pytest.approx(0.0, abs=1e-12)
    assert make_controller(Pose(3.0, 4.0)).cross_track_error(Pose()) == pytest.approx(5.0)
