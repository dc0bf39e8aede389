"""
Differential drive command model.

This module mixes forward and turning power into individual wheel commands,
and provides the matching forward kinematics used by the simulator.
"""

import math
from typing import NamedTuple, Tuple

from .config import OUTPUT_MAX, OUTPUT_MIN


class WheelCommand(NamedTuple):
    """Per-side drive command (motor power units)."""

    left: float
    right: float

    @classmethod
    def stop(cls) -> "WheelCommand":
        return cls(0.0, 0.0)


def differential_mix(
    linear: float,
    angular: float,
    output_min: float = OUTPUT_MIN,
    output_max: float = OUTPUT_MAX,
) -> WheelCommand:
    """
    Combine forward and turning power into wheel commands.

        left = linear + angular
        right = linear - angular

    Positive ``angular`` therefore turns the robot clockwise.

    Args:
        linear: Forward power
        angular: Clockwise turning power
        output_min: Lower command limit
        output_max: Upper command limit

    Returns:
        WheelCommand clamped to [output_min, output_max]. Non-finite inputs
        produce a stop command.

    Example:
        >>> differential_mix(50.0, 10.0)
        WheelCommand(left=60.0, right=40.0)
    """
    if not (math.isfinite(linear) and math.isfinite(angular)):
        return WheelCommand.stop()

    left = linear + angular
    right = linear - angular

    # Clamp to respect actuator limits
    left = max(output_min, min(output_max, left))
    right = max(output_min, min(output_max, right))

    return WheelCommand(left, right)


def forward_kinematics(v_left: float, v_right: float, track_width: float) -> Tuple[float, float]:
    """
    Compute body velocities from wheel velocities.

        v = (v_left + v_right) / 2
        omega = (v_right - v_left) / L

    Args:
        v_left: Left wheel surface speed
        v_right: Right wheel surface speed
        track_width: Distance between wheels (L)

    Returns:
        tuple[float, float]: (v, omega), omega counterclockwise-positive in rad/s.
        omega is 0 for a non-positive track width.
    """
    v = (v_left + v_right) / 2.0
    omega = (v_right - v_left) / track_width if track_width > 0 else 0.0
    return v, omega
