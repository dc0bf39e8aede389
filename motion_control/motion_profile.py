"""Trapezoidal motion profiles for one-dimensional moves.

A profile splits a travel distance into three phases:
- Accel: velocity ramps linearly from 0 to the peak velocity
- Cruise: velocity holds at the peak
- Decel: velocity ramps linearly back to 0

When the distance is too short to reach the requested velocity, the cruise
phase disappears and the peak velocity is lowered so the robot still stops
exactly at the end of the move (a triangular profile).
"""

import math
from dataclasses import dataclass
from typing import Dict

import numpy as np
import numpy.typing as npt


@dataclass(frozen=True)
class ProfileSegment:
    """Immutable phase split of a planned move.

    Distances are magnitudes; ``direction`` carries the sign of the move.

    Attributes:
        accel_time: Duration of the accel phase (s)
        accel_distance: Distance covered while accelerating
        cruise_time: Duration of the cruise phase (s)
        cruise_distance: Distance covered at peak velocity
        decel_time: Duration of the decel phase (s)
        decel_distance: Distance covered while decelerating
        peak_velocity: Velocity held during cruise (magnitude)
        direction: +1 for forward moves, -1 for reverse moves
    """

    accel_time: float = 0.0
    accel_distance: float = 0.0
    cruise_time: float = 0.0
    cruise_distance: float = 0.0
    decel_time: float = 0.0
    decel_distance: float = 0.0
    peak_velocity: float = 0.0
    direction: int = 1

    @property
    def total_time(self) -> float:
        return self.accel_time + self.cruise_time + self.decel_time

    @property
    def total_distance(self) -> float:
        """Unsigned travel distance."""
        return self.accel_distance + self.cruise_distance + self.decel_distance

    @property
    def acceleration(self) -> float:
        """Ramp slope (magnitude), 0 for an empty profile."""
        if self.accel_time <= 0:
            return 0.0
        return self.peak_velocity / self.accel_time


def plan(total_distance: float, max_velocity: float, max_acceleration: float) -> ProfileSegment:
    """Plan a symmetric trapezoidal profile.

    Args:
        total_distance: Signed travel distance
        max_velocity: Velocity limit (positive)
        max_acceleration: Acceleration limit (positive), used for both ramps

    Returns:
        ProfileSegment. Non-positive limits, zero distance or non-finite inputs
        give the empty profile, which commands zero velocity at every time.
    """
    if not all(math.isfinite(v) for v in (total_distance, max_velocity, max_acceleration)):
        return ProfileSegment()
    if total_distance == 0 or max_velocity <= 0 or max_acceleration <= 0:
        return ProfileSegment()

    direction = 1 if total_distance > 0 else -1
    distance = abs(total_distance)

    accel_time = max_velocity / max_acceleration
    accel_distance = 0.5 * max_acceleration * accel_time**2
    peak_velocity = max_velocity

    if accel_distance > distance / 2.0:
        # Triangular profile: ramp up over half the distance, ramp down over the rest
        accel_time = math.sqrt((distance / 2.0) / (max_acceleration / 2.0))
        accel_distance = distance / 2.0
        peak_velocity = max_acceleration * accel_time
        cruise_distance = 0.0
        cruise_time = 0.0
    else:
        cruise_distance = distance - 2.0 * accel_distance
        cruise_time = cruise_distance / peak_velocity

    return ProfileSegment(
        accel_time=accel_time,
        accel_distance=accel_distance,
        cruise_time=cruise_time,
        cruise_distance=cruise_distance,
        decel_time=accel_time,
        decel_distance=accel_distance,
        peak_velocity=peak_velocity,
        direction=direction,
    )


def velocity_at(segment: ProfileSegment, elapsed_time: float) -> float:
    """Velocity setpoint at a time since the start of the move.

    Args:
        segment: Planned profile
        elapsed_time: Seconds since the move started

    Returns:
        Signed velocity. 0 before the move starts and once it has finished.
    """
    if elapsed_time < 0 or elapsed_time >= segment.total_time:
        return 0.0

    accel = segment.acceleration
    decel_start = segment.accel_time + segment.cruise_time

    if elapsed_time < segment.accel_time:
        speed = accel * elapsed_time
    elif elapsed_time < decel_start:
        speed = segment.peak_velocity
    else:
        speed = segment.peak_velocity - accel * (elapsed_time - decel_start)

    return segment.direction * max(0.0, speed)


def position_at(segment: ProfileSegment, elapsed_time: float) -> float:
    """Distance travelled at a time since the start of the move.

    Args:
        segment: Planned profile
        elapsed_time: Seconds since the move started

    Returns:
        Signed distance, 0 before the start and the full distance after the end.
    """
    if elapsed_time <= 0:
        return 0.0
    if elapsed_time >= segment.total_time:
        return segment.direction * segment.total_distance

    accel = segment.acceleration
    decel_start = segment.accel_time + segment.cruise_time

    if elapsed_time < segment.accel_time:
        travelled = 0.5 * accel * elapsed_time**2
    elif elapsed_time < decel_start:
        travelled = segment.accel_distance + segment.peak_velocity * (
            elapsed_time - segment.accel_time
        )
    else:
        tau = elapsed_time - decel_start
        travelled = (
            segment.accel_distance
            + segment.cruise_distance
            + segment.peak_velocity * tau
            - 0.5 * accel * tau**2
        )

    return segment.direction * min(travelled, segment.total_distance)


def sample_profile(segment: ProfileSegment, dt: float = 0.01) -> Dict[str, npt.NDArray[np.float64]]:
    """Sample a profile at regular intervals for plotting or offline analysis.

    Args:
        segment: Planned profile
        dt: Sample spacing in seconds (default: 0.01)

    Returns:
        Dictionary containing:
            't': Time array in seconds, from 0 to the profile end inclusive
            'velocity': Velocity setpoints
            'position': Position setpoints
    """
    if dt <= 0:
        dt = 0.01

    t_array = np.append(np.arange(0.0, segment.total_time, dt), segment.total_time)
    velocity = np.zeros_like(t_array)
    position = np.zeros_like(t_array)

    for i, t in enumerate(t_array):
        velocity[i] = velocity_at(segment, float(t))
        position[i] = position_at(segment, float(t))

    return {
        "t": t_array,
        "velocity": velocity,
        "position": position,
    }
