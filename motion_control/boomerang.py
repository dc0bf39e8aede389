"""Boomerang pursuit controller for driving to a pose.

The controller chases a "carrot" point placed behind the target along the
target heading:

    d = |target - current|
    carrot = target - d * lead * (cos(target_heading), sin(target_heading))

Because d shrinks as the robot approaches, the carrot slides towards the
target, so the robot sweeps in on a curve and arrives facing the target
heading. The carrot is recomputed from the current pose every tick; a fixed
carrot would make this an ordinary waypoint follower.
"""

import enum
import logging
import math
from typing import Dict, Optional, Tuple

from .geometry import Point, Pose, angle_error, bearing, distance, normalize_angle
from .model import WheelCommand, differential_mix
from .pid import PIDController

logger = logging.getLogger(__name__)


class ControlState(enum.Enum):
    """Lifecycle of a single movement."""

    RUNNING = "running"
    SETTLED = "settled"
    CANCELLED = "cancelled"


def compute_carrot(current: Pose, target: Pose, lead_fraction: float) -> Point:
    """Compute the intermediate point the robot steers towards.

    Args:
        current: Current robot pose
        target: Target pose. Without a heading the carrot is the target point.
        lead_fraction: How far behind the target the carrot sits, as a fraction
            of the remaining distance. Clamped to [0, 1]; larger values give
            more curved approaches.

    Returns:
        Carrot point. Equal to the target when the robot is on the target.
    """
    if not target.has_heading or math.isnan(lead_fraction):
        return target.point

    lead = max(0.0, min(1.0, lead_fraction))
    d = distance(current, target)
    return Point(
        target.x - d * math.cos(target.heading) * lead,
        target.y - d * math.sin(target.heading) * lead,
    )


class BoomerangController:
    """Drive-to-pose controller built on two PID loops.

    The linear PID drives distance-to-target towards zero and produces forward
    power. The angular PID drives the heading error towards zero and produces
    turning power. Far from the target the heading error is the bearing error
    to the carrot. Within ``bearing_switch_distance`` the linear error becomes
    the signed along-track distance, so the robot backs up instead of circling
    if it overshoots. There the heading error is the bearing error to the
    target itself (reversed when the target is behind) until the robot is
    within ``linear_deadband`` of the approach line, and the target heading
    error after that.

    Output mixing:
        left = linear + angular
        right = linear - angular

    so turning power is clockwise-positive.

    Attributes:
        target: Pose being driven to
        lead_fraction: Carrot lead in [0, 1]
        linear_deadband: Distance settle threshold
        angular_deadband: Heading settle threshold (radians)
        state: Current ControlState
    """

    def __init__(
        self,
        target: Pose,
        linear_pid: PIDController,
        angular_pid: PIDController,
        lead_fraction: float = 0.6,
        linear_deadband: float = 0.5,
        angular_deadband: float = math.radians(2.0),
        bearing_switch_distance: float = 3.0,
        cosine_scaling: bool = False,
    ):
        """Initialize the controller.

        Args:
            target: Pose to drive to
            linear_pid: Controller for distance-to-target
            angular_pid: Controller for heading error
            lead_fraction: Carrot lead fraction, clamped to [0, 1]. Default: 0.6
            linear_deadband: Distance within which position counts as reached
            angular_deadband: Heading error (radians) within which heading
                counts as reached
            bearing_switch_distance: Distance inside which steering switches
                from carrot bearing to target heading
            cosine_scaling: Scale forward power by cos(bearing error) while
                far from the target, so the robot turns before driving
        """
        self.target = target
        self.linear_pid = linear_pid
        self.angular_pid = angular_pid
        self.lead_fraction = max(0.0, min(1.0, lead_fraction))
        self.linear_deadband = linear_deadband
        self.angular_deadband = angular_deadband
        self.bearing_switch_distance = bearing_switch_distance
        self.cosine_scaling = cosine_scaling

        self.state = ControlState.RUNNING
        self.iterations: int = 0
        self.last_carrot: Point = target.point
        self.last_linear_error: float = math.nan
        self.last_angular_error: float = math.nan
        self.last_command: WheelCommand = WheelCommand.stop()

    def errors(self, pose: Pose) -> Tuple[float, float]:
        """Settle errors for a pose.

        Returns:
            Tuple of (distance to target, target heading error in radians).
            The heading error is 0 when the target has no heading.
        """
        linear_error = distance(pose, self.target)
        if self.target.has_heading:
            heading_error = angle_error(self.target.heading, pose.heading)
        else:
            heading_error = 0.0
        return linear_error, heading_error

    def cross_track_error(self, pose: Pose) -> float:
        """Distance from the line through the target along its heading.

        Equal to the distance to the target when the target has no heading.
        """
        if not self.target.has_heading:
            return distance(pose, self.target)
        dx = pose.x - self.target.x
        dy = pose.y - self.target.y
        return abs(dx * math.sin(self.target.heading) - dy * math.cos(self.target.heading))

    def is_settled(self, pose: Pose) -> bool:
        """Settle predicate: both errors inside their deadbands."""
        linear_error, heading_error = self.errors(pose)
        return linear_error <= self.linear_deadband and abs(heading_error) <= self.angular_deadband

    def step(self, pose: Pose) -> WheelCommand:
        """Run one control tick.

        Args:
            pose: Latest pose estimate

        Returns:
            Wheel command for this tick. A stop command once settled or
            cancelled.
        """
        if self.state is not ControlState.RUNNING:
            return WheelCommand.stop()

        self.iterations += 1
        linear_error, heading_error = self.errors(pose)
        self.last_linear_error = linear_error
        self.last_angular_error = heading_error

        if linear_error <= self.linear_deadband and abs(heading_error) <= self.angular_deadband:
            self._finish(ControlState.SETTLED)
            logger.info(f"Settled at {pose} after {self.iterations} ticks")
            return self.last_command

        carrot = compute_carrot(pose, self.target, self.lead_fraction)
        self.last_carrot = carrot

        if linear_error > self.bearing_switch_distance:
            steer_error = angle_error(bearing(pose, carrot), pose.heading)
            drive_error = linear_error
            if self.cosine_scaling:
                drive_error *= max(0.0, math.cos(steer_error))
        else:
            bearing_error = angle_error(bearing(pose, self.target), pose.heading)
            drive_error = linear_error * math.cos(bearing_error)
            if self.cross_track_error(pose) > self.linear_deadband:
                # Off the approach line: point at the target, backing up if it is behind
                steer_error = bearing_error
                if abs(bearing_error) > math.pi / 2:
                    steer_error = normalize_angle(bearing_error + math.pi)
            else:
                steer_error = heading_error

        linear = self.linear_pid.update(drive_error)
        # Counterclockwise error needs clockwise-negative turn power
        angular = self.angular_pid.update(-steer_error)

        self.last_command = differential_mix(linear, angular)
        logger.debug(
            f"tick {self.iterations}: d={linear_error:.3f} steer={math.degrees(steer_error):.1f}° "
            f"carrot=({carrot.x:.2f}, {carrot.y:.2f}) cmd=({self.last_command.left:.1f}, "
            f"{self.last_command.right:.1f})"
        )
        return self.last_command

    def cancel(self) -> None:
        """Abandon the movement. Further steps return stop commands."""
        if self.state is ControlState.RUNNING:
            self._finish(ControlState.CANCELLED)
            logger.info(f"Movement to {self.target} cancelled after {self.iterations} ticks")

    def retarget(self, target: Pose) -> None:
        """Start a new movement, clearing PID state from the previous one."""
        self.linear_pid.reset()
        self.angular_pid.reset()
        self.target = target
        self.state = ControlState.RUNNING
        self.iterations = 0
        self.last_carrot = target.point
        self.last_command = WheelCommand.stop()

    def _finish(self, state: ControlState) -> None:
        self.state = state
        self.linear_pid.reset()
        self.angular_pid.reset()
        self.last_command = WheelCommand.stop()

    def get_diagnostics(self) -> Dict[str, float]:
        """Get the latest tick's values for logging."""
        return {
            "linear_error": self.last_linear_error,
            "angular_error": self.last_angular_error,
            "carrot_x": self.last_carrot.x,
            "carrot_y": self.last_carrot.y,
            "linear_integral": self.linear_pid.integral,
            "angular_integral": self.angular_pid.integral,
            "left": self.last_command.left,
            "right": self.last_command.right,
        }

    @classmethod
    def from_config(
        cls,
        target: Pose,
        cfg=None,
        lead_fraction: Optional[float] = None,
        cosine_scaling: Optional[bool] = None,
    ) -> "BoomerangController":
        """Build a controller with gains and deadbands from configuration.

        Args:
            target: Pose to drive to
            cfg: Configuration module or object. If None, uses
                motion_control.config.
            lead_fraction: Overrides cfg.BOOMERANG_LEAD when given
            cosine_scaling: Overrides cfg.BOOMERANG_COSINE_SCALING when given
        """
        if cfg is None:
            from motion_control import config as cfg

        return cls(
            target,
            PIDController.linear_from_config(cfg),
            PIDController.angular_from_config(cfg),
            lead_fraction=cfg.BOOMERANG_LEAD if lead_fraction is None else lead_fraction,
            linear_deadband=cfg.BOOMERANG_LINEAR_DEADBAND,
            angular_deadband=cfg.BOOMERANG_ANGULAR_DEADBAND,
            bearing_switch_distance=cfg.BOOMERANG_BEARING_SWITCH_DISTANCE,
            cosine_scaling=cfg.BOOMERANG_COSINE_SCALING if cosine_scaling is None else cosine_scaling,
        )
