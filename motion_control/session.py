"""Motion sessions: the control task side of the library.

A MotionSession owns the pose-estimation task for its lifetime and runs one
movement at a time in the caller's thread:
- Read the latest pose snapshot
- Step the active controller (boomerang or profiled drive)
- Slew-limit and send the wheel command to the actuator
- Check the controller's settle predicate and the iteration/time escape

Every movement ends in SETTLED or CANCELLED, followed by a stop command.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .boomerang import BoomerangController, ControlState
from .geometry import Pose
from .interfaces import ActuatorSink, Clock, MonotonicClock
from .model import WheelCommand, differential_mix
from .motion_profile import ProfileSegment, plan, position_at, velocity_at
from .odometry import PoseEstimationTask
from .pid import PIDController
from .slew import SlewLimiter

logger = logging.getLogger(__name__)

StepFunction = Callable[[Pose, float], Tuple[WheelCommand, ControlState]]


@dataclass
class MoveResult:
    """Outcome of one movement."""

    state: ControlState
    iterations: int
    elapsed: float
    final_pose: Pose

    @property
    def settled(self) -> bool:
        return self.state is ControlState.SETTLED


class ProfileFollower:
    """Straight-line drive along a trapezoidal profile.

    The profile velocity is fed forward and a PID corrects the lag between the
    profile position and the distance actually travelled along the start
    heading:

        command = kV * v_profile(t) + PID(x_profile(t) - x_travelled)

    Settles once the profile has finished and the position error is inside the
    deadband.
    """

    def __init__(
        self,
        segment: ProfileSegment,
        start_pose: Pose,
        position_pid: PIDController,
        velocity_gain: float,
        settle_deadband: float = 0.5,
    ):
        self.segment = segment
        self.start_pose = start_pose
        self.position_pid = position_pid
        self.velocity_gain = velocity_gain
        self.settle_deadband = settle_deadband
        self.state = ControlState.RUNNING
        self.last_error: float = 0.0
        self.last_velocity: float = 0.0

    def travelled(self, pose: Pose) -> float:
        """Signed distance moved along the start heading."""
        heading = self.start_pose.heading if self.start_pose.has_heading else 0.0
        dx = pose.x - self.start_pose.x
        dy = pose.y - self.start_pose.y
        return dx * math.cos(heading) + dy * math.sin(heading)

    def step(self, pose: Pose, elapsed: float) -> Tuple[WheelCommand, ControlState]:
        if self.state is not ControlState.RUNNING:
            return WheelCommand.stop(), self.state

        error = position_at(self.segment, elapsed) - self.travelled(pose)
        self.last_error = error
        self.last_velocity = velocity_at(self.segment, elapsed)

        if elapsed >= self.segment.total_time and abs(error) <= self.settle_deadband:
            self.state = ControlState.SETTLED
            self.position_pid.reset()
            return WheelCommand.stop(), self.state

        power = self.velocity_gain * self.last_velocity + self.position_pid.update(error)
        return differential_mix(power, 0.0), self.state

    def cancel(self) -> None:
        if self.state is ControlState.RUNNING:
            self.state = ControlState.CANCELLED
            self.position_pid.reset()


class MotionSession:
    """Owns the pose-estimation task and runs control loops against it.

    With ``background=True`` the pose task samples in its own thread for the
    life of the session. With ``background=False`` the session steps the pose
    task once per control tick instead, which together with a SimulatedClock
    makes every movement fully deterministic.
    """

    def __init__(
        self,
        pose_task: PoseEstimationTask,
        actuator: ActuatorSink,
        clock: Optional[Clock] = None,
        control_period: float = 0.010,
        slew_rate: Optional[float] = None,
        max_iterations: Optional[int] = 1500,
        timeout: Optional[float] = None,
        background: bool = True,
        data_collector=None,
    ):
        """Initialize the session.

        Args:
            pose_task: Pose estimation task to own
            actuator: Sink for wheel commands
            clock: Time source. Default: MonotonicClock
            control_period: Control tick period in seconds. Default: 0.010
            slew_rate: Wheel command slew rate (units/s), or None to disable
            max_iterations: Ticks before a movement is cancelled, or None
            timeout: Seconds before a movement is cancelled, or None
            background: Run the pose task in its own thread
            data_collector: Optional DataCollector receiving every tick
        """
        self.pose_task = pose_task
        self.actuator = actuator
        self.clock = clock if clock is not None else MonotonicClock()
        self.control_period = control_period
        self.max_iterations = max_iterations
        self.timeout = timeout
        self.background = background
        self.data_collector = data_collector

        self._left_slew = SlewLimiter(slew_rate) if slew_rate else None
        self._right_slew = SlewLimiter(slew_rate) if slew_rate else None
        self._started = False

    @property
    def pose(self) -> Pose:
        return self.pose_task.pose

    def start(self) -> None:
        if self._started:
            return
        if self.background:
            self.pose_task.start()
        self._started = True

    def close(self) -> None:
        """Stop the robot and the pose task. The pose stays frozen afterwards."""
        self.actuator.command(0.0, 0.0)
        if self.background:
            self.pose_task.stop()
        self._started = False

    def __enter__(self) -> "MotionSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _limit(self, command: WheelCommand, elapsed: float) -> WheelCommand:
        if self._left_slew is None or self._right_slew is None:
            return command
        return WheelCommand(
            self._left_slew.step(command.left, elapsed),
            self._right_slew.step(command.right, elapsed),
        )

    def run(self, step: StepFunction, cancel: Callable[[], None], label: str = "move") -> MoveResult:
        """Run a control loop until it settles or hits the escape limits.

        Args:
            step: Called each tick with (pose, elapsed seconds); returns the
                command and the controller state
            cancel: Called when the iteration or time limit is reached
            label: Name used in log messages

        Returns:
            MoveResult with the final state
        """
        self.start()

        iterations = 0
        start_time = self.clock.now()
        last_time = start_time
        state = ControlState.RUNNING

        while True:
            if not self.background:
                self.pose_task.step()
            pose = self.pose_task.pose
            now = self.clock.now()
            elapsed = now - start_time

            command, state = step(pose, elapsed)
            if state is not ControlState.RUNNING:
                break

            out_of_iterations = self.max_iterations is not None and iterations >= self.max_iterations
            out_of_time = self.timeout is not None and elapsed >= self.timeout
            if out_of_iterations or out_of_time:
                cancel()
                state = ControlState.CANCELLED
                logger.warning(f"{label} cancelled after {iterations} ticks ({elapsed:.2f}s)")
                break

            command = self._limit(command, now - last_time)
            self.actuator.command(command.left, command.right)
            if self.data_collector is not None:
                self.data_collector.log_tick(now, pose, command)

            last_time = now
            iterations += 1
            self.clock.sleep(self.control_period)

        self.actuator.command(0.0, 0.0)
        if self._left_slew is not None and self._right_slew is not None:
            self._left_slew.reset()
            self._right_slew.reset()

        result = MoveResult(state, iterations, self.clock.now() - start_time, self.pose_task.pose)
        if self.data_collector is not None:
            self.data_collector.log_result(label, result)
        logger.info(f"{label}: {state.value} in {iterations} ticks at {result.final_pose}")
        return result

    def drive_to_pose(self, target: Pose, controller: Optional[BoomerangController] = None) -> MoveResult:
        """Drive to ``target`` with a boomerang controller.

        Args:
            target: Pose to drive to
            controller: Controller to use. Default: one built from config.
                An existing controller is retargeted, clearing its PID state.
        """
        if controller is None:
            controller = BoomerangController.from_config(target)
        else:
            controller.retarget(target)

        def step(pose: Pose, elapsed: float) -> Tuple[WheelCommand, ControlState]:
            command = controller.step(pose)
            if self.data_collector is not None and controller.state is ControlState.RUNNING:
                self.data_collector.log_diagnostics(self.clock.now(), controller.get_diagnostics())
            return command, controller.state

        return self.run(step, controller.cancel, label=f"drive_to_pose({target.x:.2f}, {target.y:.2f})")

    def drive_profiled(
        self,
        distance: float,
        max_velocity: Optional[float] = None,
        max_acceleration: Optional[float] = None,
        position_pid: Optional[PIDController] = None,
        cfg=None,
    ) -> MoveResult:
        """Drive straight along the current heading following a trapezoidal profile.

        Args:
            distance: Signed distance to travel
            max_velocity: Profile velocity limit. Default: cfg.PROFILE_MAX_VELOCITY
            max_acceleration: Profile acceleration limit.
                Default: cfg.PROFILE_MAX_ACCELERATION
            position_pid: Controller for position lag. Default: P-only from config
            cfg: Configuration module or object. If None, uses
                motion_control.config.
        """
        if cfg is None:
            from motion_control import config as cfg

        segment = plan(
            distance,
            cfg.PROFILE_MAX_VELOCITY if max_velocity is None else max_velocity,
            cfg.PROFILE_MAX_ACCELERATION if max_acceleration is None else max_acceleration,
        )
        if position_pid is None:
            position_pid = PIDController(cfg.PROFILE_POSITION_KP)
        else:
            position_pid.reset()

        if not self.background:
            self.pose_task.step()
        follower = ProfileFollower(
            segment,
            self.pose_task.pose,
            position_pid,
            velocity_gain=cfg.PROFILE_VELOCITY_GAIN,
            settle_deadband=cfg.PROFILE_SETTLE_DEADBAND,
        )
        logger.info(
            f"Profile: {segment.total_distance:.2f} over {segment.total_time:.2f}s "
            f"(peak {segment.peak_velocity:.2f})"
        )

        def step(pose: Pose, elapsed: float) -> Tuple[WheelCommand, ControlState]:
            command, state = follower.step(pose, elapsed)
            if self.data_collector is not None and state is ControlState.RUNNING:
                self.data_collector.log_diagnostics(
                    self.clock.now(),
                    {"position_error": follower.last_error, "profile_velocity": follower.last_velocity},
                )
            return command, state

        return self.run(step, follower.cancel, label=f"drive_profiled({distance:.2f})")
