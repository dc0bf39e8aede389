"""Kinematic differential-drive simulator.

SimulatedRobot stands in for the hardware: it accepts wheel commands like an
actuator sink and reports encoder and heading readings like a sensor source.
Physics advance lazily from a shared clock, so the pose-estimation task and the
control loop see one consistent world whether the clock is real or simulated.
"""

import logging
import math
import threading
from typing import Optional

import numpy as np

from .geometry import Pose
from .interfaces import Clock, SensorSample, SimulatedClock
from .model import forward_kinematics
from .odometry import HeadingConvention, WheelGeometry

logger = logging.getLogger(__name__)


class SimulatedRobot:
    """Ideal rolling differential drive with optional encoder noise.

    Wheel commands map linearly to wheel surface speed:
        v_wheel = command / output_max * max_wheel_speed

    Pose integration uses the exact arc model, so the only odometry error comes
    from the estimator's own chord approximation and any injected noise.

    Attributes:
        geometry: Wheel geometry used to produce encoder readings
        max_wheel_speed: Wheel surface speed at full command (length/s)
        has_gyro: If False, read() reports no heading
    """

    def __init__(
        self,
        geometry: WheelGeometry,
        clock: Optional[Clock] = None,
        start_pose: Optional[Pose] = None,
        max_wheel_speed: float = 60.0,
        output_max: float = 127.0,
        gyro_convention: Optional[HeadingConvention] = None,
        has_gyro: bool = True,
        encoder_noise_std: float = 0.0,
        seed: Optional[int] = None,
    ):
        """Initialize the simulator.

        Args:
            geometry: Wheel circumference, gear ratio and track width
            clock: Time source. Default: a new SimulatedClock
            start_pose: True starting pose. Default: origin facing +y
            max_wheel_speed: Wheel speed at full command. Default: 60.0
            output_max: Command magnitude mapped to max_wheel_speed. Default: 127.0
            gyro_convention: Native convention of the simulated heading sensor.
                Default: clockwise, 90 degree offset
            has_gyro: Whether read() includes a heading reading
            encoder_noise_std: Standard deviation of per-read encoder noise (degrees)
            seed: Seed for the noise generator
        """
        self.geometry = geometry
        self.clock = clock if clock is not None else SimulatedClock()
        self.max_wheel_speed = max_wheel_speed
        self.output_max = output_max
        self.gyro_convention = gyro_convention or HeadingConvention(clockwise=True, offset_degrees=90.0)
        self.has_gyro = has_gyro
        self.encoder_noise_std = encoder_noise_std
        self._rng = np.random.default_rng(seed)

        if start_pose is None or not start_pose.has_heading:
            start_pose = Pose(
                start_pose.x if start_pose else 0.0,
                start_pose.y if start_pose else 0.0,
                math.pi / 2.0,
            )

        self._lock = threading.Lock()
        self._x = start_pose.x
        self._y = start_pose.y
        self._heading = start_pose.heading
        self._left_travel = 0.0
        self._right_travel = 0.0
        self._left_command = 0.0
        self._right_command = 0.0
        self._last_time = self.clock.now()

    @property
    def true_pose(self) -> Pose:
        """Ground-truth pose, heading unwrapped."""
        with self._lock:
            self._integrate()
            return Pose(self._x, self._y, self._heading)

    def _wheel_speed(self, command: float) -> float:
        command = max(-self.output_max, min(self.output_max, command))
        return command / self.output_max * self.max_wheel_speed

    def _integrate(self) -> None:
        now = self.clock.now()
        dt = now - self._last_time
        self._last_time = now
        if dt <= 0:
            return

        v_left = self._wheel_speed(self._left_command)
        v_right = self._wheel_speed(self._right_command)
        v, omega = forward_kinematics(v_left, v_right, self.geometry.track_width)

        if abs(omega) < 1e-9:
            self._x += v * math.cos(self._heading) * dt
            self._y += v * math.sin(self._heading) * dt
        else:
            radius = v / omega
            new_heading = self._heading + omega * dt
            self._x += radius * (math.sin(new_heading) - math.sin(self._heading))
            self._y += radius * (-math.cos(new_heading) + math.cos(self._heading))
            self._heading = new_heading

        self._left_travel += v_left * dt
        self._right_travel += v_right * dt

    def _travel_to_degrees(self, travel: float) -> float:
        per_revolution = self.geometry.circumference * self.geometry.gear_ratio
        if per_revolution == 0:
            return 0.0
        return travel / per_revolution * 360.0

    def read(self) -> SensorSample:
        """Sample encoders (degrees) and, if fitted, the heading sensor."""
        with self._lock:
            self._integrate()
            left = self._travel_to_degrees(self._left_travel)
            right = self._travel_to_degrees(self._right_travel)
            heading_deg = math.degrees(self._heading)

        if self.encoder_noise_std > 0:
            left += float(self._rng.normal(0.0, self.encoder_noise_std))
            right += float(self._rng.normal(0.0, self.encoder_noise_std))

        heading = self.gyro_convention.from_ccw_degrees(heading_deg) if self.has_gyro else None
        return SensorSample(left, right, heading)

    def command(self, left: float, right: float) -> None:
        """Apply new wheel commands from now on."""
        with self._lock:
            self._integrate()
            self._left_command = left
            self._right_command = right
        logger.debug(f"sim command: left={left:.2f}, right={right:.2f}")

    @classmethod
    def from_config(cls, cfg=None, clock: Optional[Clock] = None, **kwargs) -> "SimulatedRobot":
        """Build a simulator matching the configured drivetrain."""
        if cfg is None:
            from motion_control import config as cfg

        geometry = WheelGeometry(
            circumference=cfg.WHEEL_CIRCUMFERENCE,
            gear_ratio=cfg.GEAR_RATIO,
            track_width=cfg.TRACK_WIDTH,
        )
        kwargs.setdefault(
            "gyro_convention", HeadingConvention(cfg.GYRO_CLOCKWISE, cfg.HEADING_OFFSET_DEGREES)
        )
        kwargs.setdefault("output_max", cfg.OUTPUT_MAX)
        return cls(geometry, clock=clock, **kwargs)
