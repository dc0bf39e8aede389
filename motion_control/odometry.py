"""Odometry pose estimation for a differential-drive robot.

This module integrates wheel encoder travel into an absolute field pose:
- Encoder degrees are converted to travel distance using wheel geometry
- Heading comes from a heading sensor (gyro) or is derived from the
  difference in left and right wheel travel
- Each tick the change in forward travel is projected along the heading,
  approximating the arc driven since the last tick by a straight chord

The chord approximation error shrinks with the tick period, which is why the
estimator normally runs in its own fast background task (PoseEstimationTask)
while control loops read the latest pose snapshot.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Optional

from .geometry import Pose
from .interfaces import SensorSample, SensorSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WheelGeometry:
    """Drivetrain dimensions used to convert encoder degrees to distance.

    Attributes:
        circumference: Wheel circumference (length units)
        gear_ratio: Wheel revolutions per encoder revolution
        track_width: Distance between left and right wheels (length units).
            Only needed when heading is derived from the wheels.
    """

    circumference: float
    gear_ratio: float = 1.0
    track_width: float = 0.0

    def encoder_to_distance(self, degrees: float) -> float:
        """Convert an encoder reading in degrees to linear wheel travel."""
        return (degrees / 360.0) * self.circumference * self.gear_ratio


@dataclass(frozen=True)
class HeadingConvention:
    """Conversion from a sensor's native heading to counterclockwise degrees.

    A clockwise sensor reading ``h`` becomes ``360 - h``; the offset is then
    added and the result wrapped into [0, 360).

    Attributes:
        clockwise: True if the source increases clockwise
        offset_degrees: Heading (counterclockwise degrees) at a zero reading
    """

    clockwise: bool = True
    offset_degrees: float = 90.0

    @classmethod
    def identity(cls) -> "HeadingConvention":
        """Convention for sources already reporting counterclockwise degrees from +x."""
        return cls(clockwise=False, offset_degrees=0.0)

    def to_ccw_degrees(self, reading: float, offset_degrees: Optional[float] = None) -> float:
        """Convert a native reading to counterclockwise degrees in [0, 360).

        Args:
            reading: Native heading (degrees)
            offset_degrees: Overrides the configured offset when given
        """
        offset = self.offset_degrees if offset_degrees is None else offset_degrees
        ccw = (360.0 - reading) if self.clockwise else reading
        return (ccw + offset) % 360.0

    def to_ccw_radians(self, reading: float, offset_degrees: Optional[float] = None) -> float:
        return math.radians(self.to_ccw_degrees(reading, offset_degrees))

    def from_ccw_degrees(self, heading: float) -> float:
        """Inverse of to_ccw_degrees: the native reading for a heading, in [0, 360)."""
        if self.clockwise:
            return (self.offset_degrees - heading) % 360.0
        return (heading - self.offset_degrees) % 360.0


class OdometryEstimator:
    """Dead-reckoning pose estimator.

    Single writer: only one caller (normally a PoseEstimationTask) may call
    update(). The returned Pose values are immutable and safe to share.
    """

    def __init__(
        self,
        geometry: WheelGeometry,
        gyro_convention: Optional[HeadingConvention] = None,
        wheel_convention: Optional[HeadingConvention] = None,
        start_pose: Optional[Pose] = None,
    ):
        """Initialize the estimator.

        Args:
            geometry: Wheel circumference, gear ratio and track width
            gyro_convention: Conversion for heading sensor readings.
                Default: clockwise sensor, 90 degree offset
            wheel_convention: Conversion for wheel-derived heading.
                Default: counterclockwise, 90 degree offset
            start_pose: Initial pose. Default: origin facing the convention offset
        """
        self.geometry = geometry
        self.gyro_convention = gyro_convention or HeadingConvention(clockwise=True, offset_degrees=90.0)
        self.wheel_convention = wheel_convention or HeadingConvention(clockwise=False, offset_degrees=90.0)

        self._pose = Pose()
        self._prev_distance: float = 0.0
        self._left_origin: float = 0.0
        self._right_origin: float = 0.0
        self._heading_origin_deg: float = self.wheel_convention.offset_degrees
        self._missing_track_width_logged = False

        self.reset(start_pose)

    @property
    def pose(self) -> Pose:
        return self._pose

    def reset(
        self,
        pose: Optional[Pose] = None,
        left_position: float = 0.0,
        right_position: float = 0.0,
    ) -> None:
        """Restart integration from a known pose.

        Args:
            pose: New pose. Its heading, if set, becomes the origin for
                wheel-derived heading. Default: origin facing the wheel
                convention offset
            left_position: Current left encoder reading, treated as zero travel
            right_position: Current right encoder reading, treated as zero travel
        """
        if pose is None:
            pose = Pose(0.0, 0.0, math.radians(self.wheel_convention.offset_degrees))

        if pose.has_heading:
            self._heading_origin_deg = math.degrees(pose.heading)
        else:
            self._heading_origin_deg = self.wheel_convention.offset_degrees
            pose = pose.with_heading(math.radians(self._heading_origin_deg))

        self._pose = pose
        self._left_origin = left_position
        self._right_origin = right_position
        self._prev_distance = 0.0

    def _wheel_heading(self, left_distance: float, right_distance: float) -> Optional[float]:
        track_width = self.geometry.track_width
        if track_width <= 0:
            if not self._missing_track_width_logged:
                logger.warning("No heading sensor and track width <= 0; holding previous heading")
                self._missing_track_width_logged = True
            return None

        raw_degrees = math.degrees((right_distance - left_distance) / track_width)
        return self.wheel_convention.to_ccw_radians(raw_degrees, self._heading_origin_deg)

    def update(
        self,
        left_position: float,
        right_position: float,
        heading: Optional[float] = None,
    ) -> Pose:
        """Integrate one tick of encoder travel.

        Args:
            left_position: Left encoder reading (degrees)
            right_position: Right encoder reading (degrees)
            heading: Heading sensor reading in its native convention (degrees),
                or None to derive heading from the wheels

        Returns:
            The new pose. Unchanged if any reading is non-finite.
        """
        readings = (left_position, right_position) if heading is None else (
            left_position, right_position, heading
        )
        if not all(math.isfinite(v) for v in readings):
            logger.debug(f"Skipping odometry tick with non-finite readings: {readings}")
            return self._pose

        left_distance = self.geometry.encoder_to_distance(left_position - self._left_origin)
        right_distance = self.geometry.encoder_to_distance(right_position - self._right_origin)

        if heading is not None:
            heading_rad = self.gyro_convention.to_ccw_radians(heading)
        else:
            heading_rad = self._wheel_heading(left_distance, right_distance)
            if heading_rad is None:
                heading_rad = self._pose.heading

        current_distance = (left_distance + right_distance) / 2.0
        change_in_distance = current_distance - self._prev_distance

        x = self._pose.x + change_in_distance * math.cos(heading_rad)
        y = self._pose.y + change_in_distance * math.sin(heading_rad)

        # Exactly once per tick, after use
        self._prev_distance = current_distance

        self._pose = Pose(x, y, heading_rad)
        return self._pose

    def update_from_sample(self, sample: SensorSample) -> Pose:
        return self.update(sample.left_position, sample.right_position, sample.heading)

    @classmethod
    def from_config(cls, cfg=None, start_pose: Optional[Pose] = None) -> "OdometryEstimator":
        """Build an estimator from configuration constants.

        Args:
            cfg: Configuration module or object. If None, uses
                motion_control.config.
            start_pose: Initial pose
        """
        if cfg is None:
            from motion_control import config as cfg

        geometry = WheelGeometry(
            circumference=cfg.WHEEL_CIRCUMFERENCE,
            gear_ratio=cfg.GEAR_RATIO,
            track_width=cfg.TRACK_WIDTH,
        )
        return cls(
            geometry,
            gyro_convention=HeadingConvention(cfg.GYRO_CLOCKWISE, cfg.HEADING_OFFSET_DEGREES),
            wheel_convention=HeadingConvention(cfg.WHEEL_HEADING_CLOCKWISE, cfg.HEADING_OFFSET_DEGREES),
            start_pose=start_pose,
        )


class PoseEstimationTask:
    """Background task sampling the sensors at a fixed period.

    The task owns the estimator while running. Readers get the latest pose
    through the ``pose`` property, which always returns a complete snapshot.
    Once stopped, the pose stays frozen at its last value.

    Use ``step()`` instead of ``start()`` to drive the estimator
    deterministically from a test or a simulated clock.
    """

    def __init__(
        self,
        estimator: OdometryEstimator,
        sensor: SensorSource,
        period: float = 0.010,
    ):
        """Initialize the task.

        Args:
            estimator: Estimator to feed
            sensor: Source of encoder and heading readings
            period: Sampling period in seconds. Default: 0.010
        """
        self.estimator = estimator
        self.sensor = sensor
        self.period = period

        self._pose_lock = threading.Lock()
        self._step_lock = threading.Lock()
        self._pose: Pose = estimator.pose
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.tick_count: int = 0
        self.error_count: int = 0

    @property
    def pose(self) -> Pose:
        """Latest pose snapshot."""
        with self._pose_lock:
            return self._pose

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def step(self) -> Pose:
        """Run one sampling cycle and publish the result."""
        with self._step_lock:
            try:
                sample = self.sensor.read()
            except Exception as e:
                self.error_count += 1
                logger.error(f"Sensor read failed, skipping odometry tick: {e}")
                return self.pose

            pose = self.estimator.update_from_sample(sample)
            with self._pose_lock:
                self._pose = pose
            self.tick_count += 1
            return pose

    def reset(self, pose: Optional[Pose] = None) -> None:
        """Re-zero the estimator at ``pose`` using the current encoder readings.

        A failed sensor read is logged and leaves the current pose in place.
        """
        with self._step_lock:
            try:
                sample = self.sensor.read()
            except Exception as e:
                self.error_count += 1
                logger.error(f"Sensor read failed, keeping current pose: {e}")
                return
            self.estimator.reset(pose, sample.left_position, sample.right_position)
            with self._pose_lock:
                self._pose = self.estimator.pose

    def start(self) -> None:
        """Start sampling in a background thread. No-op if already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="pose-estimation", daemon=True)
        self._thread.start()
        logger.info(f"Pose estimation started ({self.period * 1000:.0f} ms period)")

    def stop(self, timeout: float = 1.0) -> None:
        """Stop the background thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"Pose estimation thread did not stop within {timeout:.1f}s")
            else:
                logger.info(f"Pose estimation stopped after {self.tick_count} ticks")
        self._thread = None

    def _run(self) -> None:
        while not self._stop_event.is_set():
            cycle_start = time.monotonic()
            self.step()
            elapsed = time.monotonic() - cycle_start
            self._stop_event.wait(max(0.0, self.period - elapsed))

    def __enter__(self) -> "PoseEstimationTask":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
