"""Collaborator interfaces: sensor source, actuator sink and clock.

The control core never talks to hardware directly. Anything that can produce
encoder readings, accept wheel commands or tell time can be plugged in, which
is how the simulator and the tests drive the same code as a real robot.
"""

import threading
import time
from typing import NamedTuple, Optional, Protocol


class SensorSample(NamedTuple):
    """One reading from the drivetrain sensors.

    Attributes:
        left_position: Left encoder position (degrees, cumulative)
        right_position: Right encoder position (degrees, cumulative)
        heading: Heading sensor reading in its native convention (degrees),
            or None when the robot has no heading sensor
    """

    left_position: float
    right_position: float
    heading: Optional[float] = None


class SensorSource(Protocol):
    def read(self) -> SensorSample:
        ...


class ActuatorSink(Protocol):
    def command(self, left: float, right: float) -> None:
        ...


class Clock(Protocol):
    def now(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class MonotonicClock:
    """Wall clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)


class SimulatedClock:
    """Manually advanced clock for deterministic loops.

    ``sleep`` advances simulated time instantly instead of blocking, so a
    control loop that would take seconds of wall time finishes immediately.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def sleep(self, seconds: float) -> None:
        self.advance(seconds)

    def advance(self, seconds: float) -> None:
        if seconds > 0:
            with self._lock:
                self._now += seconds
