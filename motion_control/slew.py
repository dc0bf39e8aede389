"""Slew-rate limiting for actuator commands.

Limits how fast a command may change between successive calls so that a
sudden full-power request ramps up instead of jerking the drivetrain.
"""

import math


def limit(desired: float, previous: float, rate: float, elapsed_time: float) -> float:
    """Clamp the change from ``previous`` towards ``desired``.

    The step is limited to ±rate * elapsed_time.

    Args:
        desired: Requested command
        previous: Command issued on the previous call
        rate: Maximum change per second (positive)
        elapsed_time: Seconds since the previous call

    Returns:
        The rate-limited command. ``previous`` is returned unchanged when no
        time has elapsed, the rate is not positive, or any input is non-finite.
    """
    if desired == previous:
        return desired
    if not all(math.isfinite(v) for v in (desired, previous, rate, elapsed_time)):
        return previous
    if elapsed_time <= 0 or rate <= 0:
        return previous

    max_step = rate * elapsed_time
    step = desired - previous
    if abs(step) > max_step:
        return previous + math.copysign(max_step, step)
    return desired


class SlewLimiter:
    """Stateful slew limiter remembering its last output.

    Attributes:
        rate: Maximum change per second
    """

    def __init__(self, rate: float, initial: float = 0.0):
        """Initialize the limiter.

        Args:
            rate: Maximum change per second (positive)
            initial: Starting output. Default: 0.0
        """
        self.rate = rate
        self._output = initial

    @property
    def output(self) -> float:
        """Most recent limited output."""
        return self._output

    def step(self, desired: float, elapsed_time: float) -> float:
        """Move towards ``desired`` by at most rate * elapsed_time."""
        self._output = limit(desired, self._output, self.rate, elapsed_time)
        return self._output

    def reset(self, value: float = 0.0) -> None:
        """Set the output directly, e.g. to 0 when a movement ends."""
        self._output = value
