"""PID controller with composable anti-windup policies.

This module provides the error-feedback controller used by every control loop
in the library: the boomerang pursuit controller drives one instance for
distance and one for heading, and profiled drives use one to correct position
lag behind the motion profile.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


@dataclass(frozen=True)
class AntiWindup:
    """Anti-windup policy for the integral accumulator.

    The policies compose. Per tick they are applied in this order: zero-crossing
    reset, then conditional integration and integral clamp gating, then
    accumulation.

    Attributes:
        windup_range: Only accumulate when |error| < windup_range. None disables.
        integral_cap: Only accumulate while |integral| < integral_cap. None disables.
        reset_on_zero_crossing: Zero the integral when the error changes sign
            relative to the previous error.
    """

    windup_range: Optional[float] = None
    integral_cap: Optional[float] = None
    reset_on_zero_crossing: bool = False

    @classmethod
    def disabled(cls) -> "AntiWindup":
        return cls()


class PIDController:
    """Stateful PID controller.

    Control law:
        output = kP * e + kI * integral(e) + kD * (e - e_prev)

    The integral is a plain running sum and the derivative a plain difference,
    so the caller owns the call cadence. Passing ``dt`` switches to
    time-scaled terms: integral += e * dt and derivative = (e - e_prev) / dt.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        anti_windup: Integral accumulation policy
        dt: Optional fixed timestep for time-scaled terms (seconds)
        output_min: Optional lower clamp on the returned value
        output_max: Optional upper clamp on the returned value
    """

    def __init__(
        self,
        kp: float = 0.0,
        ki: float = 0.0,
        kd: float = 0.0,
        anti_windup: Optional[AntiWindup] = None,
        dt: Optional[float] = None,
        output_min: Optional[float] = None,
        output_max: Optional[float] = None,
    ):
        """Initialize the controller.

        Args:
            kp: Proportional gain. Default: 0.0
            ki: Integral gain. Default: 0.0
            kd: Derivative gain. Default: 0.0
            anti_windup: Anti-windup policy. Default: all policies disabled
            dt: Fixed timestep (seconds) for time-scaled integral and
                derivative. None or a non-positive value disables scaling.
            output_min: Lower output clamp. Default: unclamped
            output_max: Upper output clamp. Default: unclamped
        """
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.anti_windup = anti_windup if anti_windup is not None else AntiWindup.disabled()
        self.dt = dt if dt is not None and dt > 0 else None
        self.output_min = output_min
        self.output_max = output_max

        # Accumulated state, changed only by update() and reset()
        self._integral: float = 0.0
        self._prev_error: float = 0.0
        self._derivative: float = 0.0

    @property
    def integral(self) -> float:
        """Current integral accumulator value."""
        return self._integral

    @property
    def previous_error(self) -> float:
        """Error passed to the most recent update()."""
        return self._prev_error

    def set_gains(self, kp: float, ki: float, kd: float) -> None:
        """Replace the gains without touching accumulated state."""
        self.kp = kp
        self.ki = ki
        self.kd = kd

    def _next_integral(self, error: float) -> float:
        policy = self.anti_windup
        integral = self._integral

        # Overshoot: discard accumulation from the old direction
        if policy.reset_on_zero_crossing and _sign(error) != _sign(self._prev_error):
            integral = 0.0

        if policy.windup_range is not None and not abs(error) < policy.windup_range:
            return integral
        if policy.integral_cap is not None and not abs(integral) < policy.integral_cap:
            return integral

        step = error * self.dt if self.dt is not None else error
        return integral + step

    def update(self, error: float) -> float:
        """Advance the controller one tick and return its output.

        Args:
            error: Setpoint minus measurement

        Returns:
            Controller output. NaN when ``error`` is NaN; the accumulated state
            is left untouched in that case.
        """
        if math.isnan(error):
            logger.debug("PID update skipped for NaN error")
            return math.nan

        integral = self._next_integral(error)
        derivative = error - self._prev_error
        if self.dt is not None:
            derivative /= self.dt

        # Integral and previous error change together
        self._integral = integral
        self._prev_error = error
        self._derivative = derivative

        output = self.kp * error + self.ki * integral + self.kd * derivative

        if self.output_max is not None:
            output = min(self.output_max, output)
        if self.output_min is not None:
            output = max(self.output_min, output)
        return output

    def reset(self) -> None:
        """Zero the integral and previous error.

        Call this whenever a control session ends and another begins, otherwise
        the stale accumulation carries into the next movement.
        """
        self._integral = 0.0
        self._prev_error = 0.0
        self._derivative = 0.0

    def get_diagnostics(self, error: float) -> Dict[str, float]:
        """Get the current terms for logging and tuning.

        Args:
            error: Error passed to the most recent update()

        Returns:
            Dictionary with the error, integral and each weighted term
        """
        return {
            "error": error,
            "integral": self._integral,
            "p_term": self.kp * error,
            "i_term": self.ki * self._integral,
            "d_term": self.kd * self._derivative,
        }

    @classmethod
    def linear_from_config(cls, cfg=None) -> "PIDController":
        """Build the distance controller from config gains."""
        if cfg is None:
            from motion_control import config as cfg
        return cls(
            cfg.LINEAR_KP,
            cfg.LINEAR_KI,
            cfg.LINEAR_KD,
            _anti_windup_from_config(cfg),
            output_min=cfg.OUTPUT_MIN,
            output_max=cfg.OUTPUT_MAX,
        )

    @classmethod
    def angular_from_config(cls, cfg=None) -> "PIDController":
        """Build the heading controller from config gains."""
        if cfg is None:
            from motion_control import config as cfg
        return cls(
            cfg.ANGULAR_KP,
            cfg.ANGULAR_KI,
            cfg.ANGULAR_KD,
            _anti_windup_from_config(cfg),
            output_min=cfg.OUTPUT_MIN,
            output_max=cfg.OUTPUT_MAX,
        )


def _anti_windup_from_config(cfg) -> AntiWindup:
    return AntiWindup(
        windup_range=cfg.PID_WINDUP_RANGE,
        integral_cap=cfg.PID_INTEGRAL_CAP,
        reset_on_zero_crossing=cfg.PID_RESET_ON_ZERO_CROSSING,
    )
