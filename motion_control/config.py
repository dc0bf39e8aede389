"""Configuration parameters for the motion control library.

This module centralizes all configuration parameters including:
- Physical robot parameters (wheel geometry, output limits)
- PID gains and anti-windup settings
- Motion profile limits
- Pursuit (boomerang) controller settings
- Task periods and session limits
- Visualization and WebSocket settings

All parameters are documented with their purpose, units and tuning rationale.
Classes exposing ``from_config`` read their defaults from this module.
"""

import math

# ============================================================================
# Physical Robot Parameters
# ============================================================================

WHEEL_CIRCUMFERENCE = 2.75 * math.pi
"""Drive wheel circumference (inches).

2.75" omni wheels are the common drivetrain wheel on competition robots.
Any length unit works as long as track width and targets use the same one.
"""

GEAR_RATIO = 1.0
"""Wheel revolutions per encoder revolution (dimensionless).

1.0 when the encoder reads the wheel shaft directly. For a motor encoder
geared 36:60 to the wheel, use 36 / 60 = 0.6.
"""

TRACK_WIDTH = 12.0
"""Distance between left and right wheel contact patches (inches).

Only used when heading is derived from the wheels (no gyro).
"""

OUTPUT_MIN = -127.0
"""Minimum wheel command (motor power units). Hardware limit."""

OUTPUT_MAX = 127.0
"""Maximum wheel command (motor power units). Hardware limit."""


# ============================================================================
# Heading Convention
# ============================================================================

GYRO_CLOCKWISE = True
"""Whether the heading sensor reports clockwise-positive degrees.

Inertial sensors on the target platform increase clockwise, while the
odometry math uses counterclockwise angles from +x. Set False for sensors
that already report counterclockwise angles.
"""

HEADING_OFFSET_DEGREES = 90.0
"""Start-heading offset added after the clockwise conversion (degrees).

90 means a robot whose sensor reads 0 at power-on faces +y ("up the field").
"""

WHEEL_HEADING_CLOCKWISE = False
"""Convention applied to heading derived from wheel travel.

(right - left) / track_width is counterclockwise-positive for a differential
drive, so no flip is needed by default.
"""


# ============================================================================
# PID Controller Parameters
# ============================================================================

LINEAR_KP = 8.0
"""Proportional gain for distance-to-target (power per inch).

Tuning rationale:
- At 16" away the proportional term alone saturates the drive
- Lower values (<5) leave a visible crawl on the final approach
"""

LINEAR_KI = 0.0
"""Integral gain for distance-to-target (power per inch-tick).

Disabled by default: the boomerang approach rarely sees steady-state error
large enough to need it, and integral action overshoots short moves.
"""

LINEAR_KD = 20.0
"""Derivative gain for distance-to-target (power per inch of error change).

Damps the approach so the robot does not coast past the target.
"""

ANGULAR_KP = 90.0
"""Proportional gain for heading error (power per radian).

Tuning rationale:
- 90 gives ~15 power at 10 degrees of error, enough to overcome scrub
- Higher values (>150) oscillate around the carrot bearing
"""

ANGULAR_KI = 0.0
"""Integral gain for heading error (power per radian-tick)."""

ANGULAR_KD = 200.0
"""Derivative gain for heading error (power per radian of error change)."""

PID_WINDUP_RANGE = None
"""Conditional integration range (error units), or None to disable.

Integral only accumulates while |error| is inside this range so large
initial errors do not charge the integrator.
"""

PID_INTEGRAL_CAP = None
"""Integral magnitude cap (error-sum units), or None to disable."""

PID_RESET_ON_ZERO_CROSSING = True
"""Zero the integral when the error changes sign (target overshoot)."""


# ============================================================================
# Motion Profile Parameters
# ============================================================================

PROFILE_MAX_VELOCITY = 48.0
"""Maximum profile cruise velocity (inches/second)."""

PROFILE_MAX_ACCELERATION = 60.0
"""Maximum profile acceleration (inches/second²).

Symmetric: the decel ramp uses the same magnitude.
"""

PROFILE_VELOCITY_GAIN = 127.0 / 60.0
"""Feedforward gain from profile velocity to motor power (power per in/s).

Approximately OUTPUT_MAX divided by free-running top speed.
"""

PROFILE_POSITION_KP = 6.0
"""Proportional gain correcting position lag behind the profile (power/in)."""

PROFILE_SETTLE_DEADBAND = 0.5
"""Position error below which a finished profile counts as settled (inches)."""


# ============================================================================
# Slew Rate Limiting
# ============================================================================

SLEW_RATE = 400.0
"""Maximum change in wheel command per second (power units/second).

At 10 ms control ticks this is 4 power units per tick, so a full-power
step from rest takes roughly a third of a second.
"""


# ============================================================================
# Pursuit (Boomerang) Controller Parameters
# ============================================================================

BOOMERANG_LEAD = 0.6
"""Carrot lead fraction (range: [0, 1]).

0 drives straight at the target point; larger values swing the approach
wider so the robot arrives aligned with the target heading.
"""

BOOMERANG_LINEAR_DEADBAND = 0.5
"""Distance-to-target settle threshold (inches)."""

BOOMERANG_ANGULAR_DEADBAND = math.radians(2.0)
"""Heading error settle threshold (radians)."""

BOOMERANG_BEARING_SWITCH_DISTANCE = 3.0
"""Distance inside which steering tracks target heading, not carrot bearing.

The bearing to the carrot becomes ill-conditioned as the robot reaches it.
"""

BOOMERANG_COSINE_SCALING = True
"""Scale forward power by cos(bearing error), floored at zero.

Stops the robot from driving forward while facing away from the carrot.
"""


# ============================================================================
# Task Periods and Session Limits
# ============================================================================

ODOMETRY_PERIOD = 0.010
"""Pose estimation sampling period (seconds).

10 ms matches the sensor refresh rate; shorter periods only resample stale
encoder values.
"""

CONTROL_PERIOD = 0.010
"""Control loop period (seconds)."""

SESSION_MAX_ITERATIONS = 1500
"""Control ticks before a movement is cancelled (15 s at CONTROL_PERIOD)."""

SESSION_TIMEOUT = None
"""Wall-clock limit for a movement (seconds), or None for iterations only."""


# ============================================================================
# Visualization Colors
# ============================================================================

PLOT_ORANGE = "#f74823"
"""Primary colour - actual trajectory and measured data."""

PLOT_BLUE = "#2374f7"
"""Secondary colour - targets, profiles and reference data."""

PLOT_TAUPE = "#686a5f"
"""Neutral colour for guides and grids."""

PLOT_YELLOW = "#ffa726"
"""Accent colour for carrot points and highlights."""

# Terminal color codes (ANSI escape sequences)
TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for orange (RGB: 247, 72, 35)."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for blue (RGB: 35, 116, 247)."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket server URI for the remote robot or simulator."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""
