"""Planar pose and point types shared by the estimator and controllers.

Headings are radians measured counterclockwise from the +x axis. A pose may
leave its heading unspecified, represented by ``math.nan``.
"""

import math
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Point:
    """A position in the field frame."""

    x: float
    y: float


@dataclass(frozen=True)
class Pose:
    """Immutable robot pose.

    Attributes:
        x: Position along the field x axis
        y: Position along the field y axis
        heading: Counterclockwise angle from +x (radians), or NaN when unset.
            Not wrapped unless the producer wraps it.
    """

    x: float = 0.0
    y: float = 0.0
    heading: float = math.nan

    @property
    def has_heading(self) -> bool:
        """True when the heading is a real number."""
        return not math.isnan(self.heading)

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    def with_heading(self, heading: float) -> "Pose":
        """Return a copy of this pose with a different heading."""
        return replace(self, heading=heading)

    def __str__(self) -> str:
        if self.has_heading:
            return f"Pose(x={self.x:.3f}, y={self.y:.3f}, heading={math.degrees(self.heading):.1f}°)"
        return f"Pose(x={self.x:.3f}, y={self.y:.3f}, heading=unset)"


def distance(a, b) -> float:
    """Euclidean distance between two poses or points."""
    return math.hypot(b.x - a.x, b.y - a.y)


def bearing(source, target) -> float:
    """Counterclockwise angle of the vector from ``source`` to ``target`` (radians)."""
    return math.atan2(target.y - source.y, target.x - source.x)


def normalize_angle(angle: float) -> float:
    """Wrap an angle to [-pi, pi]."""
    return math.atan2(math.sin(angle), math.cos(angle))


def angle_error(target: float, current: float) -> float:
    """Shortest signed rotation from ``current`` to ``target`` (radians).

    Positive values mean a counterclockwise turn is needed.
    """
    return normalize_angle(target - current)
