"""
Component modes for switching optional control behaviours.

This module defines which optional parts of the control stack are active so
their contribution can be evaluated one at a time from the command line.
"""

import argparse
import sys
from dataclasses import dataclass


@dataclass
class ComponentMode:
    """Configuration for which optional behaviours are active."""

    # Actuation
    use_slew: bool = True  # If False, wheel commands are sent unlimited

    # PID anti-windup
    use_zero_crossing_reset: bool = True  # If False, integral survives overshoot
    use_conditional_integration: bool = True  # If False, ignore the windup range

    # Pursuit
    use_cosine_scaling: bool = True  # If False, drive forward regardless of bearing

    # Output
    use_logging: bool = True  # If False, no CSV run directory is written

    def __str__(self):
        """Human-readable description of active components."""
        return self.describe()

    def describe(self, cfg=None) -> str:
        """Describe the components in effect once this mode is applied to ``cfg``.

        Anti-windup policies are read from the resulting configuration, so a
        policy that is unset in ``cfg`` is not listed even when its toggle is on.

        Args:
            cfg: Configuration module or object. Default: motion_control.config
        """
        if cfg is None:
            from motion_control import config as cfg

        effective = self.apply(cfg)
        components = []

        components.append("Slew" if self.use_slew else "Unlimited")

        windup = []
        if effective.PID_RESET_ON_ZERO_CROSSING:
            windup.append("ZC")
        if effective.PID_WINDUP_RANGE is not None:
            windup.append("Range")
        if effective.PID_INTEGRAL_CAP is not None:
            windup.append("Cap")
        components.append(f"PID({'+'.join(windup) if windup else 'No anti-windup'})")

        components.append("Boomerang+Cos" if effective.BOOMERANG_COSINE_SCALING else "Boomerang")

        if self.use_logging:
            components.append("CSV")

        return " → ".join(components)

    def to_dict(self):
        """Convert to dictionary for logging."""
        return {
            "use_slew": self.use_slew,
            "use_zero_crossing_reset": self.use_zero_crossing_reset,
            "use_conditional_integration": self.use_conditional_integration,
            "use_cosine_scaling": self.use_cosine_scaling,
            "use_logging": self.use_logging,
        }

    def apply(self, cfg) -> "ModeConfig":
        """Overlay this mode on a configuration module.

        Args:
            cfg: Configuration module or object

        Returns:
            A read-through view of ``cfg`` with the disabled behaviours switched off
        """
        overrides = {}
        if not self.use_zero_crossing_reset:
            overrides["PID_RESET_ON_ZERO_CROSSING"] = False
        if not self.use_conditional_integration:
            overrides["PID_WINDUP_RANGE"] = None
        if not self.use_cosine_scaling:
            overrides["BOOMERANG_COSINE_SCALING"] = False
        return ModeConfig(cfg, overrides)


class ModeConfig:
    """Configuration view that overrides selected attributes of a base config."""

    def __init__(self, base, overrides):
        self._base = base
        self._overrides = dict(overrides)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._overrides:
            return self._overrides[name]
        return getattr(self._base, name)


def add_component_flags(parser: argparse.ArgumentParser) -> None:
    """Add the --no-* component flags to a parser."""
    parser.add_argument("--no-slew", action="store_true", help="Send wheel commands without slew limiting")
    parser.add_argument(
        "--no-zero-crossing", action="store_true", help="Keep the PID integral when the error changes sign"
    )
    parser.add_argument(
        "--no-windup-range", action="store_true", help="Integrate regardless of error magnitude"
    )
    parser.add_argument(
        "--no-cosine-scaling", action="store_true", help="Do not scale forward power by bearing error"
    )
    parser.add_argument("--no-log", action="store_true", help="Do not write CSV run data")


def mode_from_args(args: argparse.Namespace) -> ComponentMode:
    """Build a ComponentMode from parsed --no-* flags."""
    return ComponentMode(
        use_slew=not args.no_slew,
        use_zero_crossing_reset=not args.no_zero_crossing,
        use_conditional_integration=not args.no_windup_range,
        use_cosine_scaling=not args.no_cosine_scaling,
        use_logging=not args.no_log,
    )


def parse_component_flags(args=None):
    """
    Parse command-line flags to determine which components are active.

    Args:
        args: List of command-line arguments (default: sys.argv[1:])

    Returns:
        tuple: (ComponentMode, remaining_args)
            - ComponentMode with appropriate settings
            - List of remaining arguments not consumed
    """
    parser = argparse.ArgumentParser(add_help=False)
    add_component_flags(parser)

    if args is None:
        args = sys.argv[1:]

    known_args, remaining_args = parser.parse_known_args(args)
    return mode_from_args(known_args), remaining_args
