"""
Command-line interface for motion_control.

Subcommands:
    plan              Plan a trapezoidal profile and print its phases
    simulate-profile  Drive a profiled straight line on the simulated robot
    simulate-pose     Drive to a pose with the boomerang controller in simulation
    remote            Drive a remote robot or simulator over WebSocket
    plot              Plot or list logged runs

Component flags (--no-slew, --no-zero-crossing, --no-windup-range,
--no-cosine-scaling, --no-log) are accepted before or after the subcommand.
"""

import argparse
import asyncio
import logging
import math
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .boomerang import BoomerangController
from .client import main as remote_main
from .component_modes import ComponentMode, parse_component_flags
from .data_collector import DataCollector
from .geometry import Pose
from .interfaces import SimulatedClock
from .motion_profile import plan
from .odometry import OdometryEstimator, PoseEstimationTask
from .session import MotionSession, MoveResult
from .simulation import SimulatedRobot


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        prog="motion-control",
        description="Motion control primitives for differential-drive robots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Component flags:
  --no-slew            Send wheel commands without slew limiting
  --no-zero-crossing   Keep the PID integral when the error changes sign
  --no-windup-range    Integrate regardless of error magnitude
  --no-cosine-scaling  Do not scale forward power by bearing error
  --no-log             Do not write CSV run data

Examples:
  motion-control plan 24 --plot
  motion-control simulate-pose 24 24 0 --plot
  motion-control --no-slew simulate-profile 36
  motion-control remote 0 24 90 --uri ws://robot.local:8765
  motion-control plot --run run_20251114_184704 --save --no-show
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps")
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser("plan", help="Plan a trapezoidal motion profile")
    plan_parser.add_argument("distance", type=float, help="Signed distance to travel")
    _add_profile_limits(plan_parser)
    plan_parser.add_argument("--plot", action="store_true", help="Show the velocity and position setpoints")
    plan_parser.add_argument("--output", type=str, default=None, help="Save the profile plot to this path")

    profile_parser = subparsers.add_parser("simulate-profile", help="Drive a profiled straight line in simulation")
    profile_parser.add_argument("distance", type=float, help="Signed distance to travel")
    _add_profile_limits(profile_parser)
    _add_simulation_options(profile_parser)

    pose_parser = subparsers.add_parser("simulate-pose", help="Drive to a pose in simulation")
    _add_target(pose_parser)
    pose_parser.add_argument("--lead", type=float, default=None, help="Carrot lead fraction in [0, 1]")
    _add_simulation_options(pose_parser)

    remote_parser = subparsers.add_parser("remote", help="Drive a remote robot over WebSocket")
    _add_target(remote_parser)
    remote_parser.add_argument("--uri", type=str, default=config.WS_URI, help=f"WebSocket URI (default: {config.WS_URI})")
    remote_parser.add_argument("--output-dir", type=str, default=".", help="Base directory for run data")

    plot_parser = subparsers.add_parser("plot", help="Plot a logged run (default: the most recent)")
    plot_parser.add_argument("--run", type=str, default=None, help="Name of the run directory to plot")
    plot_parser.add_argument("--output-dir", type=str, default=".", help="Base directory for run data")
    plot_parser.add_argument("--save", action="store_true", help="Save the plot as PNG in the run directory")
    plot_parser.add_argument("--no-show", action="store_true", help="Do not display the plot interactively")
    plot_parser.add_argument("--list", action="store_true", help="List the logged runs and exit")

    return parser


def _add_profile_limits(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-velocity",
        type=float,
        default=config.PROFILE_MAX_VELOCITY,
        help=f"Profile velocity limit (default: {config.PROFILE_MAX_VELOCITY})",
    )
    parser.add_argument(
        "--max-acceleration",
        type=float,
        default=config.PROFILE_MAX_ACCELERATION,
        help=f"Profile acceleration limit (default: {config.PROFILE_MAX_ACCELERATION})",
    )


def _add_target(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("x", type=float, help="Target x")
    parser.add_argument("y", type=float, help="Target y")
    parser.add_argument(
        "heading",
        type=float,
        nargs="?",
        default=None,
        help="Target heading in degrees counterclockwise from +x (omit for position only)",
    )


def _add_simulation_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--noise", type=float, default=0.0, help="Encoder noise standard deviation (degrees)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for encoder noise")
    parser.add_argument("--no-gyro", action="store_true", help="Derive heading from the wheels")
    parser.add_argument("--output-dir", type=str, default=".", help="Base directory for run data")
    parser.add_argument("--plot", action="store_true", help="Plot the run when it finishes")


def target_from_args(args: argparse.Namespace) -> Pose:
    """Target pose from x, y and optional heading in degrees."""
    heading = math.nan if args.heading is None else math.radians(args.heading)
    return Pose(args.x, args.y, heading)


def build_simulated_session(
    args: argparse.Namespace,
    mode: ComponentMode,
    cfg,
    data_collector: Optional[DataCollector] = None,
) -> MotionSession:
    """Wire a simulated robot, estimator and session on a shared simulated clock."""
    clock = SimulatedClock()
    robot = SimulatedRobot.from_config(
        cfg,
        clock=clock,
        has_gyro=not args.no_gyro,
        encoder_noise_std=args.noise,
        seed=args.seed,
    )
    estimator = OdometryEstimator.from_config(cfg, start_pose=robot.true_pose)
    pose_task = PoseEstimationTask(estimator, robot, period=cfg.ODOMETRY_PERIOD)
    return MotionSession(
        pose_task,
        robot,
        clock=clock,
        control_period=cfg.CONTROL_PERIOD,
        slew_rate=cfg.SLEW_RATE if mode.use_slew else None,
        max_iterations=cfg.SESSION_MAX_ITERATIONS,
        timeout=cfg.SESSION_TIMEOUT,
        background=False,
        data_collector=data_collector,
    )


def _report(result: MoveResult, robot_pose: Pose) -> int:
    logging.info(
        f"{config.TERM_BLUE}{result.state.value}{config.TERM_RESET} after {result.iterations} ticks "
        f"({result.elapsed:.2f}s)"
    )
    logging.info(f"  estimated: {result.final_pose}")
    logging.info(f"  true:      {robot_pose}")
    return 0 if result.settled else 1


def run_plan(args: argparse.Namespace) -> int:
    segment = plan(args.distance, args.max_velocity, args.max_acceleration)
    logging.info(f"{config.TERM_BLUE}Profile for {args.distance:.2f}{config.TERM_RESET}")
    logging.info(f"  accelerate: {segment.accel_time:.3f}s over {segment.accel_distance:.3f}")
    logging.info(f"  cruise:     {segment.cruise_time:.3f}s over {segment.cruise_distance:.3f}")
    logging.info(f"  decelerate: {segment.decel_time:.3f}s over {segment.decel_distance:.3f}")
    logging.info(f"  peak velocity {segment.peak_velocity:.3f}, total {segment.total_time:.3f}s")

    if args.plot or args.output:
        from .visualization import plot_profile

        plot_profile(segment, show_plots=args.plot, output_path=Path(args.output) if args.output else None)
    return 0


def run_simulation(args: argparse.Namespace, mode: ComponentMode) -> int:
    cfg = mode.apply(config)
    data_collector = DataCollector(output_dir=args.output_dir) if mode.use_logging else None
    if data_collector is not None:
        data_collector.setup()

    try:
        with build_simulated_session(args, mode, cfg, data_collector) as session:
            if args.command == "simulate-profile":
                result = session.drive_profiled(args.distance, args.max_velocity, args.max_acceleration, cfg=cfg)
            else:
                target = target_from_args(args)
                controller = BoomerangController.from_config(target, cfg, lead_fraction=args.lead)
                result = session.drive_to_pose(target, controller)
            exit_code = _report(result, session.actuator.true_pose)
    finally:
        if data_collector is not None:
            data_collector.cleanup()

    if args.plot and data_collector is not None:
        from .visualization import plot_run_summary

        plot_run_summary(data_collector.run_dir, save_plots=True, show_plots=True)
    return exit_code


def run_plot(args: argparse.Namespace) -> int:
    from .plot_results import list_runs, plot_run

    try:
        if args.list:
            runs = list_runs(args.output_dir)
            logging.info("Available runs:" if runs else "No runs logged yet")
            for i, description in enumerate(runs, 1):
                logging.info(f"  {i}. {description}")
            return 0
        plot_run(args.output_dir, args.run, save=args.save, show=not args.no_show)
    except FileNotFoundError as e:
        logging.error(f"Error: {e}")
        return 1
    return 0


def run_remote(args: argparse.Namespace, mode: ComponentMode) -> int:
    cfg = mode.apply(config)
    target = target_from_args(args)
    slew_rate = cfg.SLEW_RATE if mode.use_slew else None

    data_collector = DataCollector(output_dir=args.output_dir) if mode.use_logging else None
    if data_collector is not None:
        data_collector.setup()

    try:
        state = asyncio.run(remote_main(args.uri, target, data_collector=data_collector, slew_rate=slew_rate, cfg=cfg))
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        return 0
    finally:
        if data_collector is not None:
            data_collector.cleanup()

    logging.info(f"Remote drive finished: {state.value}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the motion-control command."""
    mode, remaining_args = parse_component_flags(argv)
    args = build_parser().parse_args(remaining_args)

    setup_logging(args.verbose)
    logging.info(f"Components: {mode.describe(config)}")

    if args.command == "plan":
        return run_plan(args)
    if args.command == "plot":
        return run_plot(args)
    if args.command in ("simulate-profile", "simulate-pose"):
        return run_simulation(args, mode)
    return run_remote(args, mode)


if __name__ == "__main__":
    sys.exit(main())
