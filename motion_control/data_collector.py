"""Data collection and CSV logging for motion sessions.

This module provides CSV data logging for:
- Pose estimates (position and heading per control tick)
- Wheel commands (after slew limiting)
- Controller diagnostics (errors, carrot point, profile setpoints)
- Movement results (final state, ticks, elapsed time)
"""

import csv
import logging
import math
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from .config import TERM_BLUE, TERM_RESET
from .geometry import Pose
from .model import WheelCommand

DIAGNOSTIC_FIELDS = [
    "timestamp",
    "move",
    "linear_error",
    "angular_error",
    "carrot_x",
    "carrot_y",
    "linear_integral",
    "angular_integral",
    "position_error",
    "profile_velocity",
]
"""Columns of controller_data.csv. Controllers fill the ones they produce."""

RESULTS_DIRNAME = "results"
"""Directory under the output directory that holds timestamped runs."""

RUN_PREFIX = "run_"
"""Name prefix of timestamped run directories."""

SUMMARY_FILENAME = "summary.txt"
"""Movement results file inside a run directory."""


def results_root(output_dir: str = ".") -> Path:
    """Directory holding the timestamped runs written under ``output_dir``."""
    return Path(output_dir) / RESULTS_DIRNAME


class DataCollector:
    """Manages CSV file creation and logging for motion session data.

    Attributes:
        run_dir: Directory path for this run's output files.
        pose_output_path: Pose estimates CSV.
        command_output_path: Wheel commands CSV.
        controller_output_path: Controller diagnostics CSV.
        summary_output_path: Movement results text file.
        move_index: Index of the movement currently being logged.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.pose_csv_file: Optional[TextIO] = None
        self.pose_csv_writer: Any = None
        self.command_csv_file: Optional[TextIO] = None
        self.command_csv_writer: Any = None
        self.controller_csv_file: Optional[TextIO] = None
        self.controller_csv_writer: Any = None

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # Create timestamped directory: results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = results_root(output_dir) / f"{RUN_PREFIX}{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.pose_output_path: Path = self.run_dir / "pose_data.csv"
        self.command_output_path: Path = self.run_dir / "command_data.csv"
        self.controller_output_path: Path = self.run_dir / "controller_data.csv"
        self.summary_output_path: Path = self.run_dir / SUMMARY_FILENAME

        self.move_index: int = 0

    def setup(self) -> None:
        """Initialize CSV files with headers.

        Must be called before writing data.
        """
        self.pose_csv_file = open(self.pose_output_path, "w", newline="")
        self.pose_csv_writer = csv.writer(self.pose_csv_file)
        self.pose_csv_writer.writerow(["timestamp", "move", "x", "y", "heading"])
        self.pose_csv_file.flush()

        self.command_csv_file = open(self.command_output_path, "w", newline="")
        self.command_csv_writer = csv.writer(self.command_csv_file)
        self.command_csv_writer.writerow(["timestamp", "move", "left", "right"])
        self.command_csv_file.flush()

        self.controller_csv_file = open(self.controller_output_path, "w", newline="")
        self.controller_csv_writer = csv.DictWriter(
            self.controller_csv_file, fieldnames=DIAGNOSTIC_FIELDS, restval="", extrasaction="ignore"
        )
        self.controller_csv_writer.writeheader()
        self.controller_csv_file.flush()

        # Truncate any summary left from a previous run in the same directory
        self.summary_output_path.write_text("")

        logging.info(f"{TERM_BLUE}✓ Initialized data collection to {self.run_dir}/{TERM_RESET}")

    def log_tick(self, timestamp: float, pose: Pose, command: WheelCommand) -> None:
        """Log the pose used and the command sent on one control tick.

        Args:
            timestamp: Clock time of the tick (seconds).
            pose: Pose snapshot the controller acted on.
            command: Wheel command sent to the actuator.
        """
        heading = pose.heading if pose.has_heading else ""
        self.pose_csv_writer.writerow([timestamp, self.move_index, pose.x, pose.y, heading])
        self.command_csv_writer.writerow([timestamp, self.move_index, command.left, command.right])
        if self.pose_csv_file:
            self.pose_csv_file.flush()
        if self.command_csv_file:
            self.command_csv_file.flush()

    def log_diagnostics(self, timestamp: float, diagnostics: Dict[str, float]) -> None:
        """Log controller diagnostics to CSV.

        Args:
            timestamp: Clock time of the tick (seconds).
            diagnostics: Controller values keyed by DIAGNOSTIC_FIELDS names.
                Unknown keys are ignored and missing ones left blank.
        """
        row = {key: value for key, value in diagnostics.items() if not _is_nan(value)}
        row["timestamp"] = timestamp
        row["move"] = self.move_index
        self.controller_csv_writer.writerow(row)
        if self.controller_csv_file:
            self.controller_csv_file.flush()

    def log_result(self, label: str, result: Any) -> None:
        """Append a movement result to the summary and advance the move index.

        Args:
            label: Movement description.
            result: MoveResult from the session.
        """
        with open(self.summary_output_path, "a") as f:
            f.write(
                f"{self.move_index}\t{label}\t{result.state.value}\t{result.iterations}\t"
                f"{result.elapsed:.3f}\t{result.final_pose.x:.4f}\t{result.final_pose.y:.4f}\t"
                f"{result.final_pose.heading:.4f}\n"
            )
        self.move_index += 1

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        if self.pose_csv_file:
            self.pose_csv_file.close()
        if self.command_csv_file:
            self.command_csv_file.close()
        if self.controller_csv_file:
            self.controller_csv_file.close()

        logging.info(f"{TERM_BLUE}✓ Saved session data to {self.run_dir}/{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        """Context manager entry point.

        Returns:
            Self reference for use in with statement.
        """
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit point - ensures cleanup is called."""
        self.cleanup()


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)
