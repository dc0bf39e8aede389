"""
Visualization utilities for motion session runs and motion profiles.

This module loads the CSV files written by DataCollector and plots:
- The estimated trajectory, with carrot points when logged
- Wheel commands over time
- Controller errors over time
- Velocity and position setpoints of a planned motion profile
"""

import csv
import math
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure

from .config import PLOT_BLUE, PLOT_ORANGE, PLOT_TAUPE, PLOT_YELLOW
from .motion_profile import ProfileSegment, sample_profile


def load_csv_columns(filepath: Path) -> Dict[str, np.ndarray]:
    """Load a CSV file into one float array per column.

    Blank cells become NaN.

    Args:
        filepath: Path to the CSV file.

    Returns:
        Dictionary mapping header names to numpy arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
    """
    if not filepath.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    with open(filepath, newline="") as f:
        reader = csv.reader(f)
        headers = next(reader)
        columns: List[List[float]] = [[] for _ in headers]
        for row in reader:
            if len(row) != len(headers):
                continue
            for i, cell in enumerate(row):
                try:
                    columns[i].append(float(cell) if cell else np.nan)
                except ValueError:
                    columns[i].append(np.nan)

    return {name: np.array(values) for name, values in zip(headers, columns)}


def style_axis(ax: Axes, title: str, xlabel: str, ylabel: str) -> None:
    """Apply the shared axis style."""
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.grid(True, color=PLOT_TAUPE, alpha=0.3)


def plot_trajectory(ax: Axes, pose: Dict[str, np.ndarray], controller: Optional[Dict[str, np.ndarray]] = None) -> None:
    """Plot estimated x/y positions, start/end markers and carrot points."""
    x = pose["x"]
    y = pose["y"]
    ax.plot(x, y, color=PLOT_ORANGE, linewidth=2, label="Estimated pose")
    if len(x) > 0:
        ax.scatter(x[0], y[0], color=PLOT_BLUE, marker="o", zorder=3, label="Start")
        ax.scatter(x[-1], y[-1], color=PLOT_BLUE, marker="x", zorder=3, label="End")

    if controller is not None and "carrot_x" in controller:
        cx = controller["carrot_x"]
        cy = controller["carrot_y"]
        mask = ~(np.isnan(cx) | np.isnan(cy))
        if np.any(mask):
            ax.scatter(cx[mask], cy[mask], color=PLOT_YELLOW, s=4, alpha=0.6, label="Carrot")

    ax.set_aspect("equal", adjustable="datalim")
    style_axis(ax, "Trajectory", "x", "y")
    ax.legend(loc="best")


def plot_commands(ax: Axes, command: Dict[str, np.ndarray]) -> None:
    """Plot left/right wheel commands against time since the first tick."""
    t = command["timestamp"]
    if len(t) > 0:
        t = t - t[0]
    ax.plot(t, command["left"], color=PLOT_ORANGE, label="Left")
    ax.plot(t, command["right"], color=PLOT_BLUE, label="Right")
    style_axis(ax, "Wheel commands", "Time (s)", "Command")
    ax.legend(loc="best")


def plot_errors(ax: Axes, controller: Dict[str, np.ndarray]) -> None:
    """Plot whichever controller errors were logged."""
    if len(controller["timestamp"]) == 0:
        style_axis(ax, "Controller errors", "Time (s)", "Error")
        return

    t = controller["timestamp"] - controller["timestamp"][0]
    if np.any(~np.isnan(controller["linear_error"])):
        ax.plot(t, controller["linear_error"], color=PLOT_ORANGE, label="Distance error")
    if np.any(~np.isnan(controller["angular_error"])):
        ax.plot(t, np.degrees(controller["angular_error"]), color=PLOT_BLUE, label="Heading error (deg)")
    if np.any(~np.isnan(controller["position_error"])):
        ax.plot(t, controller["position_error"], color=PLOT_YELLOW, label="Profile position error")
    style_axis(ax, "Controller errors", "Time (s)", "Error")
    ax.legend(loc="best")


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> Figure:
    """Create the three-panel summary figure for a logged run.

    Args:
        run_dir: Directory containing pose_data.csv, command_data.csv and
            controller_data.csv.
        save_plots: If True, save run_summary.png into run_dir.
        show_plots: If True, display the figure interactively.

    Returns:
        The matplotlib Figure.

    Raises:
        FileNotFoundError: If a required CSV file is missing.
    """
    run_dir = Path(run_dir)
    pose = load_csv_columns(run_dir / "pose_data.csv")
    command = load_csv_columns(run_dir / "command_data.csv")
    controller = load_csv_columns(run_dir / "controller_data.csv")

    fig, axes = plt.subplots(1, 3, figsize=(18, 6))
    plot_trajectory(axes[0], pose, controller)
    plot_commands(axes[1], command)
    plot_errors(axes[2], controller)
    fig.suptitle(f"Run: {run_dir.name}")
    fig.tight_layout()

    if save_plots:
        fig.savefig(run_dir / "run_summary.png", dpi=150)
    if show_plots:
        plt.show()
    return fig


def plot_profile(segment: ProfileSegment, dt: float = 0.01, show_plots: bool = True, output_path: Optional[Path] = None) -> Figure:
    """Plot velocity and position setpoints of a planned profile.

    Phase boundaries are marked with vertical guides.

    Args:
        segment: Planned profile
        dt: Sample spacing (seconds)
        show_plots: If True, display the figure interactively.
        output_path: If given, save the figure there.

    Returns:
        The matplotlib Figure.
    """
    samples = sample_profile(segment, dt)

    fig, (ax_v, ax_p) = plt.subplots(2, 1, figsize=(10, 7), sharex=True)
    ax_v.plot(samples["t"], samples["velocity"], color=PLOT_ORANGE, linewidth=2)
    ax_p.plot(samples["t"], samples["position"], color=PLOT_BLUE, linewidth=2)

    boundaries = [segment.accel_time, segment.accel_time + segment.cruise_time]
    for ax in (ax_v, ax_p):
        for boundary in boundaries:
            if 0 < boundary < segment.total_time and math.isfinite(boundary):
                ax.axvline(boundary, color=PLOT_TAUPE, linestyle="--", alpha=0.6)

    style_axis(ax_v, f"Trapezoidal profile (peak {segment.peak_velocity:.2f})", "", "Velocity")
    style_axis(ax_p, "", "Time (s)", "Position")
    fig.tight_layout()

    if output_path is not None:
        fig.savefig(output_path, dpi=150)
    if show_plots:
        plt.show()
    return fig
