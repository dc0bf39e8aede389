"""
Lookup and plotting of logged motion session runs.

Runs live where DataCollector writes them: ``<output_dir>/results/run_*``.
The ``motion-control plot`` subcommand is the command-line front end.
"""

import logging
from pathlib import Path
from typing import List, Optional

from .config import TERM_BLUE, TERM_RESET
from .data_collector import RUN_PREFIX, SUMMARY_FILENAME, results_root
from .visualization import plot_run_summary

logger = logging.getLogger(__name__)


def find_run_dirs(results_dir: Path) -> List[Path]:
    """Sorted run directories (oldest first) under a results directory."""
    return sorted(d for d in Path(results_dir).iterdir() if d.is_dir() and d.name.startswith(RUN_PREFIX))


def find_latest_run(results_dir: Path) -> Path:
    """Find the most recent run directory.

    Args:
        results_dir: Path to the results directory.

    Returns:
        Path to the most recent run directory.

    Raises:
        FileNotFoundError: If no run directories are found.
    """
    results_dir = Path(results_dir)
    if not results_dir.exists():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")

    run_dirs = find_run_dirs(results_dir)
    if not run_dirs:
        raise FileNotFoundError(f"No run directories found in {results_dir}")

    return run_dirs[-1]


def resolve_run_dir(output_dir: str = ".", run: Optional[str] = None) -> Path:
    """Run directory named ``run``, or the latest one, under ``output_dir``.

    Raises:
        FileNotFoundError: If the named run or any run at all is missing.
    """
    results_dir = results_root(output_dir)
    if run is None:
        return find_latest_run(results_dir)

    run_dir = results_dir / run
    if not run_dir.is_dir():
        raise FileNotFoundError(f"Run directory not found: {run_dir}")
    return run_dir


def describe_run(run_dir: Path) -> str:
    """One-line overview of a run from its movement results."""
    summary_path = Path(run_dir) / SUMMARY_FILENAME
    if not summary_path.exists():
        return f"{run_dir.name}: no summary"

    states = [line.split("\t")[2] for line in summary_path.read_text().splitlines() if line.count("\t") >= 2]
    settled = states.count("settled")
    return f"{run_dir.name}: {len(states)} moves, {settled} settled"


def list_runs(output_dir: str = ".") -> List[str]:
    """Describe every run under ``output_dir``, oldest first."""
    results_dir = results_root(output_dir)
    if not results_dir.exists():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")
    return [describe_run(run_dir) for run_dir in find_run_dirs(results_dir)]


def plot_run(output_dir: str = ".", run: Optional[str] = None, save: bool = False, show: bool = True) -> Path:
    """Plot the summary figure of a logged run.

    Args:
        output_dir: Base directory DataCollector wrote into
        run: Run directory name. Default: the most recent run
        save: Save run_summary.png into the run directory
        show: Display the figure interactively

    Returns:
        The plotted run directory.

    Raises:
        FileNotFoundError: If the run or one of its CSV files is missing.
    """
    run_dir = resolve_run_dir(output_dir, run)
    logger.info(f"{TERM_BLUE}Plotting {describe_run(run_dir)}{TERM_RESET}")
    plot_run_summary(run_dir=run_dir, save_plots=save, show_plots=show)

    if save:
        logger.info(f"{TERM_BLUE}✓ Saved plot to {run_dir}/run_summary.png{TERM_RESET}")
    return run_dir
