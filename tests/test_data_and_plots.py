import math

import numpy as np
import pytest

from motion_control.boomerang import ControlState
from motion_control.cli import main
from motion_control.data_collector import DataCollector, results_root
from motion_control.geometry import Pose
from motion_control.model import WheelCommand
from motion_control.motion_profile import plan
from motion_control.plot_results import describe_run, find_latest_run, list_runs, resolve_run_dir
from motion_control.session import MoveResult
from motion_control.visualization import load_csv_columns, plot_profile, plot_run_summary


def write_run(run_dir):
    with DataCollector(run_dir=str(run_dir)) as collector:
        for i in range(5):
            t = i * 0.01
            collector.log_tick(t, Pose(0.0, float(i), math.pi / 2), WheelCommand(10.0 * i, 10.0 * i))
            collector.log_diagnostics(
                t,
                {"linear_error": 5.0 - i, "angular_error": 0.0, "carrot_x": 0.0, "carrot_y": float(i), "left": 1.0},
            )
        collector.log_result("drive_to_pose(0.00, 5.00)", MoveResult(ControlState.SETTLED, 5, 0.05, Pose(0.0, 4.0, 0.0)))
    return collector


def write_run_under(output_dir):
    collector = DataCollector(output_dir=str(output_dir))
    with collector:
        collector.log_tick(0.0, Pose(0.0, 0.0, math.pi / 2), WheelCommand(0.0, 0.0))
        collector.log_tick(0.01, Pose(0.0, 1.0, math.pi / 2), WheelCommand(5.0, 5.0))
    return collector


def test_timestamped_run_directory(tmp_path):
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")
    assert collector.run_dir.is_dir()


def test_run_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("RUN_DIR", str(tmp_path / "from_env"))
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir == tmp_path / "from_env"


def test_output_path_must_be_directory(tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(ValueError):
        DataCollector(output_dir=str(not_a_dir))


def test_collector_writes_csv_files(tmp_path):
    collector = write_run(tmp_path / "run")

    pose = load_csv_columns(collector.pose_output_path)
    assert list(pose["y"]) == [0.0, 1.0, 2.0, 3.0, 4.0]

    controller = load_csv_columns(collector.controller_output_path)
    assert controller["linear_error"][0] == 5.0
    assert np.all(np.isnan(controller["position_error"]))
    assert "left" not in controller

    summary = collector.summary_output_path.read_text().splitlines()
    assert summary == ["0\tdrive_to_pose(0.00, 5.00)\tsettled\t5\t0.050\t0.0000\t4.0000\t0.0000"]
    assert collector.move_index == 1


def test_nan_diagnostics_are_left_blank(tmp_path):
    with DataCollector(run_dir=str(tmp_path / "run")) as collector:
        collector.log_diagnostics(0.0, {"linear_error": math.nan, "angular_error": 1.0})

    lines = collector.controller_output_path.read_text().splitlines()
    assert lines[1].startswith("0.0,0,,1.0")


def test_load_missing_csv(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_csv_columns(tmp_path / "missing.csv")


def test_plot_run_summary_saves_figure(tmp_path):
    run_dir = tmp_path / "run_20250101_000000"
    write_run(run_dir)
    fig = plot_run_summary(run_dir, save_plots=True, show_plots=False)
    assert len(fig.axes) == 3
    assert (run_dir / "run_summary.png").exists()


def test_plot_profile(tmp_path):
    output = tmp_path / "profile.png"
    fig = plot_profile(plan(24.0, 48.0, 60.0), show_plots=False, output_path=output)
    assert len(fig.axes) == 2
    assert output.exists()


def test_plot_command_picks_latest_run(tmp_path):
    results = results_root(str(tmp_path))
    write_run(results / "run_20250101_000000")
    write_run(results / "run_20250102_000000")
    assert find_latest_run(results).name == "run_20250102_000000"
    assert resolve_run_dir(str(tmp_path)) == results / "run_20250102_000000"

    assert main(["plot", "--output-dir", str(tmp_path), "--save", "--no-show"]) == 0
    assert (results / "run_20250102_000000" / "run_summary.png").exists()
    assert not (results / "run_20250101_000000" / "run_summary.png").exists()


def test_plot_command_finds_collector_runs(tmp_path):
    collector = write_run_under(tmp_path)
    assert collector.run_dir.parent == results_root(str(tmp_path))
    assert main(["plot", "--output-dir", str(tmp_path), "--run", collector.run_dir.name, "--save", "--no-show"]) == 0
    assert (collector.run_dir / "run_summary.png").exists()


def test_list_runs_summarises_results(tmp_path):
    write_run(results_root(str(tmp_path)) / "run_20250101_000000")
    (results_root(str(tmp_path)) / "notes").mkdir()
    assert list_runs(str(tmp_path)) == ["run_20250101_000000: 1 moves, 1 settled"]
    assert describe_run(tmp_path) == f"{tmp_path.name}: no summary"


def test_plot_command_errors(tmp_path):
    assert main(["plot", "--output-dir", str(tmp_path / "none"), "--no-show"]) == 1
    assert main(["plot", "--output-dir", str(tmp_path / "none"), "--list"]) == 1
    write_run(results_root(str(tmp_path)) / "run_20250101_000000")
    assert main(["plot", "--output-dir", str(tmp_path), "--run", "run_missing", "--no-show"]) == 1
    assert main(["plot", "--output-dir", str(tmp_path), "--list"]) == 0
    with pytest.raises(FileNotFoundError):
        resolve_run_dir(str(tmp_path), "run_missing")
