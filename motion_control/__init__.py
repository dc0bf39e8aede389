"""Motion Control - Control Primitives for Differential-Drive Robots

Reusable building blocks for moving a wheeled, differential-drive robot along
planned trajectories: closed-loop feedback, motion profiling, output rate
limiting, dead-reckoning pose estimation and pose pursuit.

## Architecture Overview

Two concurrent activities share one pose:

### Pose Estimation Task (odometry.py)
Samples the wheel encoders and optional heading sensor at a fixed period and
integrates travel into a pose (x, y, heading).
- Chord update: average wheel travel applied along the current heading
- Heading from the sensor, or derived from the wheel travel difference
- Output: Immutable Pose snapshots readable from any thread

### Control Task (session.py)
Runs one movement at a time against the latest pose snapshot.
- Boomerang pursuit (boomerang.py): chase a carrot point that slides onto the
  target as the robot closes in, arriving on the target heading
- Profiled drive (motion_profile.py): follow a trapezoidal velocity profile
  with feedforward plus position feedback
- Every movement ends SETTLED or CANCELLED, then the wheels are stopped

### Shared Primitives
- `pid.py` - PID with conditional integration, integral cap and zero-crossing reset
- `slew.py` - Rate limiting of wheel commands between ticks
- `model.py` - Arcade mixing of forward/turn power into wheel commands

## Modules

### Core Control Modules
- `config.py` - Centralized configuration parameters with documentation
- `geometry.py` - Point, Pose and angle helpers
- `pid.py`, `motion_profile.py`, `slew.py` - Control primitives
- `odometry.py` - Pose estimator and background estimation task
- `boomerang.py` - Drive-to-pose controller
- `session.py` - Movement lifecycle, escape limits and actuation
- `interfaces.py` - Sensor, actuator and clock protocols

### Simulation, Communication & Data
- `simulation.py` - Kinematic differential-drive robot for offline runs
- `client.py` - WebSocket client driving a remote robot or simulator
- `data_collector.py` - CSV data logging for poses, commands and controller state

### Visualization
- `visualization.py` - Run summaries and profile plots
- `plot_results.py` - Run lookup and plotting behind `motion-control plot`

## Quick Start

```python
import math

from motion_control import MotionSession, OdometryEstimator, Pose, PoseEstimationTask
from motion_control.interfaces import SimulatedClock
from motion_control.simulation import SimulatedRobot

clock = SimulatedClock()
robot = SimulatedRobot.from_config(clock=clock)
task = PoseEstimationTask(OdometryEstimator.from_config(start_pose=robot.true_pose), robot)
with MotionSession(task, robot, clock=clock, background=False) as session:
    session.drive_to_pose(Pose(0.0, 24.0, math.pi / 2))
```

Or use the command-line interface:
```bash
python -m motion_control simulate-pose 24 24 0
```

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

# Export key classes for convenience
from .boomerang import BoomerangController, ControlState, compute_carrot
from .data_collector import DataCollector
from .geometry import Point, Pose
from .motion_profile import ProfileSegment, plan, position_at, velocity_at
from .odometry import HeadingConvention, OdometryEstimator, PoseEstimationTask, WheelGeometry
from .pid import AntiWindup, PIDController
from .session import MotionSession, MoveResult
from .slew import SlewLimiter, limit

__all__ = [
    "AntiWindup",
    "BoomerangController",
    "ControlState",
    "DataCollector",
    "HeadingConvention",
    "MotionSession",
    "MoveResult",
    "OdometryEstimator",
    "PIDController",
    "Point",
    "Pose",
    "PoseEstimationTask",
    "ProfileSegment",
    "SlewLimiter",
    "WheelGeometry",
    "compute_carrot",
    "limit",
    "plan",
    "position_at",
    "velocity_at",
]
