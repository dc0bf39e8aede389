#!/usr/bin/env python3
"""
WebSocket client driving a remote robot or simulator to a target pose.

The server streams sensor messages and accepts wheel commands:

    -> {"message_type": "sensors", "sensors": [
           {"name": "encoders", "data": [left_deg, right_deg], "timestamp": t},
           {"name": "gyro", "data": [heading_deg], "timestamp": t}]}
    <- {"left": 42.0, "right": 40.5}
    -> {"message_type": "stop"}

Each sensor message advances the odometry estimator and the boomerang
controller by one tick. The run ends when the controller settles or is
cancelled, or when the server sends a stop message.
"""

import asyncio
import json
import logging
import signal
import time
from typing import Any, Dict, Optional, Union

import websockets

from .boomerang import BoomerangController, ControlState
from .config import (
    SESSION_MAX_ITERATIONS,
    SLEW_RATE,
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
)
from .geometry import Pose
from .interfaces import SensorSample
from .model import WheelCommand
from .odometry import OdometryEstimator
from .slew import SlewLimiter


def parse_sensor_message(data: Dict[str, Any]) -> Optional[SensorSample]:
    """Extract encoder and heading readings from a sensor message.

    Args:
        data: Parsed JSON message with a "sensors" list.

    Returns:
        SensorSample, or None if the message carries no encoder reading.
    """
    sensors = data.get("sensors", [])
    if not isinstance(sensors, list):
        logging.warning(f"Invalid sensors data type: expected list, got {type(sensors)}")
        return None

    left: Optional[float] = None
    right: Optional[float] = None
    heading: Optional[float] = None

    for sensor in sensors:
        sensor_name = sensor.get("name")
        sensor_data = sensor.get("data", [])

        if sensor_name == "encoders" and len(sensor_data) >= 2:
            left = float(sensor_data[0])
            right = float(sensor_data[1])
        elif sensor_name == "gyro" and len(sensor_data) >= 1:
            heading = float(sensor_data[0])

    if left is None or right is None:
        return None
    return SensorSample(left, right, heading)


def sensor_timestamp(data: Dict[str, Any]) -> Optional[float]:
    """First timestamp found in a sensor message, if any."""
    for sensor in data.get("sensors", []) or []:
        timestamp = sensor.get("timestamp") if isinstance(sensor, dict) else None
        if timestamp is not None:
            return float(timestamp)
    return None


class RemoteDriveClient:
    """Boomerang drive over a WebSocket connection.

    Attributes:
        uri: WebSocket URI to connect to.
        estimator: Odometry estimator fed from sensor messages.
        controller: Boomerang controller producing wheel commands.
        max_iterations: Sensor ticks before the movement is cancelled.
        should_stop: Flag indicating whether to stop the control loop.
    """

    def __init__(
        self,
        uri: str,
        target: Pose,
        estimator: Optional[OdometryEstimator] = None,
        controller: Optional[BoomerangController] = None,
        slew_rate: Optional[float] = SLEW_RATE,
        max_iterations: Optional[int] = SESSION_MAX_ITERATIONS,
        data_collector=None,
    ) -> None:
        """Initialize the client.

        Args:
            uri: WebSocket URI (must start with ws:// or wss://).
            target: Pose to drive to.
            estimator: Odometry estimator. Default: built from config.
            controller: Boomerang controller. Default: built from config.
            slew_rate: Wheel command slew rate (units/s), or None to disable.
            max_iterations: Ticks before the movement is cancelled, or None.
            data_collector: Optional DataCollector for tick logging.

        Raises:
            ValueError: If URI format is invalid.
        """
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.estimator = estimator if estimator is not None else OdometryEstimator.from_config()
        self.controller = controller if controller is not None else BoomerangController.from_config(target)
        if controller is not None:
            self.controller.retarget(target)
        self.max_iterations = max_iterations
        self.data_collector = data_collector
        self.should_stop: bool = False

        self._left_slew = SlewLimiter(slew_rate) if slew_rate else None
        self._right_slew = SlewLimiter(slew_rate) if slew_rate else None
        self._last_time: Optional[float] = None
        self._initialized: bool = False

    @property
    def state(self) -> ControlState:
        return self.controller.state

    def _limit(self, command: WheelCommand, now: float) -> WheelCommand:
        elapsed = 0.0 if self._last_time is None else now - self._last_time
        self._last_time = now
        if self._left_slew is None or self._right_slew is None:
            return command
        return WheelCommand(
            self._left_slew.step(command.left, elapsed),
            self._right_slew.step(command.right, elapsed),
        )

    def process_sensor_message(self, data: Dict[str, Any]) -> Optional[WheelCommand]:
        """Advance odometry and control by one tick.

        Args:
            data: Parsed sensor message.

        Returns:
            Wheel command to send, or None if the message had no encoder data.
        """
        sample = parse_sensor_message(data)
        if sample is None:
            return None

        if not self._initialized:
            # First reading defines zero travel
            self.estimator.reset(self.estimator.pose, sample.left_position, sample.right_position)
            self._initialized = True

        pose = self.estimator.update_from_sample(sample)

        if (
            self.max_iterations is not None
            and self.controller.iterations >= self.max_iterations
            and self.controller.state is ControlState.RUNNING
        ):
            logging.warning(f"Movement cancelled after {self.controller.iterations} ticks")
            self.controller.cancel()

        command = self.controller.step(pose)
        if self.controller.state is not ControlState.RUNNING:
            logging.info(f"{TERM_BLUE}→ {self.controller.state.value} at {pose}{TERM_RESET}")
            self.should_stop = True
            return WheelCommand.stop()

        now = sensor_timestamp(data)
        if now is None:
            now = time.monotonic()
        command = self._limit(command, now)

        if self.data_collector is not None:
            self.data_collector.log_tick(now, pose, command)
            self.data_collector.log_diagnostics(now, self.controller.get_diagnostics())
        return command

    def parse_and_route_message(self, message: Union[str, bytes]) -> Optional[WheelCommand]:
        """Parse incoming message and route to appropriate handler.

        Args:
            message: Raw JSON message string or bytes from WebSocket.

        Returns:
            Wheel command to send in response, if any.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)

            message_type = data.get("message_type")
            if message_type == "sensors":
                return self.process_sensor_message(data)
            if message_type == "stop":
                logging.info("Stop requested by server")
                self.should_stop = True
                return WheelCommand.stop()

            logging.debug(f"Received unknown message: {json.dumps(data)}")
        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logging.error(f"Error processing message data: {e}")
        return None

    async def send_command(self, websocket: Any, command: WheelCommand) -> None:
        """Send a wheel command to the WebSocket server."""
        await websocket.send(json.dumps({"left": command.left, "right": command.right}))
        logging.debug(f"Sent command: left={command.left:.2f}, right={command.right:.2f}")

    async def run_control_loop(self) -> ControlState:
        """Connect to WebSocket and run the control loop.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff. Continues running until should_stop is set.

        Returns:
            Final controller state.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to {self.uri}{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(websocket.recv(), timeout=WS_TIMEOUT_SECONDS)
                        except asyncio.TimeoutError:
                            continue
                        except websockets.exceptions.ConnectionClosed:
                            logging.warning("Connection closed by server")
                            break

                        command = self.parse_and_route_message(message)
                        if command is not None:
                            await self.send_command(websocket, command)

            except (OSError, websockets.exceptions.WebSocketException) as e:
                if self.should_stop:
                    break
                logging.error(f"Connection error: {e}")
                logging.info(f"Retrying in {retry_delay} seconds...")
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, WS_MAX_RETRY_DELAY_SECONDS)

        return self.controller.state

    def stop(self) -> None:
        """Signal the client to stop."""
        self.should_stop = True
        self.controller.cancel()


async def main(
    uri: str,
    target: Pose,
    data_collector=None,
    slew_rate: Optional[float] = SLEW_RATE,
    cfg=None,
) -> ControlState:
    """Drive a remote robot to ``target``.

    Args:
        uri: WebSocket URI of the robot or simulator.
        target: Pose to drive to.
        data_collector: Optional DataCollector for tick logging.
        slew_rate: Wheel command slew rate, or None to disable.
        cfg: Configuration module or object. If None, uses motion_control.config.

    Returns:
        Final controller state.
    """
    client = RemoteDriveClient(
        uri,
        target,
        estimator=OdometryEstimator.from_config(cfg),
        controller=BoomerangController.from_config(target, cfg),
        slew_rate=slew_rate,
        data_collector=data_collector,
    )

    loop = asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, client.stop)
    except (NotImplementedError, RuntimeError):
        # Signal handlers are unavailable on some platforms and outside the main thread
        pass

    return await client.run_control_loop()
