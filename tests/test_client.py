import asyncio
import json
import math

import pytest
import websockets

from motion_control.boomerang import ControlState
from motion_control.client import RemoteDriveClient, parse_sensor_message, sensor_timestamp
from motion_control.geometry import Pose
from motion_control.model import WheelCommand


def sensors_message(left, right, heading=None, timestamp=None):
    sensors = [{"name": "encoders", "data": [left, right]}]
    if heading is not None:
        sensors.append({"name": "gyro", "data": [heading]})
    if timestamp is not None:
        for sensor in sensors:
            sensor["timestamp"] = timestamp
    return json.dumps({"message_type": "sensors", "sensors": sensors})


def test_parse_sensor_message():
    sample = parse_sensor_message(json.loads(sensors_message(10, 20, heading=45)))
    assert sample.left_position == 10.0
    assert sample.right_position == 20.0
    assert sample.heading == 45.0


def test_parse_sensor_message_requires_encoders():
    assert parse_sensor_message({"sensors": [{"name": "gyro", "data": [0]}]}) is None
    assert parse_sensor_message({"sensors": "bad"}) is None


def test_sensor_timestamp():
    assert sensor_timestamp(json.loads(sensors_message(0, 0, timestamp=1.5))) == 1.5
    assert sensor_timestamp({"sensors": []}) is None


def test_invalid_uri_rejected():
    with pytest.raises(ValueError):
        RemoteDriveClient("http://localhost:8765", Pose(0.0, 0.0, 0.0))


def test_stop_message_ends_run():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 24.0, math.pi / 2))
    command = client.parse_and_route_message(json.dumps({"message_type": "stop"}))
    assert command == WheelCommand.stop()
    assert client.should_stop


def test_sensor_message_drives_towards_target():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 24.0, math.pi / 2), slew_rate=None)
    command = client.parse_and_route_message(sensors_message(0.0, 0.0, heading=0.0))
    assert command.left == pytest.approx(command.right)
    assert command.left > 0
    assert not client.should_stop


def test_first_tick_is_slew_limited():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 24.0, math.pi / 2))
    first = client.parse_and_route_message(sensors_message(0.0, 0.0, heading=0.0, timestamp=0.0))
    second = client.parse_and_route_message(sensors_message(0.0, 0.0, heading=0.0, timestamp=0.1))
    assert first == WheelCommand(0.0, 0.0)
    assert second.left == pytest.approx(40.0)


def test_first_reading_is_treated_as_zero_travel():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 24.0, math.pi / 2), slew_rate=None)
    client.parse_and_route_message(sensors_message(5000.0, 5000.0, heading=0.0))
    assert client.estimator.pose.y == pytest.approx(0.0)


def test_settled_on_arrival():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 0.0, math.pi / 2))
    command = client.parse_and_route_message(sensors_message(0.0, 0.0, heading=0.0))
    assert command == WheelCommand.stop()
    assert client.state is ControlState.SETTLED
    assert client.should_stop


def test_iteration_limit_cancels():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 100.0, math.pi / 2), max_iterations=2)
    for _ in range(3):
        client.parse_and_route_message(sensors_message(0.0, 0.0, heading=0.0))
    assert client.state is ControlState.CANCELLED
    assert client.should_stop


def test_bad_messages_are_dropped():
    client = RemoteDriveClient("ws://localhost:8765", Pose(0.0, 24.0, math.pi / 2))
    assert client.parse_and_route_message("not json") is None
    assert client.parse_and_route_message(json.dumps({"message_type": "score", "score": 1})) is None
    assert client.parse_and_route_message(b'{"message_type": "sensors", "sensors": []}') is None
    assert not client.should_stop


def test_control_loop_over_websocket():
    received = []

    async def handler(websocket, *args):
        await websocket.send(sensors_message(0.0, 0.0, heading=0.0))
        received.append(json.loads(await websocket.recv()))

    async def scenario():
        async with websockets.serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            client = RemoteDriveClient(f"ws://127.0.0.1:{port}", Pose(0.0, 0.0, math.pi / 2))
            return await client.run_control_loop()

    state = asyncio.run(asyncio.wait_for(scenario(), timeout=10))
    assert state is ControlState.SETTLED
    assert received == [{"left": 0.0, "right": 0.0}]
