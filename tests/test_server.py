import asyncio
import json

import pytest

from gyrolinear import FusionConfig, SimulatedDevice
from gyrolinear import server


@pytest.fixture
def host():
    return server.FusionHost(device=SimulatedDevice(), config=FusionConfig())


def run_steps(host, count, dt=0.01):
    return sum(host.step(dt) for _ in range(count))


def test_is_command_message():
    assert server.is_command_message({"type": "cmd", "action": "start"})
    assert server.is_command_message({"type": "command", "action": "stop"})
    assert not server.is_command_message({"type": "hello"})
    assert not server.is_command_message({})


def test_round_vec():
    assert server.round_vec((1.234567, -0.00001, 2)) == [1.2346, -0.0, 2.0]


def test_status_before_start(host):
    status = host.status()

    assert status["type"] == "linear_acceleration"
    assert not status["running"]
    assert not status["seeded"]
    assert not status["initialized"]
    assert status["acceleration"] is None
    assert status["linear_acceleration"] == [0.0, 0.0, 0.0]
    json.dumps(status)


def test_start_streams_after_lock(host):
    ack = host.handle_command({"type": "cmd", "action": "start"})
    assert ack == {"type": "ack", "action": "start", "ok": True}

    assert run_steps(host, 40) == 9

    status = host.status()
    assert status["running"]
    assert status["seeded"]
    assert status["initialized"]
    assert status["linear_acceleration"] == pytest.approx([0.0, 0.0, 0.0], abs=1e-4)
    assert status["gravity"] == pytest.approx([0.0, 0.0, 9.80665], abs=1e-3)
    assert status["pitch"] == pytest.approx(0.0, abs=1e-6)
    assert status["roll"] == pytest.approx(0.0, abs=1e-6)
    assert status["t"] == 40 * 10_000_000


def test_start_twice_is_noted(host):
    host.handle_command({"type": "cmd", "action": "start"})
    ack = host.handle_command({"type": "cmd", "action": "start"})
    assert ack["ok"]
    assert ack["note"] == "already_running"


def test_stop(host):
    ack = host.handle_command({"type": "cmd", "action": "stop"})
    assert ack["note"] == "already_stopped"

    host.handle_command({"type": "cmd", "action": "start"})
    run_steps(host, 40)
    ack = host.handle_command({"type": "cmd", "action": "stop"})
    assert ack == {"type": "ack", "action": "stop", "ok": True}
    assert host.device.enabled_channels == []
    assert run_steps(host, 10) == 0


def test_restart_waits_for_new_lock(host):
    host.handle_command({"type": "cmd", "action": "start"})
    run_steps(host, 40)

    ack = host.handle_command({"type": "cmd", "action": "restart"})
    assert ack["ok"]
    assert not host.status()["seeded"]
    assert run_steps(host, 30) == 0
    assert run_steps(host, 3) == 2


def test_set_alternate_mode(host):
    ack = host.handle_command({"type": "cmd", "action": "set_alternate_mode", "enabled": True})
    assert ack["enabled"]
    assert host.status()["alternate_mounting"]
    assert host.engine.gyroscope_sensor.alternate_mounting


def test_status_command(host):
    assert host.handle_command({"type": "cmd", "action": "status"})["type"] == "linear_acceleration"


def test_unknown_action(host):
    ack = host.handle_command({"type": "cmd", "action": "calibrate"})
    assert not ack["ok"]
    assert ack["error"] == "unknown_action"


class FakeClient:
    def __init__(self):
        self.sent = []

    async def send(self, data):
        self.sent.append(json.loads(data))


def test_broadcast_reaches_every_client():
    clients = [FakeClient(), FakeClient()]
    server.clients.update(clients)
    try:
        asyncio.run(server.broadcast({"type": "ping"}))
    finally:
        server.clients.difference_update(clients)

    assert all(client.sent == [{"type": "ping"}] for client in clients)


@pytest.mark.parametrize("value", ["false", "true", 1, 0, None])
def test_set_alternate_mode_requires_boolean(host, value):
    ack = host.handle_command({"type": "cmd", "action": "set_alternate_mode", "enabled": value})

    assert not ack["ok"]
    assert ack["error"] == "enabled_must_be_boolean"
    assert not host.alternate_mounting
    assert not host.engine.gyroscope_sensor.alternate_mounting


def test_set_alternate_mode_false_disables(host):
    host.handle_command({"type": "cmd", "action": "set_alternate_mode", "enabled": True})
    ack = host.handle_command({"type": "cmd", "action": "set_alternate_mode", "enabled": False})

    assert ack["ok"]
    assert ack["enabled"] is False
    assert not host.engine.gyroscope_sensor.alternate_mounting
