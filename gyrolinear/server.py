"""
gyrolinear WebSocket Server

Runs the linear acceleration pipeline and streams it to clients:
1. Reads IMU channels (gyroscope, accelerometer, gravity, magnetometer)
2. Locks the initial orientation, then integrates the gyroscope
3. Removes gravity from the accelerometer signal
4. Streams linear acceleration + orientation via WebSocket

Without hardware attached the channels are fed by a SimulatedDevice.

Commands (JSON):
    {"type": "cmd", "action": "start"}
    {"type": "cmd", "action": "stop"}
    {"type": "cmd", "action": "restart"}
    {"type": "cmd", "action": "set_alternate_mode", "enabled": true}
    {"type": "cmd", "action": "status"}

Usage:
    python -m gyrolinear.server
"""

import asyncio
import json
import logging
import math
import os
from typing import Optional

import websockets

from .config import FusionConfig
from .fusion import LinearAccelerationEstimator
from .simulation import SimulatedDevice

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration
# =============================================================================

HOST = os.getenv("GYROLINEAR_HOST", "0.0.0.0")
PORT = int(os.getenv("GYROLINEAR_PORT", "8765"))

SAMPLE_RATE_HZ = float(os.getenv("GYROLINEAR_SAMPLE_RATE_HZ", "100"))
SEND_EVERY_N = max(1, int(os.getenv("GYROLINEAR_SEND_EVERY_N", "5")))  # 20 Hz at 100 Hz
LOG_LEVEL = os.getenv("GYROLINEAR_LOG_LEVEL", "INFO").upper()

# Simulated motion when no hardware is present
SIM_ANGULAR_VELOCITY = (0.0, 0.0, float(os.getenv("GYROLINEAR_SIM_YAW_RATE", "0.0")))
SIM_NOISE_STD = {
    "gyroscope": 0.002,
    "accelerometer": 0.05,
    "gravity": 0.01,
    "magnetic_field": 0.3,
}

ACTIONS = ("start", "stop", "restart", "set_alternate_mode", "status")

# =============================================================================
# Global State
# =============================================================================

clients = set()


# =============================================================================
# Helpers
# =============================================================================

def round_vec(values, ndigits: int = 4):
    return [round(float(v), ndigits) for v in values]


def is_command_message(msg: dict) -> bool:
    return msg.get("type") in ("cmd", "command")


class FusionHost:
    """
    Owns the device, the engine and the latest output for one server.

    Every engine callback runs inside step(), which the sensor loop calls
    on the event loop thread, so callbacks are serialized.
    """

    def __init__(
        self,
        device: Optional[SimulatedDevice] = None,
        config: Optional[FusionConfig] = None
    ):
        self.config = config or FusionConfig.from_env()
        self.device = device or SimulatedDevice(
            angular_velocity=SIM_ANGULAR_VELOCITY,
            noise_std=SIM_NOISE_STD,
        )
        self.engine = LinearAccelerationEstimator.from_backend(self.device, self.config)
        self.alternate_mounting = self.config.alternate_mounting

        self.output_count = 0
        self.last_output = (0.0, 0.0, 0.0)
        self.last_timestamp = 0

        self.engine.register_listener(self.on_linear_acceleration)

    def on_linear_acceleration(self, values, timestamp: int):
        self.last_output = values
        self.last_timestamp = timestamp
        self.output_count += 1

    def step(self, dt: float) -> int:
        """Advance the device; returns the number of new outputs."""
        before = self.output_count
        self.device.step(dt)
        return self.output_count - before

    def status(self) -> dict:
        angles = self.engine.get_orientation()
        raw, _ = self.engine.acceleration_sensor.get_last_sample()
        return {
            "type": "linear_acceleration",
            "t": self.last_timestamp,
            "running": self.engine.is_running,
            "seeded": self.engine.has_initial_orientation,
            "initialized": self.engine.state_initialized,
            "alternate_mounting": self.alternate_mounting,
            "linear_acceleration": round_vec(self.last_output),
            "acceleration": round_vec(raw) if raw is not None else None,
            "gravity": round_vec(self.engine.get_gravity_vector()),
            "azimuth": round(math.degrees(angles.azimuth), 2),
            "pitch": round(math.degrees(angles.pitch), 2),
            "roll": round(math.degrees(angles.roll), 2),
        }

    def handle_command(self, msg: dict) -> dict:
        """Apply one command message and return its ack."""
        action = msg.get("action")
        if action not in ACTIONS:
            return {"type": "ack", "action": action, "ok": False, "error": "unknown_action"}

        if action == "start":
            note = "already_running" if self.engine.is_running else None
            self.engine.start()
            ack = {"type": "ack", "action": "start", "ok": True}
            if note:
                ack["note"] = note
            return ack

        if action == "stop":
            note = None if self.engine.is_running else "already_stopped"
            self.engine.stop()
            ack = {"type": "ack", "action": "stop", "ok": True}
            if note:
                ack["note"] = note
            return ack

        if action == "restart":
            self.engine.restart()
            return {"type": "ack", "action": "restart", "ok": True}

        if action == "set_alternate_mode":
            enabled = msg.get("enabled", False)
            if not isinstance(enabled, bool):
                return {"type": "ack", "action": "set_alternate_mode", "ok": False,
                        "error": "enabled_must_be_boolean"}
            self.alternate_mounting = enabled
            self.engine.set_alternate_mounting_mode(enabled)
            return {"type": "ack", "action": "set_alternate_mode", "ok": True, "enabled": enabled}

        return self.status()


host: Optional[FusionHost] = None


# =============================================================================
# WebSocket Broadcast
# =============================================================================

async def broadcast(msg: dict):
    if not clients:
        return
    data = json.dumps(msg)
    dead = []
    for ws in list(clients):
        try:
            await ws.send(data)
        except websockets.exceptions.ConnectionClosed:
            dead.append(ws)
    for ws in dead:
        clients.discard(ws)


# =============================================================================
# Client Handler
# =============================================================================

async def handle_client(ws):
    clients.add(ws)
    logger.info("Client connected (%d total)", len(clients))

    try:
        await ws.send(json.dumps(host.status()))

        async for raw in ws:
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON message")
                continue

            if not isinstance(msg, dict) or not is_command_message(msg):
                continue

            await ws.send(json.dumps(host.handle_command(msg)))

    except websockets.exceptions.ConnectionClosed:
        pass
    finally:
        clients.discard(ws)
        logger.info("Client disconnected")


# =============================================================================
# Sensor Loop
# =============================================================================

async def sensor_loop():
    dt = 1.0 / SAMPLE_RATE_HZ
    since_send = 0

    host.engine.start()

    try:
        while True:
            since_send += host.step(dt)
            if since_send >= SEND_EVERY_N:
                since_send = 0
                await broadcast(host.status())
            await asyncio.sleep(dt)
    finally:
        host.engine.stop()


# =============================================================================
# Main
# =============================================================================

async def main():
    global host
    host = FusionHost()

    logger.info("gyrolinear server")
    logger.info("WebSocket: ws://%s:%d", HOST, PORT)
    logger.info("Sample rate: %.1f Hz", SAMPLE_RATE_HZ)
    logger.info("Alternate mounting: %s", host.alternate_mounting)

    server = await websockets.serve(
        handle_client, HOST, PORT,
        ping_interval=20,
        ping_timeout=20
    )
    try:
        await sensor_loop()
    finally:
        server.close()
        await server.wait_closed()


def run():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    run()
