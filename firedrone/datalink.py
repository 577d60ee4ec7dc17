"""Datalink messages exchanged with the ground station and motion capture."""

from __future__ import annotations

import enum
import math
import struct
from dataclasses import dataclass

from firedrone.controller import AttitudeController
from firedrone.datalink_frame import FrameStats, encode_message, iter_frames
from firedrone.navstate import MoCapData, NavOutput

METERS_TO_FEET = 3.28084
DEFAULT_BUFFER_SIZE = 2048

# frame number, valid flag, position x/y/z, quaternion w/x/y/z
OPTITRACK_FORMAT = "<ii3f4f"
# rate-loop KP[3], KD[3], KI[3]
PID_FORMAT = "<3f3f3f"
# nav/gps/agl status, overrun, wow, autopilot, launch state, motor,
# time, pos[3], vel[3], q[4], altitude AGL
M0_FORMAT = "<bbbBbbbBf3f3f4ff"
# p, v, a (local), v, a, w (body), q[4], phi, theta, psi, dt,
# fire detected, fire location[2], payload dropped, desired location[3],
# waypoint number, number of waypoints
DRONE_STATE_FORMAT = "<3d3d3d3d3d3d4d4d?2f?3f2i"

_M0_DEFAULT_ALTITUDE = 2.0


class MessageId(enum.IntEnum):
    """Identifiers carried in the message header."""

    MESSAGE0 = 0
    MESSAGE1 = 1
    UP0 = 2
    PWM = 3
    AUTOPILOT_DELS = 4
    TRUTH = 5
    HITL_SIM2ONBOARD = 6
    HITL_ONBOARD2SIM = 7
    OPTITRACK = 8
    DRONE_STATE = 9
    SENSOR_DATA = 10
    PID = 11


def quat_to_euler(q) -> tuple[float, float, float]:
    """Return ``(phi, theta, psi)`` in radians for a (w, x, y, z) quaternion.

    Pitch saturates at +/- pi/2 when the quaternion is at gimbal lock.
    """
    q0, q1, q2, q3 = (float(value) for value in q[:4])
    phi = math.atan2(2.0 * (q0 * q1 + q2 * q3), 1.0 - 2.0 * (q1 * q1 + q2 * q2))
    sin_theta = 2.0 * (q0 * q2 - q3 * q1)
    if abs(sin_theta) >= 1.0:
        theta = math.copysign(math.pi / 2.0, sin_theta)
    else:
        theta = math.asin(sin_theta)
    psi = math.atan2(2.0 * (q0 * q3 + q1 * q2), 1.0 - 2.0 * (q2 * q2 + q3 * q3))
    return phi, theta, psi


@dataclass(frozen=True)
class OptitrackMessage:
    """A motion-capture pose sample, in metres."""

    frame_num: int
    valid: int
    pos: tuple[float, float, float]
    q: tuple[float, float, float, float]

    @classmethod
    def unpack(cls, payload: bytes) -> OptitrackMessage:
        """Decode the message body that follows the header."""
        expected = struct.calcsize(OPTITRACK_FORMAT)
        if len(payload) != expected:
            raise ValueError(f"optitrack payload needs {expected} bytes, got {len(payload)}")
        frame, valid, px, py, pz, qw, qx, qy, qz = struct.unpack(OPTITRACK_FORMAT, bytes(payload))
        return cls(frame, valid, (px, py, pz), (qw, qx, qy, qz))


@dataclass(frozen=True)
class PidMessage:
    """New rate-loop gains sent by the ground station."""

    kp: tuple[float, float, float]
    kd: tuple[float, float, float]
    ki: tuple[float, float, float]

    @classmethod
    def unpack(cls, payload: bytes) -> PidMessage:
        """Decode the message body that follows the header."""
        expected = struct.calcsize(PID_FORMAT)
        if len(payload) != expected:
            raise ValueError(f"PID payload needs {expected} bytes, got {len(payload)}")
        values = struct.unpack(PID_FORMAT, bytes(payload))
        return cls(tuple(values[0:3]), tuple(values[3:6]), tuple(values[6:9]))


def encode_m0(nav: NavOutput) -> bytes:
    """Return the position/attitude message for the ground station display.

    The y and z axes are flipped; unused fields keep their defaults.
    """
    payload = struct.pack(
        M0_FORMAT,
        0, 0, 0, 0, 0, 0, 0, 0,
        0.0,
        nav.position[0], -nav.position[1], -nav.position[2],
        0.0, 0.0, 0.0,
        *nav.q[:4],
        _M0_DEFAULT_ALTITUDE,
    )
    return encode_message(MessageId.MESSAGE0, payload)


def encode_drone_state(nav: NavOutput, desired, waypoint_number: int,
                       number_of_waypoints: int) -> bytes:
    """Return the full navigation state message."""
    payload = struct.pack(
        DRONE_STATE_FORMAT,
        *nav.position[:3],
        *nav.velocity[:3],
        *nav.acceleration[:3],
        *nav.velocity_body[:3],
        *nav.acceleration_body[:3],
        *nav.angular_rate_body[:3],
        *nav.q[:4],
        nav.phi, nav.theta, nav.psi, nav.dt,
        bool(nav.fire_detected),
        *nav.fire_location[:2],
        bool(nav.payload_dropped),
        *desired[:3],
        waypoint_number,
        number_of_waypoints,
    )
    return encode_message(MessageId.DRONE_STATE, payload)


def _sized(fmt: str) -> int:
    return struct.calcsize(fmt)


class DatalinkReader:
    """Consumes received packets and applies their messages.

    Motion-capture samples update ``mocap``; PID messages replace the
    controller's rate gains. Truth and simulator messages are kept raw in
    ``last_payloads``.
    """

    def __init__(self, mocap: MoCapData | None = None,
                 controller: AttitudeController | None = None,
                 buffer_size: int = DEFAULT_BUFFER_SIZE):
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self.mocap = mocap if mocap is not None else MoCapData()
        self.controller = controller
        self.buffer_size = buffer_size
        self.stats = FrameStats(buffer_size=buffer_size)
        self.last_payloads: dict[int, bytes] = {}

    def feed(self, data: bytes) -> list[int]:
        """Process one received packet; return the ids of the well-formed messages."""
        handled: list[int] = []
        for header, payload in iter_frames(bytes(data)[: self.buffer_size], self.stats):
            message_id = header.message_id
            try:
                message_id = MessageId(message_id)
            except ValueError:
                pass
            handled.append(message_id)

            if message_id == MessageId.OPTITRACK:
                if len(payload) == _sized(OPTITRACK_FORMAT):
                    self._apply_optitrack(OptitrackMessage.unpack(payload))
            elif message_id in (MessageId.TRUTH, MessageId.HITL_SIM2ONBOARD):
                self.last_payloads[message_id] = payload
            elif message_id == MessageId.PID:
                if len(payload) == _sized(PID_FORMAT):
                    self._apply_pid(PidMessage.unpack(payload))
        return handled

    def _apply_optitrack(self, message: OptitrackMessage) -> None:
        mocap = self.mocap
        mocap.valid = message.valid
        if not message.valid:
            return
        feet = [value * METERS_TO_FEET for value in message.pos]
        if mocap.first:
            mocap.first = False
            mocap.calibration_pos = list(feet)
        mocap.pos = [value - origin for value, origin in zip(feet, mocap.calibration_pos)]
        mocap.quat = list(message.q)
        if message.frame_num != mocap.frame_counter:
            mocap.frame_counter = message.frame_num
            mocap.update_counter += 1
        mocap.euler_angles = [math.degrees(angle) for angle in quat_to_euler(mocap.quat)]

    def _apply_pid(self, message: PidMessage) -> None:
        if self.controller is None:
            return
        gains = self.controller.gains
        gains.kp_rate = list(message.kp)
        gains.kd_rate = list(message.kd)
        gains.ki_rate = list(message.ki)