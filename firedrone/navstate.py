"""Navigation filter state, navigation output and raw sensor records."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

DEG2RAD = 0.0174533
RAD2DEG = 57.2958
MILLI2BASE = 0.001

POZYX_GYR_SCALE = 0.0625
POZYX_MAG_SCALE = 0.0625
POZYX_EULER_SCALE = 0.0625
POZYX_QUAT_SCALE = 1.0 / 16384.0

GRAVITY = 9.81
NUM_CALIBRATION = 500
LOWPASS_WEIGHT = 0.01


def _zeros(n: int):
    return lambda: [0.0] * n


def _square(n: int):
    return lambda: [[0.0] * n for _ in range(n)]


def _restore_defaults(obj) -> None:
    fresh = type(obj)()
    for item in fields(obj):
        setattr(obj, item.name, getattr(fresh, item.name))


@dataclass
class NavOutput:
    """Navigation solution handed to the controller and the ground station.

    Vectors are in the local frame unless the name says ``body``.
    """

    position: list[float] = field(default_factory=_zeros(3))
    velocity: list[float] = field(default_factory=_zeros(3))
    acceleration: list[float] = field(default_factory=_zeros(3))
    velocity_body: list[float] = field(default_factory=_zeros(3))
    acceleration_body: list[float] = field(default_factory=_zeros(3))
    angular_rate_body: list[float] = field(default_factory=_zeros(3))
    q: list[float] = field(default_factory=lambda: [1.0, 0.0, 0.0, 0.0])
    phi: float = 0.0
    theta: float = 0.0
    psi: float = 0.0
    dt: float = 0.0
    fire_detected: bool = False
    fire_location: list[float] = field(default_factory=_zeros(2))
    payload_dropped: bool = False

    def reset(self) -> None:
        """Return every field to its initial value."""
        _restore_defaults(self)


@dataclass
class KalmanState:
    """Internal state of the orientation and position filters."""

    orientation_state: list[float] = field(
        default_factory=lambda: [1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    )
    position_state: list[float] = field(default_factory=_zeros(9))
    orientation_covariance: list[list[float]] = field(default_factory=_square(7))
    position_covariance: list[list[float]] = field(default_factory=_square(9))
    orientation_derivative: list[float] = field(default_factory=_zeros(7))
    position_derivative: list[float] = field(default_factory=_zeros(9))
    orientation_mocap_sigma: list[float] = field(default_factory=lambda: [0.001] * 4)
    euler_angles: list[float] = field(default_factory=_zeros(3))
    angular_rates_avg: list[float] = field(default_factory=_zeros(3))
    angular_rates_current: list[float] = field(default_factory=_zeros(3))
    ekf_counter: int = 0
    imu_counter: int = 0
    gps_counter: int = 0

    def reset(self) -> None:
        """Return every field to its initial value."""
        _restore_defaults(self)


@dataclass
class PozyxData:
    """Latest readings of the inertial measurement unit."""

    gyr: list[float] = field(default_factory=_zeros(3))
    gyr_rad: list[float] = field(default_factory=_zeros(3))
    euler_rad: list[float] = field(default_factory=_zeros(3))
    update_counter: int = 0
    acc: list[float] = field(default_factory=_zeros(3))
    mag: list[float] = field(default_factory=_zeros(3))
    euler: list[float] = field(default_factory=_zeros(3))
    quat: list[float] = field(default_factory=_zeros(4))


@dataclass
class MoCapData:
    """Latest motion-capture pose, relative to the first valid sample."""

    pos: list[float] = field(default_factory=_zeros(3))
    quat: list[float] = field(default_factory=_zeros(4))
    update_counter: int = 0
    frame_counter: int = 0
    valid: int = 0
    first: bool = True
    calibration_pos: list[float] = field(default_factory=_zeros(3))
    euler_angles: list[float] = field(default_factory=_zeros(3))