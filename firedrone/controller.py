"""Attitude and rate PID controller for manual flight."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

_STICK_ANGLE_DEG = 20
_PI_APPROX = 3.1415926535
YAW_RATE_SCALE = 0.2
DEFAULT_WORK_DT = 0.02


def wrap_angle(h: float) -> float:
    """Wrap an angle in radians into roughly [-pi, pi]."""
    turns = h / (2 * math.pi)
    whole = int(turns + 0.5) if h > 0 else int(turns - 0.5)
    return h - math.pi * 2 * whole


@dataclass
class ControllerGains:
    """PID gains of the angle and rate loops, per roll, pitch and yaw axis."""

    kp_angle: list[float] = field(default_factory=lambda: [3.1, 3.2, 0.3])
    kd_angle: list[float] = field(default_factory=lambda: [0.09, 0.09, 0.2])
    ki_angle: list[float] = field(default_factory=lambda: [0.001, 0.001, 0.001])
    kp_rate: list[float] = field(default_factory=lambda: [0.012, 0.012, 0.1])
    kd_rate: list[float] = field(default_factory=lambda: [0.003, 0.003, 0.01])
    ki_rate: list[float] = field(default_factory=lambda: [0.001, 0.001, 0.01])


@dataclass(frozen=True)
class ControlOutput:
    """Normalised commands: collective ``delf`` and moments ``delm`` (roll, pitch, yaw)."""

    delf: float
    delm: tuple[float, float, float]


_IDLE = ControlOutput(0.0, (0.0, 0.0, 0.0))
_KILLED = ControlOutput(-1.0, (0.0, 0.0, 0.0))


class AttitudeController:
    """Cascaded angle/rate controller driven by stick inputs in [-1, 1].

    Integrators advance by the fixed ``work_dt``; derivatives use the measured ``dt``.
    """

    def __init__(self, gains: ControllerGains | None = None, work_dt: float = DEFAULT_WORK_DT):
        self.gains = gains if gains is not None else ControllerGains()
        self.work_dt = work_dt
        self.angle_integral = [0.0, 0.0, 0.0]
        self.rate_integral = [0.0, 0.0, 0.0]
        self.prev_rate_error = [0.0, 0.0, 0.0]

    def reset(self) -> None:
        """Clear the angle and rate integrators."""
        self.angle_integral = [0.0, 0.0, 0.0]
        self.rate_integral = [0.0, 0.0, 0.0]

    def update(
        self,
        dt: float,
        rates: Sequence[float],
        angles: Sequence[float],
        throttle: float,
        roll: float,
        pitch: float,
        yaw: float,
        manual: bool,
        killed: bool,
    ) -> ControlOutput:
        """Run one control step.

        ``rates`` are body angular rates and ``angles`` are (phi, theta, psi),
        both in radians. A kill resets the integrators and cuts the collective.
        The manual law commands moments only; the collective stays at zero.
        """
        if killed:
            self.reset()
            return _KILLED
        if not manual:
            return _IDLE
        if dt <= 0:
            raise ValueError("dt must be positive")

        g = self.gains
        wx, wy, wz = rates
        phi, theta, _ = angles

        desired_angles = (
            roll * _STICK_ANGLE_DEG * _PI_APPROX / 180,
            pitch * _STICK_ANGLE_DEG * _PI_APPROX / 180,
        )
        angle_errors = (desired_angles[0] - phi, desired_angles[1] - theta)
        angle_derivatives = (wx, wy)

        desired_rates = []
        for axis, (error, derivative) in enumerate(zip(angle_errors, angle_derivatives)):
            self.angle_integral[axis] += error * self.work_dt
            desired_rates.append(
                g.kp_angle[axis] * error
                - g.kd_angle[axis] * derivative
                + g.ki_angle[axis] * self.angle_integral[axis]
            )
        desired_rates.append(yaw * YAW_RATE_SCALE)

        moments = []
        for axis, (desired, measured) in enumerate(zip(desired_rates, (wx, wy, wz))):
            error = desired - measured
            derivative = (self.prev_rate_error[axis] - error) / dt
            self.rate_integral[axis] += error * self.work_dt
            moments.append(
                g.kp_rate[axis] * error
                - g.kd_rate[axis] * derivative
                + g.ki_rate[axis] * self.rate_integral[axis]
            )
            self.prev_rate_error[axis] = error

        return ControlOutput(0.0, (moments[0], moments[1], moments[2]))