"""Fire-target payload release logic and fixed-interval task timing."""

from __future__ import annotations

import enum
import math
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_ACCEPTABLE_ERROR = 0.2
HOLD_OPEN_MS = 5000
CLOSE_AFTER_MS = 3000


class ServoCommand(enum.Enum):
    """Position to drive the payload servo to."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class PayloadDecision:
    """Outcome of one payload update; ``servo`` is None when it should not move."""

    fire_detected: bool
    fire_location: tuple[float, float]
    payload_dropped: bool
    servo: ServoCommand | None


def body_to_global(fire_body: Sequence[float], yaw: float) -> tuple[float, float]:
    """Rotate a body-frame (x, y) offset by ``yaw`` radians into the local frame."""
    x, y = fire_body[0], fire_body[1]
    c, s = math.cos(yaw), math.sin(yaw)
    return c * x - s * y, s * x + c * y


class PayloadDropper:
    """Decides when to release the payload over a detected fire.

    Once released, the servo is held open for a while even if the fire
    drifts out of tolerance.
    """

    def __init__(self, acceptable_error: float = DEFAULT_ACCEPTABLE_ERROR):
        self.acceptable_error = acceptable_error
        self.opened_time = 0.0
        self.opened = False
        self.fire_location = (0.0, 0.0)
        self.payload_dropped = False

    def update(
        self,
        fire_found: bool,
        fire_body: Sequence[float],
        yaw: float,
        position: Sequence[float],
        now_ms: float,
    ) -> PayloadDecision:
        """Process one thermal detection result taken at ``now_ms``."""
        gx, gy = body_to_global(fire_body, yaw)
        open_time = now_ms - self.opened_time
        servo: ServoCommand | None = None

        if fire_found:
            self.fire_location = (gx + position[0], gy + position[1])
            close_enough = math.hypot(gx, gy) < self.acceptable_error
            if close_enough or (open_time < HOLD_OPEN_MS and self.opened):
                self.payload_dropped = True
                servo = ServoCommand.OPEN
                if open_time > HOLD_OPEN_MS:
                    self.opened_time = now_ms
                self.opened = True
            else:
                servo = ServoCommand.CLOSED
                self.payload_dropped = False
        elif open_time > CLOSE_AFTER_MS:
            self.payload_dropped = False
            servo = ServoCommand.CLOSED

        return PayloadDecision(
            fire_detected=fire_found,
            fire_location=self.fire_location,
            payload_dropped=self.payload_dropped,
            servo=servo,
        )


class IntervalTimer:
    """Fires at most once per ``interval_ms`` of a millisecond clock."""

    def __init__(self, interval_ms: float, start_ms: float = 0):
        if interval_ms < 0:
            raise ValueError("interval_ms must not be negative")
        self.interval_ms = interval_ms
        self.last_ms = start_ms

    def due(self, now_ms: float) -> bool:
        """Return True and restart the interval if it has elapsed."""
        if now_ms - self.last_ms >= self.interval_ms:
            self.last_ms = now_ms
            return True
        return False