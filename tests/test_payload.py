import math

import pytest

from firedrone.payload import (
    IntervalTimer,
    PayloadDropper,
    ServoCommand,
    body_to_global,
)


def test_body_to_global_zero_yaw_identity():
    assert body_to_global((1.5, -2.0), 0.0) == pytest.approx((1.5, -2.0))


def test_body_to_global_quarter_turn():
    assert body_to_global((1.0, 0.0), math.pi / 2) == pytest.approx((0.0, 1.0), abs=1e-12)


def test_body_to_global_preserves_length():
    gx, gy = body_to_global((3.0, 4.0), 1.234)
    assert math.hypot(gx, gy) == pytest.approx(5.0)


def test_close_fire_drops_payload():
    dropper = PayloadDropper()
    decision = dropper.update(True, (0.1, 0.0), 0.0, (2.0, 3.0), 1000)
    assert decision.fire_detected
    assert decision.payload_dropped
    assert decision.servo is ServoCommand.OPEN
    assert decision.fire_location == pytest.approx((2.1, 3.0))


def test_far_fire_keeps_closed():
    dropper = PayloadDropper()
    decision = dropper.update(True, (1.0, 1.0), 0.0, (0.0, 0.0), 1000)
    assert not decision.payload_dropped
    assert decision.servo is ServoCommand.CLOSED


def test_hold_open_then_close():
    dropper = PayloadDropper()
    dropper.update(True, (0.0, 0.0), 0.0, (0.0, 0.0), 1000)
    held = dropper.update(True, (5.0, 5.0), 0.0, (0.0, 0.0), 2000)
    assert held.servo is ServoCommand.OPEN
    assert held.payload_dropped
    closed = dropper.update(True, (5.0, 5.0), 0.0, (0.0, 0.0), 6000)
    assert closed.servo is ServoCommand.CLOSED
    assert not closed.payload_dropped


def test_reopen_restarts_hold_window():
    dropper = PayloadDropper()
    dropper.update(True, (0.0, 0.0), 0.0, (0.0, 0.0), 1000)
    dropper.update(True, (0.0, 0.0), 0.0, (0.0, 0.0), 10000)
    assert dropper.opened_time == 10000
    held = dropper.update(True, (5.0, 5.0), 0.0, (0.0, 0.0), 12000)
    assert held.servo is ServoCommand.OPEN


def test_no_fire_early_leaves_servo():
    dropper = PayloadDropper()
    dropper.update(True, (0.0, 0.0), 0.0, (0.0, 0.0), 1000)
    decision = dropper.update(False, (0.0, 0.0), 0.0, (9.0, 9.0), 2000)
    assert not decision.fire_detected
    assert decision.servo is None
    assert decision.payload_dropped
    assert decision.fire_location == pytest.approx((0.0, 0.0))


def test_no_fire_late_closes():
    dropper = PayloadDropper()
    dropper.update(True, (0.0, 0.0), 0.0, (0.0, 0.0), 1000)
    decision = dropper.update(False, (0.0, 0.0), 0.0, (0.0, 0.0), 7000)
    assert decision.servo is ServoCommand.CLOSED
    assert not decision.payload_dropped


def test_interval_timer():
    timer = IntervalTimer(10, start_ms=0)
    assert not timer.due(5)
    assert timer.due(10)
    assert timer.last_ms == 10
    assert not timer.due(19)
    assert timer.due(25)


def test_interval_timer_negative_interval():
    with pytest.raises(ValueError):
        IntervalTimer(-1)