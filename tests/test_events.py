"""Tests for the bounded event queue."""

from __future__ import annotations

import pytest

from webbrick.core import EventQueue
from webbrick.models import Device, DeviceCategory


def _device(uid: str = "3::AO::1", level: float = 10.0) -> Device:
    return Device(
        id=1,
        uid=uid,
        brick_id=3,
        category=DeviceCategory.LIGHT,
        channel=1,
        ip="10.0.0.3",
        level=level,
    )


def test_overflow_drops_newest_without_blocking():
    events = EventQueue(maxsize=2)

    assert events.emit("first", _device()) is True
    assert events.emit("second", _device()) is True
    assert events.emit("third", _device()) is False
    assert events.emit("fourth", _device()) is False

    assert events.dropped == 2
    assert len(events) == 2
    assert [event.name for event in events.drain()] == ["first", "second"]

    assert events.emit("fifth", _device()) is True
    assert events.dropped == 2


def test_event_holds_a_copy_of_the_device():
    events = EventQueue()
    device = _device(level=10.0)

    events.emit("lightset:10", device)
    device.level = 80.0

    event = events.get_nowait()
    assert event is not None
    assert event.device.level == 10.0
    assert event.device is not device


def test_get_times_out_when_empty():
    events = EventQueue()
    assert events.get(timeout=0.01) is None
    assert events.get_nowait() is None
    assert events.drain() == []


def test_maxsize():
    assert EventQueue(maxsize=5).maxsize == 5


@pytest.mark.parametrize("maxsize", [0, -1])
def test_queue_must_be_bounded(maxsize: int):
    with pytest.raises(ValueError, match="at least 1"):
        EventQueue(maxsize=maxsize)
