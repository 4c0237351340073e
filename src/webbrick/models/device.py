"""Device models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from pydantic import BaseModel


class DeviceCategory(IntEnum):
    """Kind of channel a device represents.

    The integer values are what a bridge publishes in its topic names.
    """

    UNKNOWN = -1
    LIGHT = 0
    PIR = 1
    BUTTON = 2
    TEMP = 3
    STATE = 4
    HEARTBEAT = 5


def make_uid(brick_id: int, source_type: str, channel: int) -> str:
    """Build the registry key ``{brick}::{SOURCE}::{channel}``."""
    return f"{brick_id}::{source_type.upper()}::{channel}"


class Device(BaseModel):
    """A discovered brick channel (last known state)."""

    model_config = {"validate_assignment": True}

    id: int
    uid: str
    name: str = ""
    brick_id: int
    category: DeviceCategory
    channel: int
    ip: str
    subscribed: bool = True
    queried: bool = False
    state: bool = False
    level: float = 0.0
    last_message: str = ""


@dataclass(frozen=True)
class Event:
    """A registry change handed to the event queue.

    ``device`` is a copy taken when the event was raised.
    """

    name: str
    device: Device
