"""webbrick - protocol engine for legacy Webbrick home-automation controllers."""

from __future__ import annotations

from importlib.metadata import version

from .config import Settings, get_settings
from .core import CommandEncoder, DeviceRegistry, Engine, EventQueue, StatusPoller
from .errors import (
    DeviceNotFoundError,
    NetworkError,
    ParseError,
    StartupError,
    UnknownDeviceTypeError,
    UnsupportedOperationError,
    WebbrickError,
)
from .models import DecodedPacket, Device, DeviceCategory, Event, PollSnapshot

__all__ = [
    "CommandEncoder",
    "DecodedPacket",
    "Device",
    "DeviceCategory",
    "DeviceNotFoundError",
    "DeviceRegistry",
    "Engine",
    "Event",
    "EventQueue",
    "NetworkError",
    "ParseError",
    "PollSnapshot",
    "Settings",
    "StartupError",
    "StatusPoller",
    "UnknownDeviceTypeError",
    "UnsupportedOperationError",
    "WebbrickError",
    "__version__",
    "get_settings",
]

__version__ = version("webbrick")
