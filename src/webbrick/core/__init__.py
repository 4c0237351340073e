from __future__ import annotations

from .commands import CommandEncoder
from .decoder import Sighting, decode, normalize
from .engine import Engine
from .events import EventQueue
from .listener import BrickListener, listen
from .mock_brick import MockBrick, run_mock_brick
from .network import detect_local_ip
from .poller import StatusPoller
from .registry import DeviceRegistry
from .wbxml import build_snapshot, parse_config, parse_status

__all__ = [
    "BrickListener",
    "CommandEncoder",
    "DeviceRegistry",
    "Engine",
    "EventQueue",
    "MockBrick",
    "Sighting",
    "StatusPoller",
    "build_snapshot",
    "decode",
    "detect_local_ip",
    "listen",
    "normalize",
    "parse_config",
    "parse_status",
    "run_mock_brick",
]
