"""Data models for webbrick."""

from webbrick.models.device import Device, DeviceCategory, Event, make_uid
from webbrick.models.packet import DecodedPacket
from webbrick.models.snapshot import ChannelReading, PollSnapshot

__all__ = [
    "ChannelReading",
    "DecodedPacket",
    "Device",
    "DeviceCategory",
    "Event",
    "PollSnapshot",
    "make_uid",
]
