"""Decoding of Webbrick UDP announcements.

Each datagram is a short run of bytes whose meaning depends on position and
on the two-letter source-type code at indices 2-3:

    1      packet type
    2-3    source type (ST, DO, TD, AO, CT)
    4      hour (ST) / source channel
    5      minute (ST) / target channel
    6      second * 2 (ST)
    7      originating brick
    9      day (ST)
    11     reading (AO, CT)
    12     reading high part, added to index 11 (CT)

Short datagrams are not an error: missing positions stay at zero.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from webbrick.errors import UnknownDeviceTypeError
from webbrick.models import DecodedPacket, DeviceCategory

logger = logging.getLogger(__name__)

TEMPERATURE_SCALE = 16


def _byte(data: bytes, index: int) -> int:
    return data[index] if index < len(data) else 0


def _char(data: bytes, index: int) -> str:
    return chr(data[index]) if index < len(data) else ""


def _channels(packet: DecodedPacket, data: bytes) -> None:
    packet.source_channel = _byte(data, 4)
    packet.target_channel = _byte(data, 5)


def _clock(packet: DecodedPacket, data: bytes) -> None:
    packet.hour = _byte(data, 4)
    packet.minute = _byte(data, 5)
    # seconds travel at half resolution
    packet.second = _byte(data, 6) // 2
    packet.day = _byte(data, 9)


def _analog(packet: DecodedPacket, data: bytes) -> None:
    _channels(packet, data)
    packet.value = _byte(data, 11)


def _temperature(packet: DecodedPacket, data: bytes) -> None:
    _channels(packet, data)
    packet.value = _byte(data, 11) + _byte(data, 12)


EXTRACTORS: dict[str, Callable[[DecodedPacket, bytes], None]] = {
    "ST": _clock,
    "DO": _channels,
    "TD": _channels,
    "AO": _analog,
    "CT": _temperature,
}


def decode(data: bytes, address: str) -> DecodedPacket:
    packet = DecodedPacket(
        address=address,
        packet_type=_char(data, 1),
        source_type=(_char(data, 2) + _char(data, 3)).upper(),
        brick_id=_byte(data, 7),
    )

    extractor = EXTRACTORS.get(packet.source_type)
    if extractor is not None:
        extractor(packet, data)
    elif len(data) > 4:
        logger.debug(
            "No field rules for source type %r from %s: %s",
            packet.source_type,
            address,
            data.hex(" "),
        )
    return packet


@dataclass(frozen=True)
class Sighting:
    """A decoded packet mapped onto a registry entry."""

    uid: str
    category: DeviceCategory
    channel: int
    brick_id: int
    ip: str
    # None leaves the cached value untouched
    state: bool | None = False
    level: float | None = 0.0
    message: str = ""


def _heartbeat(packet: DecodedPacket, pirs: Mapping[str, bool]) -> Sighting:
    return Sighting(
        uid=packet.uid,
        category=DeviceCategory.HEARTBEAT,
        channel=packet.source_channel,
        brick_id=packet.brick_id,
        ip=packet.address,
        message=f"Seen at {packet.hour}:{packet.minute}:{packet.second}",
    )


def _trigger(packet: DecodedPacket, pirs: Mapping[str, bool]) -> Sighting:
    # Digital outputs announce like trigger inputs on this bus. The
    # announcement carries no output state, so the cached one is kept.
    return Sighting(
        uid=packet.uid,
        category=DeviceCategory.PIR,
        channel=packet.source_channel,
        brick_id=packet.brick_id,
        ip=packet.address,
        state=None,
        level=None,
        message=f"Trigger on {packet.source_channel}",
    )


def _digital_input(packet: DecodedPacket, pirs: Mapping[str, bool]) -> Sighting:
    if pirs.get(packet.uid, False):
        category, label = DeviceCategory.PIR, "PIR"
    else:
        category, label = DeviceCategory.BUTTON, "Button"
    return Sighting(
        uid=packet.uid,
        category=category,
        channel=packet.source_channel,
        brick_id=packet.brick_id,
        ip=packet.address,
        state=True,
        message=f"{label} on {packet.source_channel}",
    )


def _light(packet: DecodedPacket, pirs: Mapping[str, bool]) -> Sighting:
    return Sighting(
        uid=packet.uid,
        category=DeviceCategory.LIGHT,
        channel=packet.source_channel,
        brick_id=packet.brick_id,
        ip=packet.address,
        state=packet.value > 0,
        level=float(packet.value),
        message=f"Light at level {packet.value}",
    )


def _temp(packet: DecodedPacket, pirs: Mapping[str, bool]) -> Sighting:
    level = packet.value / TEMPERATURE_SCALE
    return Sighting(
        uid=packet.uid,
        category=DeviceCategory.TEMP,
        channel=packet.source_channel,
        brick_id=packet.brick_id,
        ip=packet.address,
        level=level,
        message=f"Temperature at {level:g}",
    )


NORMALIZERS: dict[str, Callable[[DecodedPacket, Mapping[str, bool]], Sighting]] = {
    "ST": _heartbeat,
    "DO": _trigger,
    "TD": _digital_input,
    "AO": _light,
    "CT": _temp,
}


def normalize(packet: DecodedPacket, pirs: Mapping[str, bool] | None = None) -> Sighting:
    """Map a packet onto its device category and cached values.

    Raises UnknownDeviceTypeError for source types without a rule.
    """
    normalizer = NORMALIZERS.get(packet.source_type)
    if normalizer is None:
        raise UnknownDeviceTypeError(packet.source_type)
    return normalizer(packet, pirs or {})
