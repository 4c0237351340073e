from __future__ import annotations

from dataclasses import dataclass

from .device import make_uid


@dataclass
class DecodedPacket:
    address: str
    packet_type: str = ""
    source_type: str = ""
    source_channel: int = 0
    target_channel: int = 0
    brick_id: int = 0
    hour: int = 0
    minute: int = 0
    second: int = 0
    day: int = 0
    value: int = 0

    @property
    def uid(self) -> str:
        return make_uid(self.brick_id, self.source_type, self.source_channel)
