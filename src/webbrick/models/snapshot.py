from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChannelReading:
    index: int
    channel: int
    name: str
    value: int


@dataclass
class PollSnapshot:
    """One brick's status and configuration, paired by channel position."""

    brick_id: int
    name: str = ""
    address: str = ""
    lights: list[ChannelReading] = field(default_factory=list)
    inputs: list[ChannelReading] = field(default_factory=list)
    outputs: list[ChannelReading] = field(default_factory=list)
    temperatures: list[ChannelReading] = field(default_factory=list)

    @property
    def channel_count(self) -> int:
        return (
            len(self.lights)
            + len(self.inputs)
            + len(self.outputs)
            + len(self.temperatures)
        )
