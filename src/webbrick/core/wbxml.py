"""Parsing of the ``WbStatus.xml`` and ``WbCfg.xml`` documents.

Bricks serve both documents in a legacy 8-bit charset; the parser is told
the charset explicitly so the documents are transcoded before parsing.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from webbrick.errors import ParseError
from webbrick.models import ChannelReading, PollSnapshot

DEFAULT_CHARSET = "iso-8859-1"

STATUS_ROOT = "WebbrickStatus"
CONFIG_ROOT = "WebbrickConfig"


@dataclass(frozen=True)
class Reading:
    id: int
    value: int


@dataclass(frozen=True)
class NamedChannel:
    id: int
    name: str


@dataclass
class BrickStatus:
    brick_id: int
    version: str = ""
    digital_inputs: int = 0
    digital_outputs: int = 0
    temperatures: list[Reading] = field(default_factory=list)
    analog_outputs: list[Reading] = field(default_factory=list)


@dataclass
class BrickConfig:
    name: str = ""
    version: str = ""
    ip: str = ""
    mac: str = ""
    digital_inputs: list[NamedChannel] = field(default_factory=list)
    temperatures: list[NamedChannel] = field(default_factory=list)
    digital_outputs: list[NamedChannel] = field(default_factory=list)
    analog_outputs: list[NamedChannel] = field(default_factory=list)


def _parse_root(body: bytes, expected: str, charset: str) -> ET.Element:
    try:
        parser = ET.XMLParser(encoding=charset)
        root = ET.fromstring(body, parser=parser)
    except (ET.ParseError, LookupError) as exc:
        raise ParseError(f"Malformed {expected} document: {exc}") from exc
    if root.tag != expected:
        raise ParseError(f"Expected <{expected}> document, got <{root.tag}>")
    return root


def _int(text: str | None, what: str) -> int:
    if text is None or not text.strip():
        return 0
    try:
        return int(text.strip())
    except ValueError as exc:
        raise ParseError(f"Invalid integer for {what}: {text!r}") from exc


def _readings(root: ET.Element, path: str) -> list[Reading]:
    return [
        Reading(id=_int(node.get("id"), f"{path} id"), value=_int(node.text, path))
        for node in root.iterfind(path)
    ]


def _named(root: ET.Element, path: str) -> list[NamedChannel]:
    return [
        NamedChannel(id=_int(node.get("id"), f"{path} id"), name=node.get("Name", ""))
        for node in root.iterfind(path)
    ]


def parse_status(body: bytes, charset: str = DEFAULT_CHARSET) -> BrickStatus:
    root = _parse_root(body, STATUS_ROOT, charset)
    return BrickStatus(
        brick_id=_int(root.findtext("SN"), "SN"),
        version=root.get("Ver", ""),
        digital_inputs=_int(root.findtext("DI"), "DI"),
        digital_outputs=_int(root.findtext("DO"), "DO"),
        temperatures=_readings(root, "Tmps/Tmp"),
        analog_outputs=_readings(root, "AOs/AO"),
    )


def parse_config(body: bytes, charset: str = DEFAULT_CHARSET) -> BrickConfig:
    root = _parse_root(body, CONFIG_ROOT, charset)
    address = root.find("SI")
    return BrickConfig(
        name=(root.findtext("NN") or "").strip(),
        version=root.get("Ver", ""),
        ip=address.get("ip", "") if address is not None else "",
        mac=address.get("mac", "") if address is not None else "",
        digital_inputs=_named(root, "CDs/CD"),
        temperatures=_named(root, "CTs/CT"),
        digital_outputs=_named(root, "NOs/NO"),
        analog_outputs=_named(root, "NAs/NA"),
    )


def _name_at(channels: list[NamedChannel], index: int) -> str:
    return channels[index].name if index < len(channels) else ""


def _bit(mask: int, index: int) -> int:
    return (mask >> index) & 1


def build_snapshot(
    status: BrickStatus, config: BrickConfig, address: str = ""
) -> PollSnapshot:
    """Pair status readings with config names by position."""
    snapshot = PollSnapshot(
        brick_id=status.brick_id,
        name=config.name,
        address=address or config.ip,
    )
    for index, reading in enumerate(status.analog_outputs):
        snapshot.lights.append(
            ChannelReading(
                index=index,
                channel=reading.id,
                name=_name_at(config.analog_outputs, index),
                value=reading.value,
            )
        )
    for index, channel in enumerate(config.digital_inputs):
        snapshot.inputs.append(
            ChannelReading(
                index=index,
                channel=channel.id,
                name=channel.name,
                value=_bit(status.digital_inputs, index),
            )
        )
    for index, channel in enumerate(config.digital_outputs):
        snapshot.outputs.append(
            ChannelReading(
                index=index,
                channel=channel.id,
                name=channel.name,
                value=_bit(status.digital_outputs, index),
            )
        )
    for index, reading in enumerate(status.temperatures):
        snapshot.temperatures.append(
            ChannelReading(
                index=index,
                channel=reading.id,
                name=_name_at(config.temperatures, index),
                value=reading.value,
            )
        )
    return snapshot
