from __future__ import annotations

import asyncio
import logging
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from aiohttp import web

from .commands import COMMAND_PATH
from .poller import CONFIG_PATH, STATUS_PATH
from .wbxml import CONFIG_ROOT, DEFAULT_CHARSET, STATUS_ROOT

logger = logging.getLogger(__name__)

FIRMWARE_VERSION = "6.1.614"
DATAGRAM_SIZE = 16


def _sub(
    parent: ET.Element, tag: str, text: object = None, **attrs: object
) -> ET.Element:
    node = ET.SubElement(parent, tag, {key: str(value) for key, value in attrs.items()})
    if text is not None:
        node.text = str(text)
    return node


def _mask(bits: list[bool]) -> int:
    return sum(1 << index for index, bit in enumerate(bits) if bit)


def build_datagram(
    source_type: str,
    brick_id: int,
    channel: int = 0,
    target: int = 0,
    value: int = 0,
    packet_type: str = "D",
) -> bytes:
    """Lay out a brick announcement the way the decoder reads it.

    A ``CT`` reading is split over two bytes that the decoder adds, so it
    tops out at 510; other readings fit in one byte.
    """
    limit = 2 * 0xFF if source_type.upper() == "CT" else 0xFF
    if not 0 <= value <= limit:
        raise ValueError(
            f"{source_type} reading must be between 0 and {limit}, got {value}"
        )
    data = bytearray(DATAGRAM_SIZE)
    data[0] = DATAGRAM_SIZE
    data[1] = ord(packet_type)
    data[2] = ord(source_type[0])
    data[3] = ord(source_type[1])
    data[4] = channel
    data[5] = target
    data[7] = brick_id
    if source_type.upper() == "CT":
        data[11] = min(value, 0xFF)
        data[12] = max(value - 0xFF, 0)
    else:
        data[11] = value
    return bytes(data)


def heartbeat_datagram(brick_id: int, when: time.struct_time | None = None) -> bytes:
    when = when or time.localtime()
    data = bytearray(build_datagram("ST", brick_id))
    data[4] = when.tm_hour
    data[5] = when.tm_min
    data[6] = min(when.tm_sec, 59) * 2
    data[9] = when.tm_wday
    return bytes(data)


@dataclass
class MockBrick:
    """A fake brick serving status, config and commands over HTTP."""

    brick_id: int = 3
    name: str = "MockBrick"
    ip: str = "127.0.0.1"
    mac: str = "00:03:75:0F:83:99"
    charset: str = DEFAULT_CHARSET

    light_names: list[str] = field(
        default_factory=lambda: ["HallWay", "External", "Master Bed", "Library"]
    )
    input_names: list[str] = field(
        default_factory=lambda: ["Door", "Stair Lgt", "Lounge"]
    )
    output_names: list[str] = field(default_factory=lambda: ["Boiler", "Hot Water"])
    temp_names: list[str] = field(default_factory=lambda: ["Zone 1", "External"])

    lights: list[int] = field(default_factory=list)
    inputs: list[bool] = field(default_factory=list)
    outputs: list[bool] = field(default_factory=list)
    # raw sixteenths of a degree
    temps: list[int] = field(default_factory=list)

    commands: list[str] = field(default_factory=list)

    _runner: web.AppRunner | None = field(default=None, repr=False)
    _heartbeat_task: asyncio.Task[None] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.lights = self.lights or [0] * len(self.light_names)
        self.inputs = self.inputs or [False] * len(self.input_names)
        self.outputs = self.outputs or [False] * len(self.output_names)
        self.temps = self.temps or [320] * len(self.temp_names)

    def status_xml(self) -> bytes:
        root = ET.Element(STATUS_ROOT, {"Ver": FIRMWARE_VERSION})
        _sub(root, "Error", 0)
        _sub(root, "Context", 2)
        _sub(root, "LoginState", 0)
        _sub(root, "SN", self.brick_id)
        _sub(root, "DI", _mask(self.inputs))
        _sub(root, "DO", _mask(self.outputs))
        clock = _sub(root, "Clock")
        now = time.localtime()
        _sub(clock, "Date", time.strftime("%d/%m/%Y", now))
        _sub(clock, "Time", time.strftime("%H:%M:%S", now))
        _sub(clock, "Day", now.tm_wday)
        _sub(root, "OWBus", 1)
        tmps = _sub(root, "Tmps")
        for index, value in enumerate(self.temps):
            _sub(tmps, "Tmp", value, id=index, lo=-800, hi=1600)
        aos = _sub(root, "AOs")
        for index, value in enumerate(self.lights):
            _sub(aos, "AO", value, id=index)
        _sub(root, "AIs")
        return ET.tostring(root, encoding=self.charset)

    def config_xml(self) -> bytes:
        root = ET.Element(CONFIG_ROOT, {"Ver": FIRMWARE_VERSION})
        _sub(root, "NN", self.name)
        _sub(root, "SI", ip=self.ip, mac=self.mac)
        _sub(root, "SN", self.brick_id)
        cds = _sub(root, "CDs")
        for index, name in enumerate(self.input_names):
            cd = _sub(cds, "CD", id=index, Name=name, Opt=2)
            _sub(cd, "Trg", B1=68, B2=index, B3=0, B4=0)
        cts = _sub(root, "CTs")
        for index, name in enumerate(self.temp_names):
            ct = _sub(cts, "CT", id=index, Name=name)
            _sub(ct, "TrgL", Lo=-800, B1=192, B2=0, B3=0, B4=0)
            _sub(ct, "TrgH", Hi=1600, B1=192, B2=0, B3=0, B4=0)
        nos = _sub(root, "NOs")
        for index, name in enumerate(self.output_names):
            _sub(nos, "NO", id=index, Name=name)
        nas = _sub(root, "NAs")
        for index, name in enumerate(self.light_names):
            _sub(nas, "NA", id=index, Name=name)
        return ET.tostring(root, encoding=self.charset)

    def apply_command(self, command: str) -> None:
        """Apply one ``hid.spi`` command such as ``AA1;50`` or ``DO0;N``."""
        op, rest = command[:2].upper(), command[2:]
        channel_text, _, argument = rest.partition(";")
        channel = int(channel_text)

        if op == "AA":
            self.lights[channel] = int(argument)
        elif op == "DO":
            self.outputs[channel] = argument.upper() == "N"
        elif op == "DI":
            self.inputs[channel] = True
        else:
            raise ValueError(f"Unsupported command {command!r}")
        logger.info("Mock brick %d applied %s", self.brick_id, command)

    async def _handle_status(self, request: web.Request) -> web.Response:
        return web.Response(
            body=self.status_xml(), content_type="text/xml", charset=self.charset
        )

    async def _handle_config(self, request: web.Request) -> web.Response:
        return web.Response(
            body=self.config_xml(), content_type="text/xml", charset=self.charset
        )

    async def _handle_command(self, request: web.Request) -> web.Response:
        parts = [part for part in request.query.getall("com", []) if part != ":"]
        for command in parts:
            self.commands.append(command)
            try:
                self.apply_command(command)
            except (ValueError, IndexError) as exc:
                logger.warning("Rejected command %r: %s", command, exc)
                raise web.HTTPBadRequest(text=str(exc)) from exc
        return web.Response(text="OK")

    def create_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get(STATUS_PATH, self._handle_status)
        app.router.add_get(CONFIG_PATH, self._handle_config)
        app.router.add_get(COMMAND_PATH, self._handle_command)
        return app

    async def start(
        self,
        port: int = 8080,
        host: str = "0.0.0.0",
        udp_target: tuple[str, int] | None = None,
        heartbeat_interval: float = 10.0,
    ) -> None:
        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        await web.TCPSite(self._runner, host, port).start()
        logger.info(
            "Mock brick %d '%s' serving HTTP on port %d", self.brick_id, self.name, port
        )

        if udp_target is not None:
            self._heartbeat_task = asyncio.create_task(
                self._send_heartbeats(udp_target, heartbeat_interval)
            )

    async def stop(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            await asyncio.gather(self._heartbeat_task, return_exceptions=True)
            self._heartbeat_task = None
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Mock brick %d stopped", self.brick_id)

    async def _send_heartbeats(self, target: tuple[str, int], interval: float) -> None:
        loop = asyncio.get_running_loop()
        transport, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol, remote_addr=target, allow_broadcast=True
        )
        try:
            while True:
                transport.sendto(heartbeat_datagram(self.brick_id))
                for channel, value in enumerate(self.lights):
                    transport.sendto(
                        build_datagram("AO", self.brick_id, channel=channel, value=value)
                    )
                await asyncio.sleep(interval)
        finally:
            transport.close()


async def run_mock_brick(
    brick_id: int = 3,
    name: str = "MockBrick",
    port: int = 8080,
    udp_target: tuple[str, int] | None = None,
) -> None:
    brick = MockBrick(brick_id=brick_id, name=name)
    await brick.start(port=port, udp_target=udp_target)
    try:
        await asyncio.Event().wait()
    finally:
        await brick.stop()
