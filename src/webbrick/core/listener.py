from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from webbrick.config import DevicesConfig
from webbrick.errors import UnknownDeviceTypeError
from webbrick.models import Device

from .decoder import decode, normalize
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 2552
DEFAULT_READ_SIZE = 16

SightingCallback = Callable[[Device, bool], None]


class BrickListener(asyncio.DatagramProtocol):
    """Receives brick announcements and feeds them into the registry."""

    def __init__(
        self,
        registry: DeviceRegistry,
        local_ip: str,
        devices: DevicesConfig | None = None,
        read_size: int = DEFAULT_READ_SIZE,
        on_sighting: SightingCallback | None = None,
    ) -> None:
        self._registry = registry
        self._local_ip = local_ip
        self._devices = devices or DevicesConfig()
        self._read_size = read_size
        self._on_sighting = on_sighting
        self._transport: asyncio.DatagramTransport | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = transport  # type: ignore[assignment]
        logger.info(
            "Listening for brick announcements on %s",
            transport.get_extra_info("sockname"),
        )

    def connection_lost(self, exc: Exception | None) -> None:
        self._transport = None
        if exc is not None:
            logger.warning("UDP listener closed: %s", exc)
        else:
            logger.debug("UDP listener closed")

    def error_received(self, exc: Exception) -> None:
        logger.warning("UDP receive error: %s", exc)

    def datagram_received(self, data: bytes, addr: tuple[str | int, ...]) -> None:
        ip = str(addr[0])
        if not data or ip == self._local_ip:
            return
        self.handle(data[: self._read_size], ip)

    def handle(self, data: bytes, ip: str) -> Device | None:
        """Decode one datagram and upsert it unless the UID is excluded."""
        packet = decode(data, ip)
        try:
            sighting = normalize(packet, self._devices.pirs)
        except UnknownDeviceTypeError as exc:
            logger.warning("Ignoring datagram from %s: %s", ip, exc)
            return None

        if self._devices.is_excluded(sighting.uid):
            logger.debug("Skipping excluded device %s", sighting.uid)
            return None

        device, created = self._registry.upsert(
            sighting.uid,
            sighting.category,
            sighting.channel,
            sighting.ip,
            sighting.brick_id,
            state=sighting.state,
            level=sighting.level,
            message=sighting.message,
            queried=False,
        )
        if self._on_sighting is not None:
            self._on_sighting(device, created)
        return device

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()


async def listen(
    protocol: BrickListener, port: int = DEFAULT_PORT, host: str = "0.0.0.0"
) -> asyncio.DatagramTransport:
    loop = asyncio.get_running_loop()
    transport, _ = await loop.create_datagram_endpoint(
        lambda: protocol, local_addr=(host, port)
    )
    return transport
