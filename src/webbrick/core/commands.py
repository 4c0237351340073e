"""Outbound commands: desired device state to the brick's ``hid.spi`` query.

The registry is updated before the brick answers, so a failed request leaves
the cache holding the requested (not confirmed) state. Callers see the
failure as a NetworkError.
"""

from __future__ import annotations

import logging

import aiohttp
from yarl import URL

from webbrick.errors import DeviceNotFoundError, UnsupportedOperationError
from webbrick.models import Device, DeviceCategory

from .events import EventQueue
from .registry import DeviceRegistry
from .webclient import fetch

logger = logging.getLogger(__name__)

COMMAND_PATH = "/hid.spi"
# Soft start: lights switched on without a previous level come up at 95%.
DEFAULT_ON_LEVEL = 0.95
DEFAULT_TIMEOUT = 10.0


def _command_url(ip: str, command: str) -> URL:
    # Pre-encoded: bricks expect the ':' and ';' escapes exactly as written.
    return URL(f"http://{ip}{COMMAND_PATH}?com=%3A&com={command}&com=%3A", encoded=True)


def light_level_url(ip: str, channel: int, percent: int) -> URL:
    return _command_url(ip, f"AA{channel}%3B{percent}")


def output_state_url(ip: str, channel: int, on: bool) -> URL:
    return _command_url(ip, f"DO{channel}%3B{'N' if on else 'F'}")


def pulse_url(ip: str, channel: int) -> URL:
    return _command_url(ip, f"DI{channel}")


def to_percent(level: float) -> int:
    if not 0.0 <= level <= 1.0:
        raise ValueError(f"Level must be between 0 and 1, got {level}")
    return round(level * 100)


class CommandEncoder:
    def __init__(
        self,
        registry: DeviceRegistry,
        events: EventQueue | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._events = events
        self._timeout = timeout

    def _device(self, uid: str) -> Device:
        device = self._registry.get(uid)
        if device is None:
            raise DeviceNotFoundError(uid)
        return device

    async def set_state(self, uid: str, on: bool) -> None:
        device = self._device(uid)

        if device.category is DeviceCategory.LIGHT:
            if not on:
                level = 0.0
            elif device.level > 0:
                level = min(device.level / 100, 1.0)
            else:
                level = DEFAULT_ON_LEVEL
            await self._set_light(device, to_percent(level))
        elif device.category is DeviceCategory.STATE:
            label = device.name or uid
            self._registry.update(
                uid, state=on, message=f"{label} set {'on' if on else 'off'}"
            )
            self._emit(f"stateset:{int(on)}", uid)
            await self._send(output_state_url(device.ip, device.channel, on))
        elif device.category is DeviceCategory.BUTTON:
            await self._pulse(device)
        else:
            raise UnsupportedOperationError(
                f"Cannot set state on {device.category.name} device {uid}"
            )

    async def set_level(self, uid: str, level: float) -> None:
        device = self._device(uid)
        if device.category is not DeviceCategory.LIGHT:
            raise UnsupportedOperationError(
                f"Cannot set level on {device.category.name} device {uid}"
            )
        await self._set_light(device, to_percent(level))

    async def pulse(self, uid: str) -> None:
        device = self._device(uid)
        if device.category is not DeviceCategory.BUTTON:
            raise UnsupportedOperationError(
                f"Cannot pulse {device.category.name} device {uid}"
            )
        await self._pulse(device)

    async def toggle(self, uid: str) -> None:
        device = self._device(uid)
        await self.set_state(uid, not device.state)

    async def _set_light(self, device: Device, percent: int) -> None:
        self._registry.update(
            device.uid,
            state=percent > 0,
            level=float(percent),
            message=f"Light set to level {percent}",
        )
        self._emit(f"lightset:{percent}", device.uid)
        await self._send(light_level_url(device.ip, device.channel, percent))

    async def _pulse(self, device: Device) -> None:
        self._registry.update(
            device.uid, state=True, message=f"Pulse on {device.channel}"
        )
        self._emit("button", device.uid)
        await self._send(pulse_url(device.ip, device.channel))

    def _emit(self, name: str, uid: str) -> None:
        if self._events is None:
            return
        device = self._registry.get(uid)
        if device is not None:
            self._events.emit(name, device)

    async def _send(self, url: URL) -> None:
        logger.info("Sending command %s", url)
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            await fetch(session, url)
