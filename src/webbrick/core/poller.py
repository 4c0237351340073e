from __future__ import annotations

import asyncio
import logging

import aiohttp

from webbrick.config import DevicesConfig
from webbrick.errors import WebbrickError
from webbrick.models import DeviceCategory, PollSnapshot, make_uid

from .decoder import TEMPERATURE_SCALE
from .registry import DeviceRegistry
from .wbxml import DEFAULT_CHARSET, build_snapshot, parse_config, parse_status
from .webclient import fetch

logger = logging.getLogger(__name__)

STATUS_PATH = "/WbStatus.xml"
CONFIG_PATH = "/WbCfg.xml"
DEFAULT_TIMEOUT = 10.0


class StatusPoller:
    """Pulls full status and config from bricks and reconciles the registry."""

    def __init__(
        self,
        registry: DeviceRegistry,
        devices: DevicesConfig | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        charset: str = DEFAULT_CHARSET,
    ) -> None:
        self._registry = registry
        self._devices = devices or DevicesConfig()
        self._timeout = timeout
        self._charset = charset

    async def poll_once(self, brick_id: int) -> int:
        address = self._registry.brick_address(brick_id)
        if address is None:
            raise WebbrickError(f"No address known for brick {brick_id}")
        return await self.poll_address(address)

    async def poll_address(self, address: str) -> int:
        snapshot = await self.fetch_snapshot(address)
        return self.apply(snapshot)

    async def fetch_snapshot(self, address: str) -> PollSnapshot:
        """Fetch and parse both documents; nothing is applied on failure."""
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            status_body = await fetch(session, f"http://{address}{STATUS_PATH}")
            config_body = await fetch(session, f"http://{address}{CONFIG_PATH}")

        status = parse_status(status_body, self._charset)
        config = parse_config(config_body, self._charset)
        logger.debug(
            "Fetched status for brick %d (%s) at %s",
            status.brick_id,
            config.name,
            address,
        )
        return build_snapshot(status, config, address)

    def apply(self, snapshot: PollSnapshot) -> int:
        """Upsert every non-excluded channel of ``snapshot``; returns the count."""
        brick = snapshot.brick_id
        ip = snapshot.address
        count = 0

        for light in snapshot.lights:
            uid = make_uid(brick, "AO", light.index)
            if self._devices.is_excluded(uid):
                continue
            on = light.value != 0
            message = (
                f"{light.name} is on at {light.value}%" if on else f"{light.name} is off"
            )
            self._registry.upsert(
                uid,
                DeviceCategory.LIGHT,
                light.channel,
                ip,
                brick,
                state=on,
                level=float(light.value),
                name=light.name,
                message=message,
                queried=True,
            )
            count += 1

        for digital_in in snapshot.inputs:
            uid = make_uid(brick, "TD", digital_in.index)
            if self._devices.is_excluded(uid):
                continue
            category = DeviceCategory.BUTTON
            if self._devices.is_pir(uid):
                category = DeviceCategory.PIR
            self._registry.upsert(
                uid,
                category,
                digital_in.channel,
                ip,
                brick,
                state=bool(digital_in.value),
                name=digital_in.name,
                message=f"{digital_in.name} has been pressed",
                queried=True,
            )
            count += 1

        for digital_out in snapshot.outputs:
            uid = make_uid(brick, "DO", digital_out.index)
            if self._devices.is_excluded(uid):
                continue
            self._registry.upsert(
                uid,
                DeviceCategory.STATE,
                digital_out.channel,
                ip,
                brick,
                state=bool(digital_out.value),
                name=digital_out.name,
                message=f"{digital_out.name} state has changed",
                queried=True,
            )
            count += 1

        for temp in snapshot.temperatures:
            uid = make_uid(brick, "CT", temp.index)
            if self._devices.is_excluded(uid):
                continue
            level = temp.value / TEMPERATURE_SCALE
            self._registry.upsert(
                uid,
                DeviceCategory.TEMP,
                temp.channel,
                ip,
                brick,
                level=level,
                name=temp.name,
                message=f"{temp.name} temperature value has changed to {level:g}",
                queried=True,
            )
            count += 1

        logger.info(
            "Polled brick %d (%s): %d channel(s) updated", brick, snapshot.name, count
        )
        return count

    async def poll_loop(
        self,
        brick_id: int,
        interval: float,
        stop: asyncio.Event | None = None,
    ) -> None:
        """Poll now, then every ``interval`` seconds until ``stop`` is set.

        A failed cycle is logged and retried on the next tick.
        """
        stop = stop or asyncio.Event()
        while True:
            try:
                await self.poll_once(brick_id)
            except WebbrickError as exc:
                logger.warning("Poll of brick %d failed: %s", brick_id, exc)

            if stop.is_set():
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
            break
        logger.debug("Poll loop for brick %d stopped", brick_id)
