from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from webbrick.config import Settings
from webbrick.models import Device, DeviceCategory, Event

from .commands import CommandEncoder
from .events import EventQueue
from .listener import BrickListener, listen
from .network import detect_local_ip
from .poller import StatusPoller
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)


class Engine:
    """Wires the listener, registry, event queue, poller and command encoder.

    A poll loop is started for each brick the first time its heartbeat is
    seen.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.events = EventQueue(self.settings.events.queue_size)
        self.registry = DeviceRegistry(self.events)
        self.poller = StatusPoller(
            self.registry,
            self.settings.devices,
            timeout=self.settings.polling.timeout,
            charset=self.settings.polling.charset,
        )
        self.commands = CommandEncoder(
            self.registry, self.events, timeout=self.settings.polling.timeout
        )
        self.listener: BrickListener | None = None
        self._transport: asyncio.DatagramTransport | None = None
        self._poll_tasks: dict[int, asyncio.Task[None]] = {}
        self._stop = asyncio.Event()

    async def start(self) -> None:
        self._stop.clear()
        local_ip = self.settings.listener.local_ip or detect_local_ip()
        self.listener = BrickListener(
            self.registry,
            local_ip,
            devices=self.settings.devices,
            read_size=self.settings.listener.read_size,
            on_sighting=self._on_sighting,
        )
        self._transport = await listen(self.listener, self.settings.listener.port)
        logger.info(
            "Engine started (local IP %s, UDP port %d)",
            local_ip,
            self.settings.listener.port,
        )

    async def stop(self) -> None:
        self._stop.set()
        if self._transport is not None:
            self._transport.close()
            self._transport = None
        tasks = list(self._poll_tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_tasks.clear()
        if self.events.dropped:
            logger.info("%d event(s) were dropped on a full queue", self.events.dropped)

    async def __aenter__(self) -> Engine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def watch_brick(self, brick_id: int) -> bool:
        """Start the periodic poll for ``brick_id`` unless one is running."""
        task = self._poll_tasks.get(brick_id)
        if task is not None and not task.done():
            return False
        logger.info("Starting status poll for brick %d", brick_id)
        self._poll_tasks[brick_id] = asyncio.create_task(
            self.poller.poll_loop(brick_id, self.settings.polling.interval, self._stop),
            name=f"poll-brick-{brick_id}",
        )
        return True

    def _on_sighting(self, device: Device, created: bool) -> None:
        if (
            created
            and device.category is DeviceCategory.HEARTBEAT
            and self.settings.polling.enabled
        ):
            self.watch_brick(device.brick_id)

    async def stream(self, poll_interval: float = 0.5) -> AsyncIterator[Event]:
        """Yield events until the engine is stopped.

        The queue is only read from the event loop, so cancelling the consumer
        never leaves an event taken but undelivered.
        """
        while not self._stop.is_set():
            event = self.events.get_nowait()
            if event is None:
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=poll_interval)
                except asyncio.TimeoutError:
                    pass
                continue
            yield event
