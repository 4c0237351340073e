from __future__ import annotations

import logging
import queue
import threading

from webbrick.models import Device, Event

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 64


class EventQueue:
    """Bounded, non-blocking fan-out of registry changes.

    Producers never wait: when the queue is full the new event is dropped and
    counted in ``dropped``.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        # queue.Queue treats sizes below 1 as unbounded
        if maxsize < 1:
            raise ValueError(f"Event queue size must be at least 1, got {maxsize}")
        self._queue: queue.Queue[Event] = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._dropped = 0

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    def emit(self, name: str, device: Device) -> bool:
        event = Event(name=name, device=device.model_copy(deep=True))
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            with self._lock:
                self._dropped += 1
                dropped = self._dropped
            logger.debug(
                "Event queue full, dropped %s for %s (%d dropped so far)",
                name,
                device.uid,
                dropped,
            )
            return False
        return True

    def get(self, timeout: float | None = None) -> Event | None:
        """Wait up to ``timeout`` seconds for the next event."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> Event | None:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> list[Event]:
        events: list[Event] = []
        while (event := self.get_nowait()) is not None:
            events.append(event)
        return events

    def __len__(self) -> int:
        return self._queue.qsize()
