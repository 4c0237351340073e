from __future__ import annotations

import logging
import threading

from webbrick.errors import DeviceNotFoundError
from webbrick.models import Device, DeviceCategory

from .events import EventQueue

logger = logging.getLogger(__name__)

NEW_EVENTS: dict[DeviceCategory, str] = {
    DeviceCategory.LIGHT: "newlightchannelfound",
    DeviceCategory.BUTTON: "newbuttonfound",
    DeviceCategory.PIR: "newpirfound",
    DeviceCategory.STATE: "newoutputfound",
    DeviceCategory.TEMP: "newtempfound",
    DeviceCategory.HEARTBEAT: "newwebbrickfound",
    DeviceCategory.UNKNOWN: "newunknownfound",
}

UPDATE_EVENTS: dict[DeviceCategory, str] = {
    DeviceCategory.LIGHT: "existinglightchannelupdated",
    DeviceCategory.BUTTON: "existingbuttonupdated",
    DeviceCategory.PIR: "existingpirtriggered",
    DeviceCategory.STATE: "existingoutputupdated",
    DeviceCategory.TEMP: "existingtempupdated",
    DeviceCategory.HEARTBEAT: "existingwebbrickupdated",
    DeviceCategory.UNKNOWN: "existingunknownupdated",
}


class DeviceRegistry:
    """Last-known state of every channel seen, keyed by UID.

    All access goes through one lock: the UDP path and the poll tasks write
    concurrently, and commands may arrive from other threads. Callers only
    ever get copies. Exclusion policy is applied by the callers, not here.
    """

    def __init__(self, events: EventQueue | None = None) -> None:
        self._events = events
        self._lock = threading.Lock()
        self._devices: dict[str, Device] = {}
        self._count = 0

    def upsert(
        self,
        uid: str,
        category: DeviceCategory,
        channel: int,
        ip: str,
        brick_id: int,
        state: bool | None = False,
        level: float | None = 0.0,
        name: str | None = None,
        message: str = "",
        queried: bool = False,
    ) -> tuple[Device, bool]:
        """Create the device on first sighting, otherwise update it in place.

        ``name`` is only applied when given, so UDP sightings (which carry no
        name) keep whatever the last poll reported. Likewise a ``state`` or
        ``level`` of None keeps the cached value (False and 0 on creation).

        Returns a copy of the device and whether it was created.
        """
        with self._lock:
            device = self._devices.get(uid)
            if device is None:
                self._count += 1
                device = Device(
                    id=self._count,
                    uid=uid,
                    name=name or "",
                    brick_id=brick_id,
                    category=category,
                    channel=channel,
                    ip=ip,
                    subscribed=True,
                    queried=queried,
                    state=bool(state),
                    level=level or 0.0,
                    last_message=message,
                )
                self._devices[uid] = device
                created = True
                event_name = NEW_EVENTS[device.category]
                logger.debug("Created %s device %s", device.category.name, uid)
            else:
                if state is not None:
                    device.state = state
                if level is not None:
                    device.level = level
                device.last_message = message
                if name is not None:
                    device.name = name
                if queried:
                    device.queried = True
                created = False
                event_name = UPDATE_EVENTS[device.category]

            if self._events is not None:
                self._events.emit(event_name, device)
            return device.model_copy(deep=True), created

    def update(
        self,
        uid: str,
        *,
        state: bool | None = None,
        level: float | None = None,
        message: str | None = None,
    ) -> Device:
        """Change cached fields of a known device without raising an event."""
        with self._lock:
            device = self._devices.get(uid)
            if device is None:
                raise DeviceNotFoundError(uid)
            if state is not None:
                device.state = state
            if level is not None:
                device.level = level
            if message is not None:
                device.last_message = message
            return device.model_copy(deep=True)

    def get(self, uid: str) -> Device | None:
        with self._lock:
            device = self._devices.get(uid)
            return None if device is None else device.model_copy(deep=True)

    def devices(self) -> list[Device]:
        with self._lock:
            devices = [device.model_copy(deep=True) for device in self._devices.values()]
        devices.sort(key=lambda device: device.id)
        return devices

    def brick_address(self, brick_id: int) -> str | None:
        """IP of a brick, preferring the address its heartbeat came from."""
        with self._lock:
            fallback = None
            for device in self._devices.values():
                if device.brick_id != brick_id or not device.ip:
                    continue
                if device.category is DeviceCategory.HEARTBEAT:
                    return device.ip
                fallback = fallback or device.ip
            return fallback

    def __contains__(self, uid: object) -> bool:
        with self._lock:
            return uid in self._devices

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)
