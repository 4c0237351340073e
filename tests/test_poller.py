from __future__ import annotations

import asyncio
import logging

import pytest
from aiohttp import web

from webbrick.config import DevicesConfig
from webbrick.core import BrickListener, DeviceRegistry, EventQueue, StatusPoller
from webbrick.core.mock_brick import build_datagram
from webbrick.core.poller import CONFIG_PATH, STATUS_PATH
from webbrick.errors import NetworkError, ParseError, WebbrickError
from webbrick.models import DeviceCategory


def _heartbeat(registry: DeviceRegistry, address: str, brick_id: int = 3) -> None:
    registry.upsert(f"{brick_id}::ST::0", DeviceCategory.HEARTBEAT, 0, address, brick_id)


def test_poll_populates_every_channel(brick, serve):
    brick.lights[1] = 60
    brick.inputs[2] = True
    brick.outputs[0] = True
    brick.temps[0] = 344
    registry = DeviceRegistry()
    poller = StatusPoller(registry)

    count = asyncio.run(serve(brick.create_app(), poller.poll_address))

    assert count == 11
    assert len(registry) == 11
    assert all(device.queried for device in registry.devices())

    hallway = registry.get("3::AO::0")
    assert hallway is not None
    assert hallway.name == "HallWay"
    assert hallway.category is DeviceCategory.LIGHT
    assert hallway.state is False
    assert hallway.last_message == "HallWay is off"

    external = registry.get("3::AO::1")
    assert external is not None
    assert external.state is True
    assert external.level == 60
    assert external.last_message == "External is on at 60%"

    lounge = registry.get("3::TD::2")
    assert lounge is not None
    assert lounge.category is DeviceCategory.BUTTON
    assert lounge.name == "Lounge"
    assert lounge.state is True
    assert lounge.last_message == "Lounge has been pressed"

    boiler = registry.get("3::DO::0")
    assert boiler is not None
    assert boiler.category is DeviceCategory.STATE
    assert boiler.state is True

    zone = registry.get("3::CT::0")
    assert zone is not None
    assert zone.category is DeviceCategory.TEMP
    assert zone.level == 21.5
    assert zone.last_message == "Zone 1 temperature value has changed to 21.5"

    external_temp = registry.get("3::CT::1")
    assert external_temp is not None
    assert external_temp.level == 20.0


def test_light_changes_between_polls(brick, serve):
    events = EventQueue()
    registry = DeviceRegistry(events)
    poller = StatusPoller(registry)

    async def body(address: str) -> None:
        _heartbeat(registry, address)
        brick.lights[0] = 85
        await poller.poll_once(3)
        brick.lights[0] = 0
        await poller.poll_once(3)

    asyncio.run(serve(brick.create_app(), body))

    hallway_events = [
        event for event in events.drain() if event.device.uid == "3::AO::0"
    ]
    assert [event.name for event in hallway_events] == [
        "newlightchannelfound",
        "existinglightchannelupdated",
    ]
    assert hallway_events[0].device.state is True
    assert hallway_events[0].device.level == 85
    assert hallway_events[1].device.state is False
    assert hallway_events[1].device.level == 0


def test_policy_applies_to_polled_channels(brick, serve):
    registry = DeviceRegistry()
    devices = DevicesConfig(
        excluded={"3::AO::3": True, "3::CT::1": True},
        pirs={"3::TD::0": True},
    )
    poller = StatusPoller(registry, devices)

    count = asyncio.run(serve(brick.create_app(), poller.poll_address))

    assert count == 9
    assert "3::AO::3" not in registry
    assert "3::CT::1" not in registry
    door = registry.get("3::TD::0")
    assert door is not None
    assert door.category is DeviceCategory.PIR


def test_udp_name_survives_after_poll(brick, serve):
    registry = DeviceRegistry()
    poller = StatusPoller(registry)
    asyncio.run(serve(brick.create_app(), poller.poll_address))

    device, _ = registry.upsert("3::AO::2", DeviceCategory.LIGHT, 2, "ip", 3, level=30.0)

    assert device.name == "Master Bed"
    assert device.queried is True


def test_failed_config_fetch_applies_nothing(brick, serve):
    async def config_error(request: web.Request) -> web.Response:
        raise web.HTTPInternalServerError()

    async def status(request: web.Request) -> web.Response:
        return web.Response(body=brick.status_xml(), content_type="text/xml")

    app = web.Application()
    app.router.add_get(STATUS_PATH, status)
    app.router.add_get(CONFIG_PATH, config_error)

    registry = DeviceRegistry()
    poller = StatusPoller(registry)

    with pytest.raises(NetworkError, match="HTTP 500"):
        asyncio.run(serve(app, poller.poll_address))
    assert len(registry) == 0


def test_malformed_status_applies_nothing(brick, serve):
    async def status(request: web.Request) -> web.Response:
        return web.Response(body=b"<WebbrickStatus><SN>", content_type="text/xml")

    async def config(request: web.Request) -> web.Response:
        return web.Response(body=brick.config_xml(), content_type="text/xml")

    app = web.Application()
    app.router.add_get(STATUS_PATH, status)
    app.router.add_get(CONFIG_PATH, config)

    registry = DeviceRegistry()
    poller = StatusPoller(registry)

    with pytest.raises(ParseError):
        asyncio.run(serve(app, poller.poll_address))
    assert len(registry) == 0


def test_unreachable_brick():
    poller = StatusPoller(DeviceRegistry(), timeout=2.0)
    with pytest.raises(NetworkError):
        asyncio.run(poller.poll_address("127.0.0.1:1"))


def test_poll_once_needs_a_known_address():
    poller = StatusPoller(DeviceRegistry())
    with pytest.raises(WebbrickError, match="brick 9"):
        asyncio.run(poller.poll_once(9))


def test_poll_loop_survives_failures(brick, serve, caplog):
    registry = DeviceRegistry()
    poller = StatusPoller(registry)

    async def body(address: str) -> None:
        stop = asyncio.Event()
        task = asyncio.create_task(poller.poll_loop(3, 0.01, stop))

        # no address yet, so the first cycles fail
        await asyncio.sleep(0.05)
        _heartbeat(registry, address)
        for _ in range(200):
            if "3::AO::0" in registry:
                break
            await asyncio.sleep(0.01)

        stop.set()
        await asyncio.wait_for(task, timeout=2.0)

    with caplog.at_level(logging.WARNING, logger="webbrick.core.poller"):
        asyncio.run(serve(brick.create_app(), body))

    assert "Poll of brick 3 failed" in caplog.text
    assert "3::AO::0" in registry


def test_output_announcement_keeps_polled_state(brick, serve):
    brick.outputs[1] = True
    events = EventQueue()
    registry = DeviceRegistry(events)
    poller = StatusPoller(registry)
    listener = BrickListener(registry, "10.0.0.2")

    asyncio.run(serve(brick.create_app(), poller.poll_address))
    events.drain()

    listener.handle(build_datagram("DO", 3, channel=0), "127.0.0.1")
    listener.handle(build_datagram("DO", 3, channel=1), "127.0.0.1")

    boiler = registry.get("3::DO::0")
    hot_water = registry.get("3::DO::1")
    assert boiler is not None
    assert hot_water is not None
    assert boiler.category is DeviceCategory.STATE
    assert boiler.state is False
    assert boiler.last_message == "Trigger on 0"
    assert hot_water.state is True
    assert [(event.name, event.device.state) for event in events.drain()] == [
        ("existingoutputupdated", False),
        ("existingoutputupdated", True),
    ]
