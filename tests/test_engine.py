from __future__ import annotations

import asyncio
import socket

import pytest

from webbrick.config import ListenerConfig, PollingConfig, Settings
from webbrick.core import Engine
from webbrick.core.mock_brick import build_datagram, heartbeat_datagram
from webbrick.errors import StartupError
from webbrick.models import Event


def _settings(**polling: object) -> Settings:
    return Settings(
        listener=ListenerConfig(port=0, local_ip="10.0.0.2"),
        polling=PollingConfig(interval=0.05, timeout=2.0, **polling),
    )


def test_heartbeat_starts_polling(brick, serve):
    async def body(address: str) -> tuple[int, bool]:
        async with Engine(_settings()) as engine:
            assert engine.listener is not None
            engine.listener.handle(heartbeat_datagram(3), address)

            for _ in range(200):
                if "3::AO::0" in engine.registry:
                    break
                await asyncio.sleep(0.01)

            again = engine.watch_brick(3)
            return len(engine.registry), again

    count, again = asyncio.run(serve(brick.create_app(), body))

    # heartbeat plus eleven polled channels
    assert count == 12
    assert again is False


def test_polling_disabled(brick, serve):
    async def body(address: str) -> int:
        async with Engine(_settings(enabled=False)) as engine:
            assert engine.listener is not None
            engine.listener.handle(heartbeat_datagram(3), address)
            await asyncio.sleep(0.1)
            return len(engine.registry)

    assert asyncio.run(serve(brick.create_app(), body)) == 1


def test_stream_yields_events():
    async def run() -> Event:
        async with Engine(_settings(enabled=False)) as engine:
            assert engine.listener is not None
            datagram = build_datagram("AO", 3, channel=2, value=50)
            engine.listener.handle(datagram, "10.0.0.3")
            async for event in engine.stream(poll_interval=0.05):
                return event
        raise AssertionError("no event")

    event = asyncio.run(run())

    assert event.name == "newlightchannelfound"
    assert event.device.uid == "3::AO::2"
    assert event.device.level == 50


def test_engine_needs_a_local_ip(monkeypatch):
    def _no_network(self, address):
        raise OSError("Network is unreachable")

    monkeypatch.setattr(socket.socket, "connect", _no_network)
    settings = Settings(listener=ListenerConfig(port=0))

    async def run() -> None:
        await Engine(settings).start()

    with pytest.raises(StartupError, match="local IP"):
        asyncio.run(run())


def test_engine_can_restart():
    async def run() -> Event:
        engine = Engine(_settings(enabled=False))
        await engine.start()
        await engine.stop()

        await engine.start()
        try:
            assert engine.listener is not None
            datagram = build_datagram("AO", 3, channel=1, value=20)
            engine.listener.handle(datagram, "10.0.0.3")
            async for event in engine.stream(poll_interval=0.05):
                return event
        finally:
            await engine.stop()
        raise AssertionError("no event")

    event = asyncio.run(run())

    assert event.device.uid == "3::AO::1"


def test_cancelled_consumer_loses_no_events():
    async def run() -> Event | None:
        async with Engine(_settings(enabled=False)) as engine:
            assert engine.listener is not None

            async def consume() -> Event:
                async for event in engine.stream(poll_interval=0.05):
                    return event
                raise AssertionError("no event")

            consumer = asyncio.create_task(consume())
            await asyncio.sleep(0.1)
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)

            datagram = build_datagram("AO", 3, channel=0, value=10)
            engine.listener.handle(datagram, "10.0.0.3")
            await asyncio.sleep(0.1)
            return engine.events.get_nowait()

    event = asyncio.run(run())

    assert event is not None
    assert event.name == "newlightchannelfound"
