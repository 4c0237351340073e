from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from webbrick.config import get_settings
from webbrick.core import MockBrick

T = TypeVar("T")


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.delenv("WEBBRICK_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def brick() -> MockBrick:
    return MockBrick(brick_id=3, name="Documen")


@pytest.fixture
def serve():
    """Run ``body(address)`` while ``app`` is served on a local port."""

    async def _serve(app: web.Application, body: Callable[[str], Awaitable[T]]) -> T:
        async with TestServer(app) as server:
            return await body(f"{server.host}:{server.port}")

    return _serve
