from __future__ import annotations

import asyncio
import logging

import aiohttp
from yarl import URL

from webbrick.errors import NetworkError

logger = logging.getLogger(__name__)


async def fetch(session: aiohttp.ClientSession, url: str | URL) -> bytes:
    """GET ``url`` and return the raw body, mapping failures to NetworkError."""
    logger.debug("HTTP GET %s", url)
    try:
        async with session.get(url) as response:
            response.raise_for_status()
            return await response.read()
    except aiohttp.ClientResponseError as exc:
        raise NetworkError(f"HTTP {exc.status} from {url}") from exc
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        raise NetworkError(f"Request to {url} failed: {exc!r}") from exc
