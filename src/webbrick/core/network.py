from __future__ import annotations

import logging
import socket

from webbrick.errors import StartupError

logger = logging.getLogger(__name__)

PROBE_ADDRESS = ("8.8.8.8", 80)


def detect_local_ip() -> str:
    """IPv4 address of the interface that routes to the outside world.

    No packet is sent; connecting a UDP socket only selects a route.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(PROBE_ADDRESS)
            local_ip = sock.getsockname()[0]
    except OSError as exc:
        raise StartupError(
            "Unable to find local IP address. Ensure you're connected to a network"
        ) from exc
    logger.debug("Detected local IP: %s", local_ip)
    return local_ip
