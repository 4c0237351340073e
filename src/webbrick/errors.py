"""Error taxonomy for the Webbrick protocol engine."""

from __future__ import annotations


class WebbrickError(Exception):
    """Base class for all engine errors."""


class NetworkError(WebbrickError):
    """Socket or HTTP failure talking to a brick."""


class ParseError(WebbrickError):
    """Malformed XML document or unusable UDP payload."""


class UnknownDeviceTypeError(WebbrickError):
    """A datagram carried a source-type code the decoder has no rule for."""

    def __init__(self, source_type: str) -> None:
        super().__init__(f"Unknown device type {source_type!r}")
        self.source_type = source_type


class UnsupportedOperationError(WebbrickError):
    """The device category cannot accept the requested command."""


class DeviceNotFoundError(WebbrickError, KeyError):
    """No device with the given UID has been seen yet."""

    def __init__(self, uid: str) -> None:
        super().__init__(f"No device with UID {uid!r}")
        self.uid = uid

    def __str__(self) -> str:
        return str(self.args[0])


class StartupError(WebbrickError, RuntimeError):
    """The engine cannot start (e.g. the local IP cannot be resolved)."""
