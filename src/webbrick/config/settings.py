from __future__ import annotations

import json
import os
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .paths import default_config_path, expand_path

CONFIG_ENV_VAR = "WEBBRICK_CONFIG"


class ListenerConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    # 0 lets the OS pick a free port
    port: int = Field(default=2552, ge=0, le=65535)
    read_size: int = Field(default=16, ge=1, le=1500)
    # empty means detect at startup
    local_ip: str = ""


class PollingConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = True
    interval: float = Field(default=30.0, gt=0)
    timeout: float = Field(default=10.0, gt=0)
    charset: str = "iso-8859-1"


class EventsConfig(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    queue_size: int = Field(default=64, ge=1)


class DevicesConfig(BaseModel):
    """Static per-UID policy the wire protocol cannot express."""

    model_config = {"frozen": True, "extra": "forbid"}

    excluded: dict[str, bool] = Field(default_factory=dict)
    pirs: dict[str, bool] = Field(default_factory=dict)

    def is_excluded(self, uid: str) -> bool:
        return self.excluded.get(uid, False)

    def is_pir(self, uid: str) -> bool:
        return self.pirs.get(uid, False)


class Settings(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    listener: ListenerConfig = Field(default_factory=ListenerConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    devices: DevicesConfig = Field(default_factory=DevicesConfig)


def resolve_config_path(allow_missing: bool = False) -> tuple[Path, bool]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = expand_path(env_path)
        if not allow_missing and not path.exists():
            raise FileNotFoundError(f"{CONFIG_ENV_VAR} points to missing file: {path}")
        return path, path.exists()

    path = default_config_path()
    return path, path.exists()


def load_settings(path: Path) -> Settings:
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in config file: {path}\n{exc}") from exc

    try:
        return Settings.model_validate(data or {})
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {path}\n{exc}") from exc


@lru_cache
def get_settings() -> Settings:
    path, exists = resolve_config_path(allow_missing=False)
    if exists:
        return load_settings(path)
    return Settings()


def _toml_string(value: str) -> str:
    return json.dumps(value)


def _toml_bool(value: bool) -> str:
    return "true" if value else "false"


def _render_policy(table: str, entries: dict[str, bool]) -> list[str]:
    lines = [f"[devices.{table}]"]
    for uid, flag in sorted(entries.items()):
        lines.append(f"{_toml_string(uid)} = {_toml_bool(flag)}")
    lines.append("")
    return lines


def render_settings_toml(settings: Settings) -> str:
    lines = [
        "# Webbrick engine configuration",
        "",
        "[listener]",
        f"port = {settings.listener.port}",
        f"read_size = {settings.listener.read_size}",
        f"local_ip = {_toml_string(settings.listener.local_ip)}",
        "",
        "[polling]",
        f"enabled = {_toml_bool(settings.polling.enabled)}",
        f"interval = {settings.polling.interval}",
        f"timeout = {settings.polling.timeout}",
        f"charset = {_toml_string(settings.polling.charset)}",
        "",
        "[events]",
        f"queue_size = {settings.events.queue_size}",
        "",
    ]
    lines.extend(_render_policy("excluded", settings.devices.excluded))
    lines.extend(_render_policy("pirs", settings.devices.pirs))
    return "\n".join(lines)


def write_settings(settings: Settings, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_settings_toml(settings))
