from __future__ import annotations

import pytest

from webbrick.config import (
    DevicesConfig,
    ListenerConfig,
    PollingConfig,
    Settings,
    get_settings,
    load_settings,
    resolve_config_path,
    write_settings,
)


def test_config_roundtrip(tmp_path):
    path = tmp_path / "config.toml"
    settings = Settings(
        listener=ListenerConfig(port=2600, local_ip="10.0.0.2"),
        polling=PollingConfig(enabled=False, interval=5.0),
        devices=DevicesConfig(
            excluded={"3::TD::7": True},
            pirs={"3::TD::0": True, "3::TD::1": False},
        ),
    )

    write_settings(settings, path)

    assert load_settings(path) == settings


def test_defaults():
    settings = Settings()
    assert settings.listener.port == 2552
    assert settings.listener.read_size == 16
    assert settings.polling.charset == "iso-8859-1"
    assert settings.events.queue_size == 64
    assert settings.devices.is_excluded("3::AO::0") is False
    assert settings.devices.is_pir("3::TD::0") is False


def test_missing_default_file_gives_defaults():
    assert get_settings() == Settings()


def test_env_var_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.toml"
    path.write_text("[listener]\nport = 3000\n\n[devices.pirs]\n\"3::TD::0\" = true\n")
    monkeypatch.setenv("WEBBRICK_CONFIG", str(path))

    settings = get_settings()

    assert settings.listener.port == 3000
    assert settings.devices.is_pir("3::TD::0") is True
    assert resolve_config_path() == (path, True)


def test_env_var_pointing_nowhere(tmp_path, monkeypatch):
    monkeypatch.setenv("WEBBRICK_CONFIG", str(tmp_path / "missing.toml"))

    with pytest.raises(FileNotFoundError):
        get_settings()
    assert resolve_config_path(allow_missing=True) == (tmp_path / "missing.toml", False)


def test_invalid_toml(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[listener\nport = ")

    with pytest.raises(ValueError, match="Invalid TOML"):
        load_settings(path)


def test_unknown_keys_are_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("[listener]\nprot = 2552\n")

    with pytest.raises(ValueError, match="Invalid config file"):
        load_settings(path)


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(ValueError):
        settings.listener.port = 1  # type: ignore[misc]
