from __future__ import annotations

import json

import pytest

import settings
from core.config import FetchTiming


def _write_config(tmp_path, **overrides) -> str:
    config = {
        "irc": {"nick": "reader", "login": "reader", "server": "irc.example.net", "channel": "#books"},
        "resource-file-path": str(tmp_path / "lists"),
        "transfer-file-path": str(tmp_path / "downloads"),
    }
    config.update(overrides)
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return str(path)


def test_load_settings_builds_manager_config(tmp_path) -> None:
    path = _write_config(tmp_path, logging={"enabled": False})

    manager_config, logging_config = settings.load_settings(path)

    assert manager_config.connection.nick == "reader"
    assert manager_config.connection.server == "irc.example.net"
    assert manager_config.connection.port == 6667
    assert manager_config.connection.channel == "#books"
    assert manager_config.connection.password is None
    assert manager_config.resource_file_path == str(tmp_path / "lists")
    assert manager_config.timing == FetchTiming()
    assert logging_config == {"enabled": False}


def test_server_may_carry_port(tmp_path) -> None:
    path = _write_config(
        tmp_path,
        irc={"nick": "r", "login": "r", "server": "irc.example.net:6697", "channel": "#books"},
    )

    manager_config, _ = settings.load_settings(path)

    assert manager_config.connection.server == "irc.example.net"
    assert manager_config.connection.port == 6697


def test_fetch_timings_override_defaults(tmp_path) -> None:
    path = _write_config(tmp_path, fetch={"grace_period": 10, "max_polls": 5})

    timing = settings.load_settings(path)[0].timing

    assert timing.grace_period == 10
    assert type(timing.grace_period) is int
    assert timing.max_polls == 5
    assert timing.poll_interval == 2
    assert type(timing.poll_interval) is int
    assert timing.connect_timeout == 5


def test_missing_file_fails_fast(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        settings.load_settings(str(tmp_path / "missing.json"))


def test_missing_irc_field_fails_fast(tmp_path) -> None:
    path = _write_config(tmp_path, irc={"nick": "r", "server": "irc.example.net"})

    with pytest.raises(RuntimeError, match="login, channel"):
        settings.load_settings(path)


def test_missing_paths_fail_fast(tmp_path) -> None:
    path = _write_config(tmp_path, **{"transfer-file-path": ""})

    with pytest.raises(RuntimeError, match="transfer-file-path"):
        settings.load_settings(path)


def test_fractional_and_string_timings(tmp_path) -> None:
    path = _write_config(tmp_path, fetch={"poll_interval": 0.5, "grace_period": "4"})

    timing = settings.load_settings(path)[0].timing

    assert timing.poll_interval == 0.5
    assert timing.grace_period == 4
    assert type(timing.grace_period) is int
