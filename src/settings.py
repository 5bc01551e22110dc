"""Configuration loading for irc-manager.

All user-editable settings (IRC connection, resource and transfer paths,
fetch timings, logging) live in a single JSON file. Loading fails fast: a
missing file or a missing required field stops the process before any
network activity.
"""

from __future__ import annotations

import json
import os
from typing import Optional, Union

from core.config import ConnectionConfig, FetchTiming, ManagerConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default location of the config file, relative to the working directory.
DEFAULT_CONFIG_PATH = os.path.join("resources", "config.json")

DEFAULT_IRC_PORT = 6667

_REQUIRED_IRC_FIELDS = ("nick", "login", "server", "channel")


def load_json_config(path: str) -> dict:
    """Load the raw JSON config."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        config = json.load(handle)
    if not isinstance(config, dict):
        raise RuntimeError(f"Config file must contain a JSON object: {path}")
    return config


def _split_server(server: str, port: Optional[int]) -> tuple[str, int]:
    """Accept either "host" plus an explicit port or "host:port"."""

    host, sep, raw_port = server.rpartition(":")
    if sep and raw_port.isdigit() and host:
        return host, int(raw_port)
    return server, int(port or DEFAULT_IRC_PORT)


def build_connection_config(raw_irc: dict) -> ConnectionConfig:
    missing = [name for name in _REQUIRED_IRC_FIELDS if not raw_irc.get(name)]
    if missing:
        raise RuntimeError(f"Missing irc config field(s): {', '.join(missing)}")

    host, port = _split_server(str(raw_irc["server"]), raw_irc.get("port"))
    return ConnectionConfig(
        nick=str(raw_irc["nick"]),
        login=str(raw_irc["login"]),
        server=host,
        channel=str(raw_irc["channel"]),
        port=port,
    )


def _seconds(value) -> Union[int, float]:
    """Keep whole numbers as ints so reported elapsed times stay whole."""

    if isinstance(value, bool):
        raise RuntimeError(f"Invalid duration in fetch config: {value!r}")
    if isinstance(value, (int, float)):
        return value
    number = float(value)
    return int(number) if number.is_integer() else number


def build_fetch_timing(raw_fetch: dict) -> FetchTiming:
    defaults = FetchTiming()
    return FetchTiming(
        connect_timeout=_seconds(raw_fetch.get("connect_timeout", defaults.connect_timeout)),
        grace_period=_seconds(raw_fetch.get("grace_period", defaults.grace_period)),
        poll_interval=_seconds(raw_fetch.get("poll_interval", defaults.poll_interval)),
        max_polls=int(raw_fetch.get("max_polls", defaults.max_polls)),
        transfer_timeout=_seconds(raw_fetch.get("transfer_timeout", defaults.transfer_timeout)),
    )


def build_manager_config(config: dict) -> ManagerConfig:
    """Validate the raw config and build the core ManagerConfig."""

    raw_irc = config.get("irc")
    if not isinstance(raw_irc, dict):
        raise RuntimeError("Config is missing the 'irc' section")

    for key in ("resource-file-path", "transfer-file-path"):
        if not config.get(key):
            raise RuntimeError(f"Config is missing '{key}'")

    return ManagerConfig(
        connection=build_connection_config(raw_irc),
        resource_file_path=str(config["resource-file-path"]),
        transfer_file_path=str(config["transfer-file-path"]),
        timing=build_fetch_timing(config.get("fetch", {})),
    )


def load_settings(path: str = DEFAULT_CONFIG_PATH) -> tuple[ManagerConfig, dict]:
    """Return the validated config and the logging section of the raw file."""

    raw = load_json_config(path)
    return build_manager_config(raw), raw.get("logging", {})
