"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection settings for the chat network."""

    nick: str
    login: str
    server: str
    channel: str
    port: int = 6667
    password: Optional[str] = None


@dataclass(frozen=True)
class FetchTiming:
    """Time budgets (seconds) used by the fetch orchestrator."""

    connect_timeout: float = 5
    grace_period: float = 30
    poll_interval: float = 2
    max_polls: int = 30
    transfer_timeout: float = 600


@dataclass(frozen=True)
class ManagerConfig:
    """Everything a search or fetch run needs, loaded once at startup."""

    connection: ConnectionConfig
    resource_file_path: str
    transfer_file_path: str
    timing: FetchTiming = field(default_factory=FetchTiming)
