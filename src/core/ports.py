"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the chat protocol adapter so that the
core can be reused with a different network client.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol


class IncomingOffer(Protocol):
    """A file offer delivered by the protocol client."""

    @property
    def safe_filename(self) -> str:
        ...

    @property
    def raw_filename(self) -> str:
        ...

    @property
    def size(self) -> Optional[int]:
        ...

    def accept(self, destination: str) -> None:
        """Receive the offered file into ``destination``, blocking until done."""
        ...


class ChatClientPort(Protocol):
    """Chat network operations required by the fetch orchestrator."""

    def set_listener(self, listener: Callable) -> None:
        ...

    def connect(self) -> None:
        ...

    def is_connected(self) -> bool:
        ...

    def message(self, channel: str, text: str) -> None:
        ...

    def quit(self) -> None:
        ...
