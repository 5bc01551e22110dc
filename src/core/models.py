"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any protocol-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from core.ports import IncomingOffer


@dataclass(frozen=True)
class Event:
    """A typed record describing one observable occurrence."""

    type: str
    data: Any = None


class FetchStatus(str, Enum):
    """Progress of a fetch run. Values only ever move forward."""

    INITIALISING = "initialising"
    FETCHING = "fetching"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        # completed and failed are both terminal
        return {"initialising": 0, "fetching": 1, "completed": 2, "failed": 2}[self.value]


@dataclass(frozen=True)
class GenericMessage:
    """A private message or notice, optionally with a sender."""

    message: str
    user: Optional[str] = None


@dataclass(frozen=True)
class ChannelMessage:
    """A message spoken in a channel."""

    message: str
    channel: Optional[str] = None


@dataclass(frozen=True)
class Join:
    """A user joined a channel."""

    channel: str
    user: str


@dataclass(frozen=True)
class FileOffer:
    """An unsolicited incoming file transfer."""

    offer: IncomingOffer


Notification = Union[GenericMessage, ChannelMessage, Join, FileOffer]
