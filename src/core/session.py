"""Per-run session state.

One SessionState is built for each run and passed to every component that
needs it. The accepted transfer is written from the protocol client's thread
while the orchestrator polls it, so both mutable fields are lock-guarded.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from core.config import ManagerConfig
from core.events import EventBus
from core.models import Event, FetchStatus

LOGGER = logging.getLogger(__name__)


class SessionState:
    """Connection parameters, fetch progress, and the accepted transfer."""

    def __init__(self, config: ManagerConfig, events: EventBus) -> None:
        self.config = config
        self.events = events
        self._lock = threading.Lock()
        self._fetch_status = FetchStatus.INITIALISING
        self._accepted_file: Optional[str] = None

    @property
    def fetch_status(self) -> FetchStatus:
        with self._lock:
            return self._fetch_status

    def set_fetch_status(self, status: FetchStatus) -> None:
        """Advance the fetch status. Moving backwards raises ValueError."""

        with self._lock:
            if status.rank < self._fetch_status.rank:
                raise ValueError(f"Cannot move fetch status from {self._fetch_status.value} to {status.value}")
            if self._fetch_status.rank == 2 and status != self._fetch_status:
                raise ValueError(f"Fetch status already final: {self._fetch_status.value}")
            self._fetch_status = status

    @property
    def accepted_file(self) -> Optional[str]:
        with self._lock:
            return self._accepted_file

    def record_accepted_file(self, path: str) -> bool:
        """Set the accepted transfer once. Returns False if one is already set."""

        with self._lock:
            if self._accepted_file is not None:
                return False
            self._accepted_file = path
        LOGGER.info("Accepted transfer recorded at %s", path)
        return True

    def push(self, event_type: str, data: Any = None) -> Event:
        return self.events.push(event_type, data)

    def push_status(self) -> Event:
        return self.push("fetch-status", self.fetch_status.value)
