"""Fetch orchestration (core domain).

A fetch run is a linear sequence of steps:
1) Report the initial fetch status
2) Register listeners and connect, bounded by the connect timeout
3) Report whether the client is connected
4) Wait out the grace period so the channel join can settle
5) Announce the request in the channel
6) Poll for an accepted transfer until it arrives or the polls run out
7) Quit the server

No exception escapes run(): every failure is reported as an event and the
run carries on as far as it still makes sense. Waits use a cancel event
instead of sleeps, so cancel() ends a run at its next wait.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from core.config import FetchTiming
from core.models import FetchStatus
from core.notifications import NotificationDispatcher
from core.ports import ChatClientPort
from core.session import SessionState
from core.transfer import FileTransferHandler

LOGGER = logging.getLogger(__name__)

UNRESOLVED = "unresolved"


def _describe_error(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class FetchOrchestrator:
    """Drives one fetch request against a chat client."""

    def __init__(
        self,
        session: SessionState,
        client: ChatClientPort,
        timing: Optional[FetchTiming] = None,
        temp_dir: Optional[str] = None,
    ) -> None:
        self._session = session
        self._client = client
        self._timing = timing or session.config.timing
        self._temp_dir = temp_dir
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop the run at its next wait; Quit still runs."""

        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(self, request: str) -> FetchStatus:
        """Run the fetch and return the final fetch status."""

        session = self._session
        session.push_status()

        handler = FileTransferHandler(session, request, self._temp_dir)
        self._client.set_listener(NotificationDispatcher(session, handler))

        connected = self._connect()
        session.push("bot status", connected)

        if not connected:
            LOGGER.warning("Not connected, skipping fetch request %r", request)
        elif self._wait(self._timing.grace_period):
            LOGGER.info("Fetch cancelled during grace period")
        elif self._request(request):
            self._poll()

        self._finish()
        self._quit()
        session.events.flush()
        return session.fetch_status

    def _connect(self) -> bool:
        """Connect with a hard timeout and report the outcome."""

        session = self._session
        outcome: dict = {}
        done = threading.Event()

        def _attempt() -> None:
            try:
                self._client.connect()
            except Exception as exc:
                outcome["error"] = exc
            finally:
                done.set()

        # Daemon thread so a hung connect attempt never blocks process exit.
        threading.Thread(target=_attempt, name="connect", daemon=True).start()
        if not done.wait(self._timing.connect_timeout):
            LOGGER.warning("Connection not established after %ss", self._timing.connect_timeout)
            session.push("connection status", UNRESOLVED)
        elif "error" in outcome:
            LOGGER.error("Connection failed: %s", outcome["error"])
            session.push("connection error", _describe_error(outcome["error"]))
            return False
        else:
            session.push("connection status", "connected")

        try:
            return bool(self._client.is_connected())
        except Exception as exc:
            LOGGER.exception("Connection state unavailable")
            session.push("connection error", _describe_error(exc))
            return False

    def _wait(self, seconds: float) -> bool:
        """Wait up to ``seconds``. Returns True if the run was cancelled."""

        return self._cancelled.wait(seconds)

    def _request(self, request: str) -> bool:
        session = self._session
        channel = session.config.connection.channel
        try:
            self._client.message(channel, request)
        except Exception as exc:
            LOGGER.exception("Sending fetch request failed")
            session.push("message error", _describe_error(exc))
            return False
        session.push("message out", {"message": request, "channel": channel})
        session.set_fetch_status(FetchStatus.FETCHING)
        session.push_status()
        return True

    def _poll(self) -> int:
        """Poll for an accepted transfer. Returns the number of completed ticks."""

        session = self._session
        interval = self._timing.poll_interval
        # Report whole-second intervals as ints: elapsed 0, 2, 4, ...
        step = int(interval) if float(interval).is_integer() else interval
        n = 0
        while True:
            accepted = session.accepted_file
            if accepted is not None or n == self._timing.max_polls:
                break
            session.push("poll", {"elapsed": n * step, "status": accepted})
            if self._wait(interval):
                LOGGER.info("Fetch cancelled while polling")
                break
            n += 1
        return n

    def _finish(self) -> None:
        session = self._session
        if session.accepted_file is not None:
            session.set_fetch_status(FetchStatus.COMPLETED)
        else:
            session.set_fetch_status(FetchStatus.FAILED)
        session.push_status()

    def _quit(self) -> None:
        try:
            self._client.quit()
        except Exception as exc:
            LOGGER.exception("Quit failed")
            self._session.push("close error", _describe_error(exc))
            return
        self._session.push("server quit", "executed")
