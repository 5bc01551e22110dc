"""IRC chat client adapter.

Wraps an `irc` library reactor so the core only sees ChatClientPort and the
notification variants from core.models. The reactor runs on its own thread
once connected. File offers are handed to a single worker thread: accepting
one blocks until its DCC stream ends, which must not stall the reactor that
delivers the stream.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Callable, Dict, Optional

import irc.client

from adapters.dcc import DccReceiver, DccSend, TransferError, parse_dcc_send
from core.config import ConnectionConfig
from core.models import ChannelMessage, FileOffer, GenericMessage, Join, Notification

LOGGER = logging.getLogger(__name__)

QUIT_MESSAGE = "irc-manager done"


def _nick(event) -> Optional[str]:
    source = getattr(event, "source", None)
    if source is None:
        return None
    return getattr(source, "nick", None) or str(source)


class IrcFileOffer:
    """A DCC SEND offer that can be accepted into a local file."""

    def __init__(self, client: "IrcChatClient", send: DccSend, timeout: float) -> None:
        self._client = client
        self._send = send
        self._timeout = timeout

    @property
    def safe_filename(self) -> str:
        return self._send.safe_filename

    @property
    def raw_filename(self) -> str:
        return self._send.raw_filename

    @property
    def size(self) -> Optional[int]:
        return self._send.size

    def accept(self, destination: str) -> None:
        """Receive the file into ``destination``, blocking until the stream ends."""

        receiver = DccReceiver(destination, self._send.size)
        self._client.receive(self._send, receiver)
        if not receiver.finished.wait(self._timeout):
            self._client.abort(receiver)
            raise TransferError(f"Transfer of {self.safe_filename} timed out after {self._timeout}s")
        if not receiver.complete:
            raise TransferError(
                f"Transfer of {self.safe_filename} ended after {receiver.received} of {receiver.size} bytes"
            )
        LOGGER.info("Received %s (%s bytes)", self.safe_filename, receiver.received)


class IrcChatClient:
    """ChatClientPort implementation over irc.client.Reactor."""

    def __init__(self, connection: ConnectionConfig, transfer_timeout: float = 600) -> None:
        self._config = connection
        self._transfer_timeout = transfer_timeout
        self._listener: Optional[Callable[[Notification], None]] = None
        self._reactor = irc.client.Reactor()
        self._server = self._reactor.server()
        self._receivers: Dict[object, DccReceiver] = {}
        self._receivers_lock = threading.Lock()
        self._stopping = threading.Event()
        self._reactor_thread: Optional[threading.Thread] = None
        self._offers = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="irc-offer")

        for event_type, handler in (
            ("welcome", self._on_welcome),
            ("pubmsg", self._on_pubmsg),
            ("privmsg", self._on_privmsg),
            ("privnotice", self._on_privmsg),
            ("pubnotice", self._on_pubmsg),
            ("join", self._on_join),
            ("ctcp", self._on_ctcp),
            ("dccmsg", self._on_dccmsg),
            ("dcc_disconnect", self._on_dcc_disconnect),
            ("disconnect", self._on_disconnect),
        ):
            self._reactor.add_global_handler(event_type, handler)

    # ChatClientPort

    def set_listener(self, listener: Callable[[Notification], None]) -> None:
        self._listener = listener

    def connect(self) -> None:
        """Open the server connection and start the reactor thread."""

        config = self._config
        LOGGER.info("Connecting to %s:%s as %s", config.server, config.port, config.nick)
        self._server.connect(
            config.server,
            config.port,
            config.nick,
            password=config.password,
            username=config.login,
            ircname=config.login,
        )
        self._start_reactor()

    def is_connected(self) -> bool:
        return self._server.is_connected()

    def message(self, channel: str, text: str) -> None:
        self._server.privmsg(channel, text)

    def quit(self) -> None:
        try:
            self._server.quit(QUIT_MESSAGE)
        finally:
            self._stop()

    # DCC

    def receive(self, send: DccSend, receiver: DccReceiver) -> None:
        """Open the DCC connection for an offer and route its data to ``receiver``."""

        if self._stopping.is_set():
            receiver.close()
            raise TransferError("Client has quit")
        dcc = self._reactor.dcc("raw")
        # Register before connecting so the first chunk is never missed.
        with self._receivers_lock:
            self._receivers[dcc] = receiver
        try:
            dcc.connect(send.address, send.port)
        except irc.client.DCCConnectionError as exc:
            with self._receivers_lock:
                self._receivers.pop(dcc, None)
            receiver.close()
            raise TransferError(f"Could not connect to {send.address}:{send.port}") from exc

    def abort(self, receiver: DccReceiver, reason: str = "timeout") -> None:
        """Drop a transfer; a blocked accept() wakes up and fails."""

        with self._receivers_lock:
            connections = [dcc for dcc, value in self._receivers.items() if value is receiver]
            for dcc in connections:
                self._receivers.pop(dcc, None)
        for dcc in connections:
            try:
                dcc.disconnect(reason)
            except Exception:
                LOGGER.exception("Closing DCC connection failed")
        receiver.close()

    # Reactor lifecycle

    def _start_reactor(self) -> None:
        if self._reactor_thread is not None and self._reactor_thread.is_alive():
            return
        self._stopping.clear()
        self._reactor_thread = threading.Thread(target=self._run_reactor, name="irc-reactor", daemon=True)
        self._reactor_thread.start()

    def _run_reactor(self) -> None:
        while not self._stopping.is_set():
            try:
                self._reactor.process_once(timeout=0.2)
            except Exception:
                LOGGER.exception("IRC reactor error")

    def _stop(self) -> None:
        # Nothing delivers DCC data once the reactor stops, so pending
        # transfers are aborted first.
        with self._receivers_lock:
            pending = list(self._receivers.values())
        for receiver in pending:
            self.abort(receiver, "quit")
        self._stopping.set()
        if self._reactor_thread is not None and self._reactor_thread is not threading.current_thread():
            self._reactor_thread.join(timeout=2)
        self._offers.shutdown(wait=False)
        if self._server.is_connected():
            self._server.close()

    # Event handlers

    def _notify(self, notification: Notification) -> None:
        if self._listener is None:
            return
        try:
            self._listener(notification)
        except Exception:
            LOGGER.exception("Listener failed for %s", type(notification).__name__)

    def _on_welcome(self, connection, event) -> None:
        LOGGER.info("Registered with %s, joining %s", self._config.server, self._config.channel)
        connection.join(self._config.channel)

    def _on_pubmsg(self, connection, event) -> None:
        self._notify(ChannelMessage(message=event.arguments[0], channel=event.target))

    def _on_privmsg(self, connection, event) -> None:
        self._notify(GenericMessage(message=event.arguments[0], user=_nick(event)))

    def _on_join(self, connection, event) -> None:
        self._notify(Join(channel=event.target, user=_nick(event) or ""))

    def _on_ctcp(self, connection, event) -> None:
        if len(event.arguments) < 2 or event.arguments[0].upper() != "DCC":
            return
        send = parse_dcc_send(event.arguments[1], sender=_nick(event))
        if send is None:
            return
        offer = IrcFileOffer(self, send, self._transfer_timeout)
        LOGGER.info("DCC SEND offer of %s from %s", send.raw_filename, send.sender)
        self._offers.submit(self._notify, FileOffer(offer))

    def _on_dccmsg(self, connection, event) -> None:
        with self._receivers_lock:
            receiver = self._receivers.get(connection)
        if receiver is None:
            return
        connection.send_bytes(receiver.feed(event.arguments[0]))
        if receiver.size is not None and receiver.complete:
            connection.disconnect()

    def _on_dcc_disconnect(self, connection, event) -> None:
        with self._receivers_lock:
            receiver = self._receivers.pop(connection, None)
        if receiver is not None:
            receiver.close()

    def _on_disconnect(self, connection, event) -> None:
        LOGGER.info("Disconnected from %s", self._config.server)
