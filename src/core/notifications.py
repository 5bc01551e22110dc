"""Protocol notification dispatch (core domain).

Adapters translate wire events into the notification variants in
core.models. Each variant has one handler here; all but file offers are
simply reported on the event bus.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict

from core.models import ChannelMessage, Event, FileOffer, GenericMessage, Join, Notification
from core.session import SessionState
from core.transfer import FileTransferHandler

LOGGER = logging.getLogger(__name__)


def parse_generic_message(notification: GenericMessage) -> Event:
    if notification.user:
        return Event("generic-message", f"{notification.user}: {notification.message}")
    return Event("generic-message", notification.message)


def parse_generic_channel(notification: ChannelMessage) -> Event:
    if notification.channel:
        return Event("generic-channel", {"channel": notification.channel, "message": notification.message})
    return Event("generic-channel", "no data")


def parse_join(notification: Join) -> Event:
    return Event("join", {"channel": notification.channel, "user": notification.user})


_PARSERS: Dict[type, Callable[..., Event]] = {
    GenericMessage: parse_generic_message,
    ChannelMessage: parse_generic_channel,
    Join: parse_join,
}


def notification_to_event(notification: Notification) -> Event:
    """Return the event reporting a non-offer notification."""

    parser = _PARSERS.get(type(notification))
    if parser is None:
        raise TypeError(f"No event mapping for {type(notification).__name__}")
    return parser(notification)


class NotificationDispatcher:
    """Listener registered with the chat client for one fetch run."""

    def __init__(self, session: SessionState, transfer_handler: FileTransferHandler) -> None:
        self._session = session
        self._transfer_handler = transfer_handler

    def __call__(self, notification: Notification) -> None:
        self.dispatch(notification)

    def dispatch(self, notification: Notification) -> None:
        if isinstance(notification, FileOffer):
            self._transfer_handler.handle(notification.offer)
            return
        try:
            event = notification_to_event(notification)
        except TypeError:
            LOGGER.warning("Dropping unsupported notification %r", notification)
            return
        self._session.events.push_event(event)
