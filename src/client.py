"""IRC client factory for irc-manager.

The client connects only when the fetch orchestrator asks it to, so
building one has no network side effects.
"""

from __future__ import annotations

import dataclasses
import logging
import os

from dotenv import load_dotenv

from adapters.irc_client import IrcChatClient
from core.config import ManagerConfig


def build_client(config: ManagerConfig) -> IrcChatClient:
    """Create an IRC client from the manager config.

    The server password is read from IRC_PASSWORD via python-dotenv to keep
    secrets out of the JSON config.
    """

    load_dotenv()

    connection = config.connection
    password = os.getenv("IRC_PASSWORD")
    if password:
        connection = dataclasses.replace(connection, password=password)

    logging.getLogger(__name__).info("Initializing IRC client for %s", connection.server)

    return IrcChatClient(connection, transfer_timeout=config.timing.transfer_timeout)
