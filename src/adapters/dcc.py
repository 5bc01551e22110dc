"""DCC SEND offer parsing and stream receiving.

A DCC SEND offer arrives as a CTCP payload of the form
``SEND <filename> <ip as integer> <port> [size]``. The sender then streams the
file over a direct TCP connection and expects the receiver to acknowledge the
running byte count as a 32-bit big-endian integer.
"""

from __future__ import annotations

import logging
import os
import re
import struct
import threading
from dataclasses import dataclass
from typing import Optional

from irc.client import ip_numstr_to_quad

LOGGER = logging.getLogger(__name__)

# Control characters never belong in a local filename.
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# SEND <filename> <address> <port> [size]; the filename may be double-quoted.
_DCC_SEND = re.compile(r"^(\S+)\s+(\"[^\"]*\"|[^\"\s]\S*)\s+(\S+)\s+(\S+)(?:\s+(\S+))?(?:\s.*)?$")


class TransferError(RuntimeError):
    """A DCC transfer could not be completed."""


@dataclass(frozen=True)
class DccSend:
    """A parsed DCC SEND offer."""

    raw_filename: str
    safe_filename: str
    address: str
    port: int
    size: Optional[int]
    sender: Optional[str] = None


def safe_filename(raw_filename: str) -> str:
    """Reduce an offered filename to a name safe to create locally.

    Keep the offered name as-is apart from quotes, directories and control
    characters, so it still matches the request it was offered for.
    """

    name = raw_filename.strip().strip('"').replace("\\", "/")
    name = os.path.basename(name)
    name = _CONTROL_CHARS.sub("_", name).strip()
    if name in ("", ".", ".."):
        return "unnamed"
    return name


def parse_dcc_send(payload: str, sender: Optional[str] = None) -> Optional[DccSend]:
    """Parse a DCC CTCP payload. Returns None for anything but a valid SEND."""

    match = _DCC_SEND.match(payload.strip())
    if match is None or match.group(1).upper() != "SEND":
        return None

    raw_filename = match.group(2).strip('"')
    raw_address, raw_port, raw_size = match.group(3), match.group(4), match.group(5)
    try:
        address = ip_numstr_to_quad(raw_address) if raw_address.isdigit() else raw_address
        port = int(raw_port)
        size = int(raw_size) if raw_size is not None else None
    except (ValueError, struct.error):
        LOGGER.warning("Malformed DCC SEND offer: %r", payload)
        return None

    return DccSend(
        raw_filename=raw_filename,
        safe_filename=safe_filename(raw_filename),
        address=address,
        port=port,
        size=size,
        sender=sender,
    )


class DccReceiver:
    """Writes one incoming DCC stream to disk."""

    def __init__(self, path: str, size: Optional[int]) -> None:
        self.path = path
        self.size = size
        self.received = 0
        self.finished = threading.Event()
        self._handle = open(path, "wb")

    def feed(self, data: bytes) -> bytes:
        """Write a chunk and return the acknowledgement to send back."""

        self._handle.write(data)
        self.received += len(data)
        return struct.pack("!I", self.received & 0xFFFFFFFF)

    @property
    def complete(self) -> bool:
        if self.size is None:
            return self.finished.is_set()
        return self.received >= self.size

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()
        self.finished.set()
