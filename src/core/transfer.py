"""Incoming file transfer handling (core domain).

The handler runs once per offer, synchronously with the notification that
delivered it:
1) Create a temp file placeholder named after the offer
2) Report the offer
3) Accept it only if the filename fuzzy-matches the fetch request
4) Record the accepted file on the session (at most once per run)
5) Copy the received file into the transfer directory
6) Remove the temp file unless it holds the only copy of a download
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from typing import Optional

from core.matching import fuzzy_match
from core.ports import IncomingOffer
from core.session import SessionState

LOGGER = logging.getLogger(__name__)


def describe_offer(offer: IncomingOffer) -> dict:
    return {"safe-filename": offer.safe_filename, "raw-filename": offer.raw_filename}


def create_temp_file(filename: str, directory: Optional[str] = None) -> str:
    """Create an empty temp file whose name starts with ``filename``."""

    handle, path = tempfile.mkstemp(prefix=filename, suffix=".tmp", dir=directory)
    os.close(handle)
    return path


class FileTransferHandler:
    """Accepts the first offer matching the fetch request, rejects the rest."""

    def __init__(self, session: SessionState, request: str, temp_dir: Optional[str] = None) -> None:
        self._session = session
        self._request = request
        self._temp_dir = temp_dir

    def handle(self, offer: IncomingOffer) -> Optional[str]:
        """Handle one offer. Returns the copied file path when accepted."""

        offer_data = describe_offer(offer)
        temp_file = create_temp_file(offer.safe_filename, self._temp_dir)
        self._session.push("incoming-file-transfer", offer_data)

        if not fuzzy_match(offer.safe_filename, self._request):
            LOGGER.info("Ignoring unexpected offer %s", offer.safe_filename)
            discard_temp_file(temp_file)
            self._session.push("unexpected-file-transfer", offer_data)
            return None

        # Only one transfer is accepted per run; later matches are turned away.
        if self._session.accepted_file is not None:
            LOGGER.info("Ignoring offer %s, a transfer was already accepted", offer.safe_filename)
            discard_temp_file(temp_file)
            self._session.push("duplicate-file-transfer", offer_data)
            return None

        try:
            offer.accept(temp_file)
        except Exception as exc:
            LOGGER.exception("Transfer of %s failed", offer.safe_filename)
            discard_temp_file(temp_file)
            self._session.push("transfer error", f"{type(exc).__name__}: {exc}")
            return None

        if not self._session.record_accepted_file(temp_file):
            discard_temp_file(temp_file)
            self._session.push("duplicate-file-transfer", offer_data)
            return None
        self._session.push("accepted-file-transfer", temp_file)

        destination = os.path.join(self._session.config.transfer_file_path, offer.safe_filename)
        try:
            copy_resource(temp_file, destination)
        except OSError as exc:
            # The temp file is the only copy of the download, so it stays.
            LOGGER.exception("Copy of %s to %s failed", temp_file, destination)
            self._session.push("copy error", f"{type(exc).__name__}: {exc}")
            return None
        discard_temp_file(temp_file)
        self._session.push("copy-resource", destination)
        return destination


def discard_temp_file(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        LOGGER.warning("Could not remove temp file %s: %s", path, exc)


def copy_resource(source: str, destination: str) -> None:
    """Copy a fetched resource out of the temp directory."""

    directory = os.path.dirname(destination)
    if directory:
        os.makedirs(directory, exist_ok=True)
    shutil.copyfile(source, destination)
