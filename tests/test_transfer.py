from __future__ import annotations

import os
from typing import Optional

from core.config import ConnectionConfig, ManagerConfig
from core.events import EventBus
from core.models import Event
from core.session import SessionState
from core.transfer import FileTransferHandler


class FakeOffer:
    def __init__(self, safe_filename: str, payload: bytes = b"data", error: Optional[Exception] = None) -> None:
        self.safe_filename = safe_filename
        self.raw_filename = f'"{safe_filename}"'
        self.size = len(payload)
        self.accepted_into: list[str] = []
        self._payload = payload
        self._error = error

    def accept(self, destination: str) -> None:
        self.accepted_into.append(destination)
        with open(destination, "wb") as handle:
            handle.write(self._payload if self._error is None else self._payload[:1])
        if self._error is not None:
            raise self._error


def _session(tmp_path) -> tuple[SessionState, list[Event], str]:
    config = ManagerConfig(
        connection=ConnectionConfig(nick="nick", login="login", server="irc.example.net", channel="#books"),
        resource_file_path=str(tmp_path / "lists"),
        transfer_file_path=str(tmp_path / "downloads"),
    )
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    bus = EventBus()
    seen: list[Event] = []
    bus.subscribe(seen.append)
    return SessionState(config, bus), seen, str(temp_dir)


def test_matching_offer_is_accepted_and_copied(tmp_path) -> None:
    session, seen, temp_dir = _session(tmp_path)
    handler = FileTransferHandler(session, "Pratchett Mort", temp_dir=temp_dir)
    offer = FakeOffer("Terry Pratchett - Mort.epub", b"epub bytes")

    destination = handler.handle(offer)
    session.events.flush()

    assert [event.type for event in seen] == [
        "incoming-file-transfer",
        "accepted-file-transfer",
        "copy-resource",
    ]
    assert seen[0].data == {
        "safe-filename": "Terry Pratchett - Mort.epub",
        "raw-filename": '"Terry Pratchett - Mort.epub"',
    }
    temp_file = session.accepted_file
    assert temp_file == offer.accepted_into[0] == seen[1].data
    assert os.path.basename(temp_file).startswith("Terry Pratchett - Mort.epub")
    assert temp_file.endswith(".tmp")
    assert destination == os.path.join(str(tmp_path / "downloads"), "Terry Pratchett - Mort.epub")
    with open(destination, "rb") as handle:
        assert handle.read() == b"epub bytes"
    # The placeholder is removed once the copy is in place.
    assert os.listdir(temp_dir) == []


def test_punctuated_request_matches_offer(tmp_path) -> None:
    session, seen, temp_dir = _session(tmp_path)
    handler = FileTransferHandler(session, "!test .yarnrc (test)", temp_dir=temp_dir)

    destination = handler.handle(FakeOffer("!test .yarnrc (test).txt"))

    assert destination == os.path.join(str(tmp_path / "downloads"), "!test .yarnrc (test).txt")
    assert session.accepted_file is not None


def test_non_matching_offer_is_left_alone(tmp_path) -> None:
    session, seen, temp_dir = _session(tmp_path)
    handler = FileTransferHandler(session, "Pratchett Mort", temp_dir=temp_dir)
    offer = FakeOffer("Some Other Book.epub")

    assert handler.handle(offer) is None
    session.events.flush()

    assert [event.type for event in seen] == ["incoming-file-transfer", "unexpected-file-transfer"]
    assert seen[1].data == seen[0].data
    assert offer.accepted_into == []
    assert session.accepted_file is None
    assert os.listdir(temp_dir) == []


def test_second_matching_offer_is_rejected(tmp_path) -> None:
    session, seen, temp_dir = _session(tmp_path)
    handler = FileTransferHandler(session, "mort", temp_dir=temp_dir)
    first = FakeOffer("Mort.epub", b"first")
    second = FakeOffer("Mort.mobi", b"second")

    handler.handle(first)
    accepted = session.accepted_file
    assert handler.handle(second) is None
    session.events.flush()

    assert session.accepted_file == accepted
    assert second.accepted_into == []
    assert [event.type for event in seen][-2:] == ["incoming-file-transfer", "duplicate-file-transfer"]
    assert os.listdir(temp_dir) == []


def test_failed_accept_is_reported(tmp_path) -> None:
    session, seen, temp_dir = _session(tmp_path)
    handler = FileTransferHandler(session, "mort", temp_dir=temp_dir)
    offer = FakeOffer("Mort.epub", error=ConnectionRefusedError("refused"))

    assert handler.handle(offer) is None
    session.events.flush()

    assert [event.type for event in seen] == ["incoming-file-transfer", "transfer error"]
    assert "refused" in seen[1].data
    assert session.accepted_file is None
    assert os.listdir(temp_dir) == []


def test_failed_copy_keeps_the_download(tmp_path) -> None:
    session, seen, temp_dir = _session(tmp_path)
    # A file where the transfer directory should be makes the copy fail.
    (tmp_path / "downloads").write_text("not a directory")
    handler = FileTransferHandler(session, "mort", temp_dir=temp_dir)

    assert handler.handle(FakeOffer("Mort.epub", b"payload")) is None
    session.events.flush()

    assert [event.type for event in seen] == [
        "incoming-file-transfer",
        "accepted-file-transfer",
        "copy error",
    ]
    with open(session.accepted_file, "rb") as handle:
        assert handle.read() == b"payload"
