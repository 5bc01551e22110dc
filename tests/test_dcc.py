from __future__ import annotations

import struct

from adapters.dcc import DccReceiver, parse_dcc_send, safe_filename
from core.matching import fuzzy_match


def test_parse_dcc_send_with_quoted_filename() -> None:
    send = parse_dcc_send('SEND "Terry Pratchett - Mort.epub" 3232235777 5000 1024', sender="bot")

    assert send is not None
    assert send.raw_filename == "Terry Pratchett - Mort.epub"
    assert send.safe_filename == "Terry Pratchett - Mort.epub"
    assert send.address == "192.168.1.1"
    assert send.port == 5000
    assert send.size == 1024
    assert send.sender == "bot"


def test_parse_dcc_send_without_size() -> None:
    send = parse_dcc_send("SEND mort.epub 3232235777 5000")

    assert send is not None
    assert send.size is None


def test_parse_dcc_send_rejects_other_commands_and_garbage() -> None:
    assert parse_dcc_send("CHAT chat 3232235777 5000") is None
    assert parse_dcc_send("SEND mort.epub") is None
    assert parse_dcc_send("SEND mort.epub 3232235777 port") is None
    assert parse_dcc_send('SEND "unterminated 3232235777 5000') is None


def test_safe_filename_strips_paths_and_control_chars() -> None:
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("C:\\books\\mort.epub") == "mort.epub"
    assert safe_filename('"quoted name.txt"') == "quoted name.txt"
    assert safe_filename("bad\x00name\n.txt") == "bad_name_.txt"
    assert safe_filename(".yarnrc") == ".yarnrc"
    assert safe_filename("..") == "unnamed"


def test_unquoted_filename_with_apostrophe() -> None:
    send = parse_dcc_send("SEND O'Brian.epub 3232235777 5000 10")

    assert send is not None
    assert send.safe_filename == "O'Brian.epub"


def test_punctuated_requests_match_parsed_offers() -> None:
    mort = parse_dcc_send('SEND "Pratchett Mort (1987).epub" 3232235777 5000 10')
    obrian = parse_dcc_send("SEND \"O'Brian - Master and Commander.epub\" 3232235777 5000 10")
    yarnrc = parse_dcc_send('SEND ".yarnrc (test)" 3232235777 5000 10')

    assert fuzzy_match(mort.safe_filename, "Pratchett Mort (1987)")
    assert fuzzy_match(obrian.safe_filename, "O'Brian Master Commander")
    assert fuzzy_match(yarnrc.safe_filename, ".yarnrc (test)")


def test_receiver_writes_and_acknowledges(tmp_path) -> None:
    path = tmp_path / "mort.epub"
    receiver = DccReceiver(str(path), size=6)

    assert receiver.feed(b"abc") == struct.pack("!I", 3)
    assert not receiver.complete
    assert receiver.feed(b"def") == struct.pack("!I", 6)
    assert receiver.complete
    receiver.close()

    assert receiver.finished.is_set()
    assert path.read_bytes() == b"abcdef"


def test_receiver_without_size_completes_on_close(tmp_path) -> None:
    receiver = DccReceiver(str(tmp_path / "f"), size=None)
    receiver.feed(b"x")
    assert not receiver.complete
    receiver.close()
    assert receiver.complete
