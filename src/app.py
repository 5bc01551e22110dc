"""Application entry point for irc-manager."""

from __future__ import annotations

import argparse
import logging
import os
import threading
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from client import build_client
from core.events import EventBus
from core.models import FetchStatus
from core.orchestrator import FetchOrchestrator
from core.search import search_resources
from core.session import SessionState

NAME = "IRC MANAGER"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    config = config or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/irc-manager.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _search(session: SessionState, term: Optional[str]) -> None:
    results = search_resources(session.config.resource_file_path, term, session.events)
    # Let queued events reach the console before the results.
    session.events.flush()
    for result in results:
        print(result)


def _fetch(session: SessionState, term: str) -> FetchStatus:
    logger = logging.getLogger(__name__)
    client = build_client(session.config)
    orchestrator = FetchOrchestrator(session, client)

    outcome: dict = {}

    def _run() -> None:
        outcome["status"] = orchestrator.run(term)

    worker = threading.Thread(target=_run, name="fetch")
    worker.start()
    try:
        # Poll the join so Ctrl-C reaches the main thread.
        while worker.is_alive():
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        logger.info("Interrupted, cancelling fetch")
        orchestrator.cancel()
        worker.join()
    return outcome.get("status", session.fetch_status)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="irc-manager", description="IRC resource management bot")
    parser.add_argument(
        "-c",
        "--config",
        default=settings.DEFAULT_CONFIG_PATH,
        help="Manager configuration file",
    )
    parser.add_argument("-s", "--search", help="Resource search term")
    parser.add_argument("-f", "--fetch", help="Command for irc bot fetch action")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    _print_banner()
    manager_config, logging_config = settings.load_settings(args.config)
    _configure_logging(logging_config)
    logger = logging.getLogger(__name__)

    events = EventBus()
    events.subscribe()
    session = SessionState(manager_config, events)
    events.push("options", vars(args))

    try:
        if args.fetch is None:
            _search(session, args.search)
            return 0
        status = _fetch(session, args.fetch)
        logger.info("Fetch finished with status %s", status.value)
        return 0 if status == FetchStatus.COMPLETED else 1
    finally:
        events.flush()


if __name__ == "__main__":
    raise SystemExit(main())
