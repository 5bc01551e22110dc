"""Event bus (core domain).

Every component reports progress by pushing events onto a single FIFO queue.
One daemon thread drains the queue for the life of the process and hands
each event to a sink, by default a console printer.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

from core.models import Event

LOGGER = logging.getLogger(__name__)

EventSink = Callable[[Event], None]


def render_event(event: Event) -> str:
    """Return the console line for one event."""

    return f"Type: {event.type}, Data: {event.data}"


def print_event(event: Event) -> None:
    print(render_event(event), flush=True)


class EventBus:
    """Single-consumer queue of events.

    Producers may push from any thread and never block. Events pushed by one
    thread reach the sink in the order they were pushed.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[Event]" = queue.Queue()
        self._consumer: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def push(self, event_type: str, data: Any = None) -> Event:
        event = Event(type=event_type, data=data)
        self.push_event(event)
        return event

    def push_event(self, event: Event) -> None:
        self._queue.put(event)

    def subscribe(self, sink: EventSink = print_event) -> threading.Thread:
        """Start the consumer thread. Only one consumer is allowed."""

        with self._lock:
            if self._consumer is not None:
                raise RuntimeError("Event bus already has a consumer")
            self._consumer = threading.Thread(
                target=self._consume,
                args=(sink,),
                name="event-bus",
                daemon=True,
            )
            self._consumer.start()
            return self._consumer

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until every pushed event has been handed to the sink.

        Returns False if ``timeout`` elapsed first or there is no consumer.
        """

        if self._consumer is None:
            return self._queue.unfinished_tasks == 0
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def _consume(self, sink: EventSink) -> None:
        while True:
            event = self._queue.get()
            try:
                sink(event)
            except Exception:
                # A broken sink must not stop the consumer.
                LOGGER.exception("Event sink failed for %s", event.type)
            finally:
                self._queue.task_done()
