"""Wire protocol — decouples the session core from whatever displays it.

Events flow from the session (pump, writer, registry) to subscribers. A
subscriber gets its own thread-safe queue, so the background pump thread
and the caller's thread can both publish without further locking.
"""

from __future__ import annotations

import enum
import queue
import threading
from dataclasses import dataclass, field
from typing import Any

DEFAULT_PROMPT_TOKENS = ("Prelude>",)


class EventType(enum.Enum):
    INFO = "info"  # interpreter stdout
    WARNING = "warning"  # interpreter stderr
    ERROR = "error"  # exceptions
    STATUS = "status"  # session lifecycle messages


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


def strip_prompt(text: str, prompt_tokens: tuple[str, ...] = DEFAULT_PROMPT_TOKENS) -> str:
    """Remove interpreter prompt tokens and surrounding whitespace."""
    for token in prompt_tokens:
        text = text.replace(token, "")
    return text.strip()


class Wire:
    """Message bus: session -> subscribers.

    Multi-producer, multi-consumer broadcast. Text events are
    cleaned of prompt tokens and dropped entirely if nothing is left.
    """

    def __init__(self, prompt_tokens: tuple[str, ...] | list[str] = DEFAULT_PROMPT_TOKENS) -> None:
        self.prompt_tokens = tuple(prompt_tokens)
        self._subscribers: list[queue.Queue[WireEvent | None]] = []
        self._lock = threading.Lock()
        self._closed: bool = False

    def send(self, event: WireEvent) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        with self._lock:
            if self._closed:
                return
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put_nowait(event)

    def _send_text(self, event_type: EventType, text: str) -> None:
        message = strip_prompt(text, self.prompt_tokens)
        if message:
            self.send(WireEvent(type=event_type, data={"text": message}))

    def send_info(self, text: str) -> None:
        self._send_text(EventType.INFO, text)

    def send_warning(self, text: str) -> None:
        self._send_text(EventType.WARNING, text)

    def send_status(self, message: str) -> None:
        self._send_text(EventType.STATUS, message)

    def send_error(self, error: BaseException) -> None:
        self.send(
            WireEvent(
                type=EventType.ERROR,
                data={
                    "error": str(error),
                    "kind": type(error).__name__,
                    "exception": error,
                },
            )
        )

    def subscribe(self) -> queue.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: queue.Queue[WireEvent | None] = queue.Queue()
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: queue.Queue) -> None:
        """Unsubscribe from events."""
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        with self._lock:
            self._closed = True
            subscribers = list(self._subscribers)
        for q in subscribers:
            q.put_nowait(None)
