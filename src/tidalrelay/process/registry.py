"""Session registry — the one slot for the active Tidal session."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable

from tidalrelay.config import TidalConfig
from tidalrelay.events.bridge import make_session_callbacks
from tidalrelay.events.wire import Wire
from tidalrelay.fragment import prepare
from tidalrelay.process.errors import SessionError
from tidalrelay.process.session import TidalSession

logger = logging.getLogger(__name__)

HUSH = "hush"


class ToggleOutcome(enum.Enum):
    STARTED = "started"
    STOPPED = "stopped"
    FAILED = "failed"


class SessionRegistry:
    """Holds at most one live session and serializes start/stop.

    Construct one per process and hand it to every caller. ``toggle()``
    holds a lock across the whole stop-or-start decision, so a second
    toggle arriving mid-transition sees the result of the first.
    ``current()`` is a plain lookup without side effects.
    """

    def __init__(
        self,
        config: TidalConfig,
        wire: Wire | None = None,
        session_factory: Callable[[], TidalSession] | None = None,
    ) -> None:
        self.config = config
        self.wire = wire or Wire(prompt_tokens=config.prompt_tokens)
        self._session_factory = session_factory or self._new_session
        self._session: TidalSession | None = None
        self._lock = threading.Lock()

    def _new_session(self) -> TidalSession:
        callbacks = make_session_callbacks(self.wire)
        return TidalSession(
            interpreter=self.config.interpreter,
            boot_script=self.config.boot_script,
            on_stdout=callbacks.on_stdout,
            on_stderr=callbacks.on_stderr,
            on_fault=callbacks.on_fault,
            poll_interval=self.config.poll_interval,
        )

    def toggle(self) -> ToggleOutcome:
        """Stop the running session, or start a new one if none is running."""
        with self._lock:
            session = self._session
            if session is not None and session.is_running():
                session.stop()
                self._session = None
                self.wire.send_status("Stopped tidal")
                return ToggleOutcome.STOPPED

            if session is not None:
                # Stale handle from an interpreter that died on its own
                logger.info("Cleaning up exited session %s", session.id)
                session.stop()
                self._session = None

            new_session = self._session_factory()
            try:
                new_session.start()
            except SessionError as e:
                logger.error("Failed to start session: %s", e)
                self.wire.send_error(e)
                return ToggleOutcome.FAILED
            self._session = new_session
            self.wire.send_status("Started tidal")
            return ToggleOutcome.STARTED

    def current(self) -> TidalSession | None:
        return self._session

    def send_text(self, raw_text: str) -> bool:
        """Send a code fragment to the active session.

        Blank fragments are dropped without touching the session. Returns
        True if a line was written.
        """
        text = prepare(raw_text, self.config.tab_replacement)
        if text is None:
            return False
        session = self.current()
        if session is None:
            return False
        return session.send(text)

    def hush(self) -> bool:
        """Silence all patterns."""
        session = self.current()
        if session is None or not session.send(HUSH):
            return False
        self.wire.send_status("Hushed")
        return True

    def shutdown(self) -> None:
        """Stop the active session, if any."""
        with self._lock:
            if self._session is not None:
                self._session.stop()
                self._session = None
