"""Session writer — line-oriented, flushed writes to the interpreter's stdin."""

from __future__ import annotations

import logging
import threading
from typing import BinaryIO, Callable

from tidalrelay.process.errors import WriteFailure

logger = logging.getLogger(__name__)

TERMINATOR = "\n"


def normalize_newlines(text: str) -> str:
    """Translate line breaks for ghci's multi-line input.

    ghci treats ``\\r`` as a new line within the same command and ``\\n``
    as the end of the command. A single ``\\n`` therefore becomes ``\\r``
    and a blank line (``\\n\\n``) becomes one ``\\n``.
    """
    return text.replace("\n", "\r").replace("\r\r", "\n")


class SessionWriter:
    """Serializes outbound lines onto a subprocess input pipe.

    Every ``send()`` normalizes newlines, appends a single terminator,
    writes and flushes before returning, so each line reaches the
    interpreter before the next one starts. Write failures go to
    ``on_fault`` as :class:`WriteFailure`; the caller only sees ``False``.
    """

    def __init__(
        self,
        stream: BinaryIO,
        on_fault: Callable[[BaseException], None],
        encoding: str = "utf-8",
    ) -> None:
        self._stream = stream
        self._on_fault = on_fault
        self._encoding = encoding
        self._lock = threading.Lock()
        self._closed = False

    def send(self, line: str) -> bool:
        """Write one line. Returns False if the write failed."""
        payload = normalize_newlines(line) + TERMINATOR
        try:
            with self._lock:
                if self._closed:
                    raise ValueError("writer is closed")
                self._stream.write(payload.encode(self._encoding))
                self._stream.flush()
        except (OSError, ValueError) as e:
            logger.warning("Write to interpreter failed: %s", e)
            fault = WriteFailure(f"Could not send to interpreter: {e}")
            fault.__cause__ = e
            try:
                self._on_fault(fault)
            except Exception:
                logger.exception("Error in fault callback for writer")
            return False
        logger.debug("Sent %r", payload)
        return True

    def close(self) -> None:
        """Close the input pipe. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._stream.close()
            except (OSError, ValueError) as e:
                logger.debug("Ignoring error closing interpreter stdin: %s", e)

    @property
    def closed(self) -> bool:
        return self._closed
