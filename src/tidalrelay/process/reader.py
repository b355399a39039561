"""Non-blocking reader over a subprocess output pipe."""

from __future__ import annotations

import codecs
import logging
import threading
from collections import deque
from typing import BinaryIO

logger = logging.getLogger(__name__)

READ_SIZE = 4096


class LineReader:
    """Non-blocking incremental reader for one output stream.

    A daemon thread blocks on the pipe and appends decoded chunks to a
    lock-guarded deque. ``poll()`` hands back everything buffered so far
    and never waits; an empty string just means nothing has arrived yet.

    Decoding is incremental, so a multi-byte UTF-8 character split across
    two reads comes out whole. An ``OSError`` hit by the reader thread is
    kept and re-raised from ``poll()`` once the text read before it has
    been handed out.
    """

    def __init__(self, stream: BinaryIO, name: str = "stream") -> None:
        self.name = name
        self._stream = stream
        self._chunks: deque[str] = deque()
        self._lock = threading.Lock()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._error: BaseException | None = None
        self._eof = threading.Event()
        self._thread = threading.Thread(
            target=self._read_loop, name=f"tidalrelay-{name}", daemon=True
        )
        self._thread.start()

    def _read_loop(self) -> None:
        try:
            read = getattr(self._stream, "read1", None) or self._stream.read
            while True:
                data = read(READ_SIZE)
                if not data:
                    break
                self._push(self._decoder.decode(data))
            self._push(self._decoder.decode(b"", final=True))
        except (OSError, ValueError) as e:
            # ValueError: the pipe was closed underneath us.
            logger.debug("Reader %s failed: %s", self.name, e)
            with self._lock:
                self._error = e
        finally:
            try:
                self._stream.close()
            except OSError:
                pass
            self._eof.set()

    def _push(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self._chunks.append(text)

    def poll(self) -> str:
        """Return all text available right now, possibly ``""``."""
        with self._lock:
            text = "".join(self._chunks)
            self._chunks.clear()
            error = self._error
            if not text:
                self._error = None
        if text:
            return text
        if error is not None:
            raise error
        return ""

    @property
    def closed(self) -> bool:
        """True once the stream hit EOF (or failed) and nothing is buffered."""
        with self._lock:
            pending = bool(self._chunks) or self._error is not None
        return self._eof.is_set() and not pending

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the reader thread has finished, or ``timeout`` passes."""
        return self._eof.wait(timeout)
