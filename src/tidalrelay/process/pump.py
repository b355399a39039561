"""Output pump — drains the interpreter's stdout and stderr in the background."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from typing import Callable

from tidalrelay.process.errors import PumpFault
from tidalrelay.process.reader import LineReader

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.2  # seconds between poll cycles
EXIT_DRAIN_TIMEOUT = 1.0  # max seconds to wait for the pipes to hit EOF after exit


class OutputPump:
    """Background loop relaying subprocess output to callbacks.

    Each cycle polls stdout, then stderr, forwarding non-empty batches to
    ``on_stdout`` / ``on_stderr``, then sleeps ``interval`` seconds. The
    loop runs while the process is alive. Once it has died, the pump
    waits (bounded) for both pipes to reach EOF, drains them one last
    time and the thread ends.

    Any exception raised while polling (or by an output callback) stops
    the loop and is handed to ``on_fault`` exactly once, wrapped in
    :class:`PumpFault`. The pump never restarts itself.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        on_stdout: Callable[[str], None],
        on_stderr: Callable[[str], None],
        on_fault: Callable[[BaseException], None],
        interval: float = POLL_INTERVAL,
        name: str = "pump",
    ) -> None:
        self._process = process
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr
        self._on_fault = on_fault
        self.interval = interval
        self.name = name
        self._stdout = LineReader(process.stdout, name=f"{name}-stdout")
        self._stderr = LineReader(process.stderr, name=f"{name}-stderr")
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self.run, name=f"tidalrelay-{self.name}", daemon=True
        )
        self._thread.start()

    def run(self) -> None:
        try:
            while self._process.poll() is None:
                self._drain()
                time.sleep(self.interval)
            self._stdout.wait_closed(EXIT_DRAIN_TIMEOUT)
            self._stderr.wait_closed(EXIT_DRAIN_TIMEOUT)
            self._drain()
        except Exception as e:
            logger.warning("Output pump %s stopped: %s", self.name, e)
            self._report(e)
            return
        logger.info(
            "Output pump %s finished (exit code=%s)",
            self.name,
            self._process.returncode,
        )

    def _drain(self) -> None:
        stdout = self._stdout.poll()
        if stdout:
            self._on_stdout(stdout)
        stderr = self._stderr.poll()
        if stderr:
            self._on_stderr(stderr)

    def _report(self, error: Exception) -> None:
        fault = PumpFault(f"Output pump failed: {error}")
        fault.__cause__ = error
        try:
            self._on_fault(fault)
        except Exception:
            logger.exception("Error in fault callback for pump %s", self.name)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
