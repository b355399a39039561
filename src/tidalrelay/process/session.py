"""Tidal session — one managed interpreter process."""

from __future__ import annotations

import enum
import logging
import os
import signal
import subprocess
import uuid
from pathlib import Path
from typing import Callable

from tidalrelay.process.errors import BootstrapReadFailure, SessionError, SpawnFailure
from tidalrelay.process.pump import POLL_INTERVAL, OutputPump
from tidalrelay.process.writer import SessionWriter

logger = logging.getLogger(__name__)


class SessionStatus(enum.Enum):
    """Lifecycle states for a Tidal session."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    EXITED = "exited"  # Process died on its own, handle not yet cleaned up


def read_boot_script(path: str | os.PathLike[str]) -> list[str]:
    """Read the bootstrap script as a list of lines, without terminators."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BootstrapReadFailure(f"Cannot read boot script {path}: {e}") from e
    # Lines end at \n or \r\n only, as in the file the user wrote.
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class TidalSession:
    """A managed interpreter subprocess with its writer and output pump.

    ``start()`` spawns the interpreter in its own process group, starts
    draining its output and replays the bootstrap script line by line.
    ``stop()`` closes stdin and kills the process group. Liveness is
    always read from the OS, never cached.
    """

    def __init__(
        self,
        interpreter: str,
        boot_script: str | os.PathLike[str],
        on_stdout: Callable[[str], None],
        on_stderr: Callable[[str], None],
        on_fault: Callable[[BaseException], None],
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.interpreter = interpreter
        self.boot_script = boot_script
        self.poll_interval = poll_interval
        self._on_stdout = on_stdout
        self._on_stderr = on_stderr
        self._on_fault = on_fault

        self._proc: subprocess.Popen | None = None
        self._pgid: int = 0
        self._writer: SessionWriter | None = None
        self._pump: OutputPump | None = None
        self._status = SessionStatus.STOPPED

    def start(self) -> TidalSession:
        """Spawn the interpreter and prime it with the bootstrap script.

        Raises:
            SessionError: The session is already running.
            BootstrapReadFailure: The bootstrap script is unreadable.
            SpawnFailure: The interpreter could not be launched.
        """
        if self.is_running():
            raise SessionError(f"Session {self.id} is already running")
        if self._proc is not None:
            self.stop()

        self._status = SessionStatus.STARTING
        try:
            boot_lines = read_boot_script(self.boot_script)
            self._spawn()
        except SessionError:
            self._status = SessionStatus.STOPPED
            raise

        self._writer = SessionWriter(self._proc.stdin, on_fault=self._on_fault)
        self._pump = OutputPump(
            self._proc,
            on_stdout=self._on_stdout,
            on_stderr=self._on_stderr,
            on_fault=self._on_fault,
            interval=self.poll_interval,
            name=f"pump-{self.id}",
        )
        self._pump.start()
        self._status = SessionStatus.RUNNING

        for line in boot_lines:
            self._writer.send(line)
        logger.info(
            "Session %s booted with %d lines from %s",
            self.id,
            len(boot_lines),
            self.boot_script,
        )
        return self

    def _spawn(self) -> None:
        try:
            self._proc = subprocess.Popen(
                [self.interpreter],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,  # Own process group for tree-killing
            )
        except (OSError, ValueError) as e:
            self._proc = None
            raise SpawnFailure(f"Cannot launch {self.interpreter}: {e}") from e

        try:
            self._pgid = os.getpgid(self._proc.pid)
        except ProcessLookupError:
            self._pgid = 0
        logger.info(
            "Session %s started: pid=%d pgid=%d cmd=%s",
            self.id,
            self._proc.pid,
            self._pgid,
            self.interpreter,
        )

    def stop(self) -> TidalSession:
        """Close stdin and kill the interpreter. Safe on a stopped session."""
        if self._proc is None:
            self._status = SessionStatus.STOPPED
            return self

        self._status = SessionStatus.STOPPING
        if self._writer is not None:
            self._writer.close()
        self._kill()
        self._proc = None
        self._writer = None
        self._status = SessionStatus.STOPPED
        return self

    def _kill(self) -> None:
        proc = self._proc
        try:
            if self._pgid:
                os.killpg(self._pgid, signal.SIGKILL)
            else:
                proc.kill()
            logger.info("Killed session %s (pid=%d)", self.id, proc.pid)
        except ProcessLookupError:
            logger.debug("Session %s process already gone", self.id)
        except OSError as e:
            logger.warning("Error killing session %s: %s", self.id, e)
            proc.kill()

        # Reap to avoid zombies
        try:
            proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            logger.warning("Session %s did not exit after SIGKILL", self.id)

    def is_running(self) -> bool:
        proc = self._proc
        return proc is not None and proc.poll() is None

    @property
    def status(self) -> SessionStatus:
        if self._status == SessionStatus.RUNNING and not self.is_running():
            return SessionStatus.EXITED
        return self._status

    @property
    def pid(self) -> int | None:
        proc = self._proc
        return proc.pid if proc is not None else None

    def send(self, line: str) -> bool:
        """Send one line to the interpreter. A no-op unless running."""
        writer = self._writer
        if writer is None or not self.is_running():
            return False
        return writer.send(line)
