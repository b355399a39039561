"""Shared fixtures: stand-in interpreters and bootstrap scripts."""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Callable

import pytest


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _script(path: Path, body: str) -> str:
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(0o755)
    return str(path)


@pytest.fixture
def boot_script(tmp_path: Path) -> Path:
    path = tmp_path / "BootTidal.hs"
    path.write_text("import Sound.Tidal.Context\nlet p = streamReplace tidal\nlet hush = streamHush tidal\n")
    return path


@pytest.fixture
def empty_boot_script(tmp_path: Path) -> Path:
    path = tmp_path / "empty.hs"
    path.write_text("")
    return path


@pytest.fixture
def echo_interpreter(tmp_path: Path) -> str:
    """Echoes stdin to stdout."""
    return _script(tmp_path / "echo-repl", "exec cat")


@pytest.fixture
def stderr_interpreter(tmp_path: Path) -> str:
    """Echoes stdin to stderr."""
    return _script(tmp_path / "stderr-repl", "exec cat 1>&2")


@pytest.fixture
def exiting_interpreter(tmp_path: Path) -> str:
    """Exits immediately."""
    return _script(tmp_path / "exit-repl", "exit 3")


@pytest.fixture
def received(tmp_path: Path) -> Path:
    return tmp_path / "received.txt"


@pytest.fixture
def recording_interpreter(tmp_path: Path, received: Path) -> str:
    """Writes everything it receives on stdin to ``received``."""
    return _script(tmp_path / "record-repl", f'exec cat > "{received}"')


def read_received(path: Path) -> bytes:
    return path.read_bytes() if path.exists() else b""


@pytest.fixture
def pipe():
    """A (reader file, write fd) pair backed by os.pipe()."""
    r, w = os.pipe()
    reader = os.fdopen(r, "rb")
    yield reader, w
    try:
        os.close(w)
    except OSError:
        pass
