"""Interpreter process management — one managed ghci session at a time.

The session spawns the interpreter, replays the bootstrap script, drains
stdout/stderr on a background pump and writes fragments with ghci's
newline convention. The registry makes sure only one session lives.
"""

from tidalrelay.process.errors import (
    BootstrapReadFailure,
    PumpFault,
    SessionError,
    SpawnFailure,
    WriteFailure,
)
from tidalrelay.process.reader import LineReader
from tidalrelay.process.pump import OutputPump
from tidalrelay.process.writer import SessionWriter, normalize_newlines
from tidalrelay.process.session import SessionStatus, TidalSession
from tidalrelay.process.registry import SessionRegistry, ToggleOutcome

__all__ = [
    "BootstrapReadFailure",
    "LineReader",
    "OutputPump",
    "PumpFault",
    "SessionError",
    "SessionRegistry",
    "SessionStatus",
    "SessionWriter",
    "SpawnFailure",
    "TidalSession",
    "ToggleOutcome",
    "WriteFailure",
    "normalize_newlines",
]
