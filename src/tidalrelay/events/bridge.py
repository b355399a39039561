"""Bridge between session callbacks and the Wire event bus.

The session core only knows plain callbacks:
- on_stdout fires with each batch drained from the interpreter's stdout
- on_stderr fires with each batch drained from its stderr
- on_fault fires with WriteFailure / PumpFault exceptions

These factories turn a Wire into those callbacks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from tidalrelay.events.wire import Wire


def make_on_stdout(wire: Wire) -> Callable[[str], None]:
    """Create an on_stdout callback that emits INFO events."""

    def on_stdout(text: str) -> None:
        wire.send_info(text)

    return on_stdout


def make_on_stderr(wire: Wire) -> Callable[[str], None]:
    """Create an on_stderr callback that emits WARNING events."""

    def on_stderr(text: str) -> None:
        wire.send_warning(text)

    return on_stderr


def make_on_fault(wire: Wire) -> Callable[[BaseException], None]:
    """Create an on_fault callback that emits ERROR events."""

    def on_fault(error: BaseException) -> None:
        wire.send_error(error)

    return on_fault


@dataclass
class SessionCallbacks:
    """The three callbacks a TidalSession reports through."""

    on_stdout: Callable[[str], None]
    on_stderr: Callable[[str], None]
    on_fault: Callable[[BaseException], None]


def make_session_callbacks(wire: Wire) -> SessionCallbacks:
    """Create the full callback set for a session, all routed to the wire."""
    return SessionCallbacks(
        on_stdout=make_on_stdout(wire),
        on_stderr=make_on_stderr(wire),
        on_fault=make_on_fault(wire),
    )
