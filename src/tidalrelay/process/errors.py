"""Session errors — what can go wrong while driving the interpreter."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for interpreter session failures."""


class SpawnFailure(SessionError):
    """The interpreter executable could not be launched."""


class BootstrapReadFailure(SessionError):
    """The bootstrap script could not be read."""


class WriteFailure(SessionError):
    """A line could not be written to the interpreter's stdin.

    Reported through the fault callback, never raised to the sender.
    """


class PumpFault(SessionError):
    """Draining the interpreter's output failed and the pump stopped."""
