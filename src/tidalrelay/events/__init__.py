"""Notification events — how session output and faults reach the host."""

from tidalrelay.events.wire import EventType, Wire, WireEvent, strip_prompt

__all__ = ["EventType", "Wire", "WireEvent", "strip_prompt"]
