"""Data models for hub events."""

from .event import Event, EventKind

__all__ = ["Event", "EventKind"]
