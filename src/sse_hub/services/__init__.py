"""Service layer for the SSE hub."""

from .channel import (
    INBOX_CAPACITY,
    CancelSignal,
    ChannelClosedError,
    EventChannel,
    Offer,
    Receipt,
    ReceiptKind,
)
from .hub import Hub, Subscriber

__all__ = [
    "INBOX_CAPACITY",
    "CancelSignal",
    "ChannelClosedError",
    "EventChannel",
    "Hub",
    "Offer",
    "Receipt",
    "ReceiptKind",
    "Subscriber",
]
