from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional

from sse_hub.models import Event


INBOX_CAPACITY = 10


class ChannelClosedError(RuntimeError):
    """Raised when a closed channel is offered to or closed again."""


class Offer(str, Enum):
    ACCEPTED = "accepted"
    WOULD_BLOCK = "would_block"


class ReceiptKind(str, Enum):
    EVENT = "event"
    CANCELLED = "cancelled"
    CLOSED = "closed"


@dataclass(frozen=True)
class Receipt:
    kind: ReceiptKind
    event: Optional[Event] = None


class CancelSignal:
    """One-shot flag that any number of tasks can wait on."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._callbacks: List[Callable[[], None]] = []

    def fire(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        for callback in self._callbacks:
            callback()

    def add_done_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` when the signal fires, or now if it already has."""
        if self._event.is_set():
            callback()
            return
        self._callbacks.append(callback)

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class EventChannel:
    """Bounded per-subscriber mailbox.

    - ``offer`` never waits: a full inbox reports ``Offer.WOULD_BLOCK``.
    - ``receive`` suspends until an event arrives, the channel is cancelled
      by its owner, or the hub closes it.
    - Cancellation takes precedence over pending events; closing does not,
      events queued before ``close`` are still handed out.
    """

    def __init__(self, capacity: int = INBOX_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.cancel_signal = CancelSignal()
        self._pending: Deque[Event] = deque()
        self._closed = False
        self._ready = asyncio.Event()
        self.cancel_signal.add_done_callback(self._ready.set)

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def cancelled(self) -> bool:
        return self.cancel_signal.fired

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: Event) -> Offer:
        if self._closed:
            raise ChannelClosedError("offer on a closed channel")
        if len(self._pending) >= self.capacity:
            return Offer.WOULD_BLOCK
        self._pending.append(event)
        self._ready.set()
        return Offer.ACCEPTED

    def cancel(self) -> None:
        self.cancel_signal.fire()

    def close(self) -> None:
        if self._closed:
            raise ChannelClosedError("channel already closed")
        self._closed = True
        self._ready.set()

    async def receive(self) -> Receipt:
        while True:
            if self.cancel_signal.fired:
                return Receipt(ReceiptKind.CANCELLED)
            if self._pending:
                return Receipt(ReceiptKind.EVENT, self._pending.popleft())
            if self._closed:
                return Receipt(ReceiptKind.CLOSED)
            self._ready.clear()
            await self._ready.wait()
