from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from sse_hub.models import Event
from .channel import INBOX_CAPACITY, EventChannel, Offer
from .heartbeat import heartbeat


logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL = 10.0


def new_identity() -> str:
    return f"client_{uuid.uuid4().hex}"


@dataclass
class Subscriber:
    """One streaming connection: an identity plus the inbox it owns."""

    identity: str = field(default_factory=new_identity)
    inbox: EventChannel = field(default_factory=EventChannel)

    @classmethod
    def create(cls, capacity: int = INBOX_CAPACITY) -> "Subscriber":
        return cls(inbox=EventChannel(capacity))


class _Op(str, Enum):
    REGISTER = "register"
    UNREGISTER = "unregister"
    BROADCAST = "broadcast"


_Request = Tuple[_Op, Union[Subscriber, str, Event]]


class Hub:
    """Single owner of the subscriber set.

    ``register``, ``unregister`` and ``broadcast`` only enqueue a request;
    the coordination loop in ``run`` is the one task that ever reads or
    mutates ``_subscribers``. A subscriber whose inbox is full or who has
    cancelled is pruned on the next broadcast instead of being waited on.
    """

    def __init__(
        self,
        capacity: int = INBOX_CAPACITY,
        heartbeat_interval: Optional[float] = HEARTBEAT_INTERVAL,
    ) -> None:
        self.capacity = capacity
        self.heartbeat_interval = heartbeat_interval
        self._subscribers: Dict[str, Subscriber] = {}
        self._requests: asyncio.Queue[_Request] = asyncio.Queue()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: List[asyncio.Task[None]] = []

    def subscribe(self) -> Subscriber:
        """Allocate a subscriber sized for this hub. Does not register it."""
        return Subscriber.create(self.capacity)

    def register(self, subscriber: Subscriber) -> None:
        self._requests.put_nowait((_Op.REGISTER, subscriber))

    def unregister(self, subscriber: Union[Subscriber, str]) -> None:
        """Remove a subscriber.

        Given a ``Subscriber``, only that session is removed, so a stale cleanup
        cannot drop a newer session registered under the same identity. Given
        an identity string, whatever session holds it is removed.
        """
        self._requests.put_nowait((_Op.UNREGISTER, subscriber))

    def broadcast(self, event: Event) -> None:
        self._requests.put_nowait((_Op.BROADCAST, event))

    def broadcast_threadsafe(self, event: Event) -> None:
        """Broadcast from a thread that is not running the hub's loop."""
        if self._loop is None:
            raise RuntimeError("hub is not running")
        self._loop.call_soon_threadsafe(self.broadcast, event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def join(self) -> None:
        """Wait until every request enqueued so far has been handled."""
        await self._requests.join()

    async def start(self) -> None:
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._tasks = [asyncio.create_task(self.run(), name="hub")]
        if self.heartbeat_interval and self.heartbeat_interval > 0:
            self._tasks.append(
                asyncio.create_task(heartbeat(self, self.heartbeat_interval), name="hub-heartbeat")
            )
        logger.info("Hub started (heartbeat every %ss)", self.heartbeat_interval)

    async def stop(self) -> None:
        for t in self._tasks:
            t.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._loop = None
        # The queue is bound to the loop that used it; a later start may run on another.
        self._requests = asyncio.Queue()
        # Streams still attached see CLOSED and finish.
        for identity in list(self._subscribers):
            self._remove(identity)
        logger.info("Hub stopped")

    async def run(self) -> None:
        while True:
            op, arg = await self._requests.get()
            try:
                if op is _Op.REGISTER:
                    self._register(arg)  # type: ignore[arg-type]
                elif op is _Op.UNREGISTER:
                    self._unregister(arg)  # type: ignore[arg-type]
                else:
                    self._broadcast(arg)  # type: ignore[arg-type]
            except Exception:
                logger.exception("Hub failed to handle %s request", op.value)
            finally:
                self._requests.task_done()

    def _register(self, subscriber: Subscriber) -> None:
        if subscriber.inbox.closed:
            logger.warning("Ignoring register for %s: inbox already closed", subscriber.identity)
            return
        existing = self._subscribers.get(subscriber.identity)
        if existing is subscriber:
            return
        # A re-used identity replaces the previous session; close the old inbox once.
        if existing is not None:
            self._remove(subscriber.identity)
        self._subscribers[subscriber.identity] = subscriber
        logger.info(
            "Client %s connected. Total clients: %d", subscriber.identity, len(self._subscribers)
        )
        if subscriber.inbox.cancelled:
            return
        # Welcome is best-effort; never block the loop on it.
        subscriber.inbox.offer(Event.welcome())

    def _unregister(self, target: Union[Subscriber, str]) -> None:
        identity = target if isinstance(target, str) else target.identity
        existing = self._subscribers.get(identity)
        if existing is None:
            return
        if not isinstance(target, str) and existing is not target:
            return
        self._remove(identity)
        logger.info("Client %s disconnected. Total clients: %d", identity, len(self._subscribers))

    def _broadcast(self, event: Event) -> None:
        for identity, subscriber in list(self._subscribers.items()):
            inbox = subscriber.inbox
            if inbox.cancelled:
                reason = "cancelled"
            elif inbox.offer(event) is Offer.WOULD_BLOCK:
                reason = "inbox full"
            else:
                continue
            self._remove(identity)
            logger.info(
                "Client %s dropped (%s). Total clients: %d", identity, reason, len(self._subscribers)
            )

    def _remove(self, identity: str) -> None:
        subscriber = self._subscribers.pop(identity)
        subscriber.inbox.close()
