from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from sse_hub.models import Event

if TYPE_CHECKING:  # pragma: no cover
    from .hub import Hub


async def heartbeat(hub: "Hub", interval: float) -> None:
    """Broadcast a heartbeat every ``interval`` seconds so idle streams stay open."""
    while True:
        await asyncio.sleep(interval)
        hub.broadcast(Event.heartbeat())
