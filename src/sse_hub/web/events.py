from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

from pydantic_core import PydanticSerializationError

from sse_hub.models import Event
from sse_hub.services import Hub, ReceiptKind, Subscriber


logger = logging.getLogger(__name__)


def encode_frame(event: Event) -> Optional[bytes]:
    """Format one event as an SSE ``data:`` frame, or None if it cannot be encoded."""
    try:
        data = event.to_json()
    except (PydanticSerializationError, TypeError, ValueError) as e:
        logger.error("Error marshaling event %s: %s", event.kind.value, e)
        return None
    return f"data: {data}\n\n".encode("utf-8")


async def session_stream(hub: Hub, subscriber: Subscriber) -> AsyncIterator[bytes]:
    """Stream one subscriber's inbox as SSE frames.

    Registers on first iteration. Ends when the subscriber is cancelled or the
    hub closes the inbox; on any exit, including the response task being
    cancelled on client disconnect, the cancel signal fires and the hub is
    asked to unregister. Both are safe to repeat.
    """
    inbox = subscriber.inbox
    hub.register(subscriber)
    try:
        while True:
            receipt = await inbox.receive()
            if receipt.kind is not ReceiptKind.EVENT:
                break
            frame = encode_frame(receipt.event)  # type: ignore[arg-type]
            if frame is None:
                continue
            yield frame
    finally:
        inbox.cancel()
        hub.unregister(subscriber)
