"""Events fanned out to stream subscribers."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def rfc3339(ts: datetime) -> str:
    return ts.isoformat(timespec="seconds")


class EventKind(str, Enum):
    WELCOME = "welcome"
    HEARTBEAT = "heartbeat"
    PING = "ping"


class Event(BaseModel):
    """A single immutable event.

    ``payload`` is opaque to the hub; it only has to be JSON-serializable by
    the time a stream encodes the event.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: EventKind = Field(alias="type")
    message: str
    payload: Optional[Any] = Field(default=None, alias="data")
    timestamp: datetime = Field(default_factory=utcnow)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, ts: datetime) -> str:
        return rfc3339(ts)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def welcome(cls) -> "Event":
        return cls(kind=EventKind.WELCOME, message="Connected to SSE server")

    @classmethod
    def heartbeat(cls) -> "Event":
        return cls(kind=EventKind.HEARTBEAT, message="Server heartbeat")

    @classmethod
    def ping(cls, payload: Any) -> "Event":
        return cls(kind=EventKind.PING, message="Ping received from client", payload=payload)
