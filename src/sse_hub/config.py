from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List


def _origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


@dataclass
class HubConfig:
    host: str = os.environ.get("SSE_HUB_HOST", "0.0.0.0")
    port: int = int(os.environ.get("SSE_HUB_PORT", "8080"))
    heartbeat_secs: float = float(os.environ.get("SSE_HUB_HEARTBEAT_SECS", "10"))
    inbox_capacity: int = int(os.environ.get("SSE_HUB_INBOX_CAPACITY", "10"))
    allowed_origins: List[str] = field(
        default_factory=lambda: _origins(os.environ.get("SSE_HUB_ALLOWED_ORIGINS", "*"))
    )
    log_level: str = os.environ.get("SSE_HUB_LOG_LEVEL", "info")
