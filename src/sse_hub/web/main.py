from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from sse_hub import __version__
from sse_hub.config import HubConfig
from sse_hub.models import Event
from sse_hub.models.event import rfc3339, utcnow
from sse_hub.services import Hub
from .events import session_stream


logger = logging.getLogger(__name__)


def create_app(config: Optional[HubConfig] = None) -> FastAPI:
    config = config or HubConfig()
    hub = Hub(capacity=config.inbox_capacity, heartbeat_interval=config.heartbeat_secs)

    app = FastAPI(title="SSE Hub", version=__version__)
    app.state.hub = hub
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        await hub.start()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:  # pragma: no cover - lifecycle
        await hub.stop()

    @app.get("/events")
    async def sse_events() -> StreamingResponse:
        subscriber = hub.subscribe()
        headers = {"Cache-Control": "no-cache", "Connection": "keep-alive"}
        return StreamingResponse(
            session_stream(hub, subscriber), media_type="text/event-stream", headers=headers
        )

    @app.post("/trigger")
    async def trigger(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Invalid JSON")
        hub.broadcast(Event.ping(body))
        return JSONResponse({"status": "ok"})

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "time": rfc3339(utcnow()),
            "clients": hub.subscriber_count,
        }

    return app


app = create_app()
