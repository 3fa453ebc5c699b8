from __future__ import annotations

import asyncio
import json

from fastapi.testclient import TestClient

from sse_hub.config import HubConfig
from sse_hub.models import Event, EventKind
from sse_hub.services import Hub
from sse_hub.web.events import encode_frame, session_stream
from sse_hub.web.main import create_app


def parse_frame(frame: bytes) -> dict:
    text = frame.decode("utf-8")
    assert text.startswith("data: ")
    assert text.endswith("\n\n")
    return json.loads(text[len("data: ") : -2])


def test_encode_frame_uses_wire_names() -> None:
    data = parse_frame(encode_frame(Event.ping({"x": 1})))
    assert data["type"] == "ping"
    assert data["message"] == "Ping received from client"
    assert data["data"] == {"x": 1}
    assert data["timestamp"].endswith("+00:00")


def test_encode_frame_omits_empty_payload() -> None:
    data = parse_frame(encode_frame(Event.heartbeat()))
    assert data["type"] == "heartbeat"
    assert "data" not in data


def test_encode_frame_skips_unserializable_payload() -> None:
    assert encode_frame(Event.ping(object())) is None


def test_session_stream_registers_and_cleans_up_on_close() -> None:
    async def scenario() -> None:
        hub = Hub(heartbeat_interval=None)
        await hub.start()
        sub = hub.subscribe()
        stream = session_stream(hub, sub)

        welcome = parse_frame(await asyncio.wait_for(stream.__anext__(), timeout=1))
        assert welcome["type"] == "welcome"
        assert hub.subscriber_count == 1

        hub.broadcast(Event.ping(object()))
        hub.broadcast(Event.ping({"n": 1}))
        ping = parse_frame(await asyncio.wait_for(stream.__anext__(), timeout=1))
        assert ping["data"] == {"n": 1}

        await stream.aclose()
        await hub.join()
        assert sub.inbox.cancelled
        assert sub.inbox.closed
        assert hub.subscriber_count == 0
        await hub.stop()

    asyncio.run(scenario())


def test_session_stream_ends_when_hub_drops_subscriber() -> None:
    async def scenario() -> list:
        hub = Hub(heartbeat_interval=None)
        await hub.start()
        sub = hub.subscribe()
        frames = []

        async def consume() -> None:
            async for frame in session_stream(hub, sub):
                frames.append(parse_frame(frame))
                if len(frames) == 1:
                    hub.unregister(sub.identity)

        await asyncio.wait_for(consume(), timeout=1)
        await hub.join()
        assert hub.subscriber_count == 0
        await hub.stop()
        return frames

    frames = asyncio.run(scenario())
    assert [f["type"] for f in frames] == ["welcome"]


def make_client() -> TestClient:
    return TestClient(create_app(HubConfig(heartbeat_secs=0)))


def test_trigger_accepts_json_object() -> None:
    with make_client() as client:
        resp = client.post("/trigger", json={"x": 1})
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


def test_trigger_rejects_malformed_body() -> None:
    with make_client() as client:
        resp = client.post("/trigger", content=b"{not json", headers={"Content-Type": "application/json"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid JSON"

        resp = client.post("/trigger", json=[1, 2, 3])
        assert resp.status_code == 400


def test_trigger_rejects_get() -> None:
    with make_client() as client:
        assert client.get("/trigger").status_code == 405


def test_health_reports_subscriber_count() -> None:
    with make_client() as client:
        body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["clients"] == 0
    assert body["time"].endswith("+00:00")


def test_cors_allows_any_origin() -> None:
    with make_client() as client:
        resp = client.get("/health", headers={"Origin": "http://example.com"})
        assert resp.headers["access-control-allow-origin"] == "*"

        preflight = client.options(
            "/trigger",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert preflight.status_code == 200
        assert "POST" in preflight.headers["access-control-allow-methods"]


def test_event_kind_values_match_wire_tags() -> None:
    assert [k.value for k in EventKind] == ["welcome", "heartbeat", "ping"]


def test_events_route_streams_with_sse_headers() -> None:
    app = create_app(HubConfig(heartbeat_secs=0))
    route = next(r for r in app.routes if getattr(r, "path", None) == "/events")

    async def scenario():
        resp = await route.endpoint()
        await resp.body_iterator.aclose()
        return resp

    resp = asyncio.run(scenario())
    assert resp.media_type == "text/event-stream"
    assert resp.headers["cache-control"] == "no-cache"
    assert resp.headers["connection"] == "keep-alive"
    assert app.state.hub.subscriber_count == 0


def test_session_stream_cleans_up_when_consumer_is_cancelled() -> None:
    async def scenario() -> None:
        hub = Hub(heartbeat_interval=None)
        await hub.start()
        sub = hub.subscribe()
        frames = []
        first = asyncio.Event()

        async def consume() -> None:
            async for frame in session_stream(hub, sub):
                frames.append(parse_frame(frame))
                first.set()

        task = asyncio.create_task(consume())
        await asyncio.wait_for(first.wait(), timeout=1)
        await asyncio.sleep(0)
        # Waiting in receive(); a client disconnect cancels the response task.
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        await hub.join()

        assert [f["type"] for f in frames] == ["welcome"]
        assert sub.inbox.cancelled
        assert sub.inbox.closed
        assert hub.subscriber_count == 0
        assert hub.running
        await hub.stop()

    asyncio.run(scenario())
