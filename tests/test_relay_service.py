"""Tests for the local FastAPI front."""

import json
from dataclasses import replace

import httpx
import pytest

import relay_handler
import relay_service
from conftest import sse_stream
from upstream import UpstreamClient


@pytest.fixture
async def client():
    """Create an in-process ASGI client."""
    transport = httpx.ASGITransport(app=relay_service.app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.fixture
def upstream_stub(monkeypatch, make_transport):
    rt = make_transport(
        lambda req: httpx.Response(
            200,
            content=sse_stream('data: {"choices":[{"delta":{"content":"edited"}}]}', "data: [DONE]"),
        )
    )
    monkeypatch.setattr(
        relay_handler,
        "UpstreamClient",
        lambda config, log: UpstreamClient(config, log, transport=rt.transport),
    )
    return rt


async def test_healthz(client):
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_preflight(client, upstream_stub):
    r = await client.options("/edit")
    assert r.status_code == 200
    assert r.text == ""
    assert r.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert r.headers["access-control-allow-headers"] == "Content-Type, Authorization"
    assert upstream_stub.calls == 0


async def test_invalid_json(client, upstream_stub):
    r = await client.post("/edit", content=b"{oops", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid JSON in request body"}
    assert upstream_stub.calls == 0


async def test_relay_success(client, upstream_stub, monkeypatch):
    monkeypatch.setattr(relay_service, "config", replace(relay_service.config, openai_api_key="svc-key"))

    r = await client.post("/api/edit", json={"prompt": "Polish", "markdown": "rough draft"})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert r.headers["cache-control"] == "no-cache"
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.text == 'data: {"content":"edited"}\n\ndata: [DONE]\n\n'
    sent = json.loads(upstream_stub.requests[0].content)
    assert "rough draft" in sent["messages"][1]["content"]


async def test_missing_credential(client, upstream_stub, monkeypatch):
    monkeypatch.setattr(relay_service, "config", replace(relay_service.config, openai_api_key=None))

    r = await client.post("/edit", json={"prompt": "Polish", "markdown": "x"})

    assert r.status_code == 500
    assert r.json()["error"] == "Server configuration error"
    assert upstream_stub.calls == 0


async def test_event_path_comes_from_request_url(client, monkeypatch):
    events = []

    class CapturingHandler:
        def __init__(self, config, log):
            pass

        async def handle(self, event):
            events.append(event)
            return {"statusCode": 200, "headers": {}, "body": ""}

    monkeypatch.setattr(relay_service, "RequestHandler", CapturingHandler)

    r = await client.post("/api/v2/edit", content=b'{"prompt": "x"}')

    assert r.status_code == 200
    assert events[0]["httpMethod"] == "POST"
    assert events[0]["path"] == "/api/v2/edit"
    assert events[0]["body"] == '{"prompt": "x"}'
