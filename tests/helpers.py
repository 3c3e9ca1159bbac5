"""
Test helpers: a mock HTTP router, a recording callback, and pumps for the
main-thread QueueContext.
"""

import asyncio
import json
import threading
import time

import httpx

from httpbridge.contexts import QueueContext


async def route(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/ok":
        return httpx.Response(200, text="hello", headers={"X-Trace": "abc"})
    if path == "/created":
        return httpx.Response(201, text="made")
    if path == "/missing":
        return httpx.Response(404, text="nope")
    if path == "/teapot":
        return httpx.Response(418, text="short and stout")
    if path == "/broken":
        return httpx.Response(500, text="")
    if path == "/echo":
        return httpx.Response(200, json={
            "method": request.method,
            "headers": dict(request.headers),
            "body": request.content.decode("utf-8"),
        })
    if path == "/boom":
        raise httpx.ConnectError("name resolution failed", request=request)
    if path == "/slow":
        await asyncio.sleep(float(request.url.params.get("delay", "2")))
        return httpx.Response(200, text="late")
    return httpx.Response(404)


class Collector:
    """Callback that records every outcome and the thread it ran on."""

    def __init__(self):
        self.outcomes = []
        self.threads = []

    def __call__(self, outcome):
        self.outcomes.append(outcome)
        self.threads.append(threading.get_ident())

    @property
    def only(self):
        assert len(self.outcomes) == 1
        return self.outcomes[0]


def pump(context: QueueContext, until, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while not until() and time.monotonic() < deadline:
        context.run_pending(timeout=0.05)


def settle(context: QueueContext, seconds: float = 0.3) -> None:
    """Keep pumping for a while so late duplicate deliveries would show up."""
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        context.run_pending(timeout=0.05)


def echoed(outcome) -> dict:
    return json.loads(outcome.body)
