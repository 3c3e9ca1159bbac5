"""
Turns a validated RequestSpec into an httpx.Request ready for the transport.
"""

import httpx

from .models import RequestSpec

DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "HttpBridge/1.0"


def build_request(spec: RequestSpec, timeout: float = DEFAULT_TIMEOUT,
                  user_agent: str = DEFAULT_USER_AGENT) -> httpx.Request:
    """Build the httpx request for ``spec``.

    ``timeout`` is applied to each httpx phase (connect, read, write, pool)
    separately, so a slow trickle of data can run past it. The transport
    bounds the whole exchange at ``timeout`` plus its completion grace.
    """
    headers = httpx.Headers(spec.headers)

    # Caller-supplied User-Agent always wins
    if "user-agent" not in headers:
        headers["User-Agent"] = user_agent

    return httpx.Request(
        spec.method.value.upper(),
        spec.url,
        headers=headers,
        content=spec.body.encode("utf-8") if spec.body else None,
        extensions={"timeout": httpx.Timeout(timeout).as_dict()},
    )


def request_timeout(request: httpx.Request, default: float = DEFAULT_TIMEOUT) -> float:
    """Longest phase timeout attached to a built request."""
    phases = request.extensions.get("timeout") or {}
    values = [v for v in phases.values() if v is not None]
    return max(values) if values else default
