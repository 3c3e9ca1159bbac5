"""
Pytest configuration and shared fixtures for httpbridge tests.
"""

import sys
from pathlib import Path

import httpx
import pytest

# Make helpers importable regardless of how pytest is invoked
_TESTS_ROOT = Path(__file__).resolve().parent
if str(_TESTS_ROOT) not in sys.path:
    sys.path.insert(0, str(_TESTS_ROOT))

from helpers import Collector, route  # noqa: E402

from httpbridge.config import Config  # noqa: E402
from httpbridge.contexts import QueueContext  # noqa: E402
from httpbridge.engine import HttpEngine  # noqa: E402
from httpbridge.transport import HttpTransport  # noqa: E402


@pytest.fixture
def collector():
    return Collector()


@pytest.fixture
def make_engine():
    """Factory for engines whose transport answers from helpers.route."""
    transports = []

    def factory(handler=route, environ=None, transport_cls=HttpTransport, start=True):
        config = Config(environ=environ or {})
        transport = transport_cls.from_config(config, http_transport=httpx.MockTransport(handler))
        transports.append(transport)
        engine = HttpEngine(QueueContext(), transport=transport, config=config)
        return engine.start() if start else engine

    yield factory

    for transport in transports:
        transport.close()
