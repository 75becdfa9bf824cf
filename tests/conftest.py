"""
Shared fixtures: an httpx client backed by a scripted MockTransport, and
sleep patched out of the retry loop.
"""

from unittest.mock import patch

import httpx
import pytest


class Recorder:
    """Records every request sent through a MockTransport."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def mock_client():
    """Return a factory: handler -> (httpx.Client, Recorder)."""
    clients = []

    def factory(handler):
        recorder = Recorder(handler)
        client = httpx.Client(transport=httpx.MockTransport(recorder))
        clients.append(client)
        return client, recorder

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def no_sleep():
    """Patch the retry loop's sleep and expose the mock."""
    with patch("repo_parity_guard.http_client.time.sleep") as mock_sleep:
        yield mock_sleep
