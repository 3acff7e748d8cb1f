"""Shared fixtures for driver tests."""

from typing import Callable, Iterator, List

import pytest

from fakeserver import FakeServer, Handler


@pytest.fixture
def fake_server() -> Iterator[Callable[[Handler], FakeServer]]:
    """Start a fake server with the given handler; all are stopped after the test."""
    servers: List[FakeServer] = []

    def start(handler: Handler) -> FakeServer:
        server = FakeServer(handler).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.close()
