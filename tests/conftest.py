"""Pytest fixtures shared across the suite.

All tests are network-isolated - socket connections are blocked by default.
"""

from __future__ import annotations

import socket
from datetime import UTC, datetime

import pytest

from tests.fakes import InMemoryFileSystem, InMemorySnapshotStore
from tests.support.errors import NetworkIsolationError

# =============================================================================
# Network Isolation - Block all socket connections in tests
# =============================================================================


def _blocked_socket_connect(self: socket.socket, *args: object, **kwargs: object) -> None:
    """Raise an error if any test tries to make a real network connection."""
    _ = (self, kwargs)
    raise NetworkIsolationError(str(args))


@pytest.fixture(autouse=True)
def block_network_access(monkeypatch: pytest.MonkeyPatch) -> None:
    """Block all network access in tests.

    Tests that need the classifier service should inject a FakeSession.
    """
    monkeypatch.setattr(socket.socket, "connect", _blocked_socket_connect)


@pytest.fixture
def now() -> datetime:
    """A fixed Wednesday in ISO week 2026-W42."""
    return datetime(2026, 10, 14, 12, 0, tzinfo=UTC)


@pytest.fixture
def in_memory_fs() -> InMemoryFileSystem:
    """Provide an in-memory filesystem for tests."""
    return InMemoryFileSystem()


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    """Provide an in-memory snapshot store for tests."""
    return InMemorySnapshotStore()
