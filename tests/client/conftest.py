"""Shared fixtures for offline context tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from hyperoffline.client.api import ResourceContext
from hyperoffline.client.events import EventBus
from hyperoffline.client.netstatus import Netstatus
from hyperoffline.client.offline import OfflineContext
from hyperoffline.client.resource import Resource
from hyperoffline.client.store import LocalStore
from hyperoffline.client.sync import OfflineSync
from hyperoffline.core.types import ConnectivityStatus

RESOURCE_URI = "http://example.com/notes/1"


@pytest.fixture
def store(tmp_path: Path) -> Generator[LocalStore, None, None]:
    """Create an open LocalStore."""
    s = LocalStore(tmp_path / "offline.db")
    s.open()
    yield s
    s.close()


@pytest.fixture
def netstatus() -> Netstatus:
    """Connectivity source, online by default."""
    return Netstatus(ConnectivityStatus.ONLINE)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def sync(
    tmp_path: Path, netstatus: Netstatus, event_bus: EventBus
) -> Generator[OfflineSync, None, None]:
    """Create an OfflineSync engine on a temporary store."""
    engine = OfflineSync(
        LocalStore(tmp_path / "offline.db"),
        ResourceContext(),
        netstatus=netstatus,
        event_bus=event_bus,
    )
    yield engine
    engine.close()


@pytest.fixture
def context(sync: OfflineSync) -> OfflineContext:
    """Offline context wrapping the engine's resource context."""
    return sync.context_for()


@pytest.fixture
def resource(context: OfflineContext) -> Resource:
    """A network resource with some state."""
    r = context.get(RESOURCE_URI)
    r.update({"name": "John"}, {"self": {"href": RESOURCE_URI}})
    return r
