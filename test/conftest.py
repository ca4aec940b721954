import logging
from typing import Any, Generator, Mapping

from pytest import Config, FixtureRequest, fixture

from live_state import MemoryStore, SyncSession

logging.basicConfig(level=logging.WARNING)

ROOT = "/app"
"""
Default synchronized root of session fixture.
"""

MARKERS = [
    "tree",
    "root",
]


def pytest_configure(config: Config) -> None:
    for marker in MARKERS:
        config.addinivalue_line("markers", marker)


class RecordingStore(MemoryStore):
    """
    Store which keeps each batch written to it.
    """

    batches: list[dict[str, Any]]

    def __init__(self, tree: Any = None):
        super().__init__(tree)
        self.batches = []

    def write_batch(self, updates: Mapping[str, Any]):
        self.batches.append(dict(updates))
        super().write_batch(updates)


@fixture
def store(request: FixtureRequest) -> RecordingStore:
    """
    Create a store, populated with the tree given as:

    @mark.tree({"app": {"count": 1}})
    """
    marker = request.node.get_closest_marker("tree")
    tree = marker.args[0] if marker else None

    return RecordingStore(tree)


@fixture
def session(
    request: FixtureRequest, store: RecordingStore
) -> Generator[SyncSession, None, None]:
    """
    Create a session mirroring the store fixture at `ROOT`, or at the path
    given as:

    @mark.root("/other")
    """
    marker = request.node.get_closest_marker("root")
    path = marker.args[0] if marker else ROOT

    session = SyncSession(store, path)

    yield session

    session.close()
    assert len(session.listeners) == 0
