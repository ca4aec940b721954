from pathlib import Path

from pytest import raises

from live_state import *


def test_read():
    store = MemoryStore({"app": {"count": 1, "items": {"a": 1}}})

    snapshot = store.read("/app")
    assert snapshot.exists
    assert snapshot.has_children
    assert snapshot.location == ("app",)
    assert snapshot.key == "app"
    assert snapshot.value == {"count": 1, "items": {"a": 1}}

    snapshot = store.read("app/count")
    assert snapshot.exists
    assert not snapshot.has_children
    assert snapshot.path == "/app/count"
    assert snapshot.value == 1

    # path below scalar
    snapshot = store.read("/app/count/x")
    assert not snapshot.exists

    snapshot = store.read("/missing")
    assert not snapshot.exists
    assert snapshot.value is None

    # top of tree
    assert store.read("/").key is None


def test_read_copy():
    store = MemoryStore({"app": {"items": {"a": 1}}})

    snapshot = store.read("/app")
    snapshot.value["items"]["a"] = 2

    assert store.read("/app/items/a").value == 1


def test_normalize():
    store = MemoryStore()

    store.write_batch(
        {
            "/app/tags": ["x", "y"],
            "/app/empty": {},
            "/app/nested": {"a": {}, "b": None, "c": 1},
        }
    )

    # lists stored keyed by index; empty containers not stored
    assert store.tree == {
        "app": {
            "tags": {"0": "x", "1": "y"},
            "nested": {"c": 1},
        }
    }


def test_write_prune():
    store = MemoryStore({"app": {"items": {"a": 1}, "count": 1}})

    store.write_batch({"/app/items/a": None})
    assert store.tree == {"app": {"count": 1}}

    store.write_batch({"/app/count": None})
    assert store.tree is None
    assert not store.read("/app").exists


def test_write_below_scalar():
    store = MemoryStore({"app": {"x": 1}})

    store.write_batch({"/app/x/y": 2})
    assert store.tree == {"app": {"x": {"y": 2}}}


def test_write_overlapping():
    store = MemoryStore({"app": {"x": 1}})

    with raises(StoreError):
        store.write_batch({"/app": {"x": 2}, "/app/x": 3})

    # nothing written
    assert store.tree == {"app": {"x": 1}}


def test_child_added_replay():
    store = MemoryStore({"app": {"a": 1, "b": {"c": 2}}})
    received: list[Snapshot] = []

    store.subscribe_child_added("/app", received.append)

    assert [s.key for s in received] == ["a", "b"]
    assert received[1].location == ("app", "b")
    assert received[1].value == {"c": 2}


def test_notifications():
    store = MemoryStore({"app": {"a": 1, "b": 2}})
    events: list[tuple[str, str, object]] = []

    store.subscribe_child_added(
        "/app", lambda s: events.append(("added", s.path, s.value))
    )
    store.subscribe_child_removed(
        "/app", lambda s: events.append(("removed", s.path, s.value))
    )
    store.subscribe_value_changed(
        "/app/b", lambda s: events.append(("value", s.path, s.value))
    )
    events.clear()

    store.write_batch({"/app/a": None, "/app/b": 3, "/app/c": 4})

    # removals, then additions, then value changes
    assert events == [
        ("removed", "/app/a", 1),
        ("added", "/app/c", 4),
        ("value", "/app/b", 3),
    ]

    # no notification for unchanged value
    events.clear()
    store.write_batch({"/app/b": 3})
    assert events == []


def test_unsubscribe():
    store = MemoryStore({"app": {"a": 1}})
    events: list[Snapshot] = []

    unsubscribe = store.subscribe_value_changed("/app/a", events.append)
    assert store.subscription_count == 1

    unsubscribe()
    unsubscribe()
    assert store.subscription_count == 0

    store.write_batch({"/app/a": 2})
    assert events == []


def test_unsubscribe_during_notify():
    store = MemoryStore({"app": {"a": 1, "b": 1}})
    events: list[str] = []

    unsubscribe_b = store.subscribe_value_changed(
        "/app/b", lambda s: events.append(s.path)
    )

    def on_a(snapshot: Snapshot):
        events.append(snapshot.path)
        unsubscribe_b()

    store.subscribe_value_changed("/app/a", on_a)

    # swap order so /app/a's listener runs first
    store._subscriptions.reverse()

    store.write_batch({"/app/a": 2, "/app/b": 2})
    assert events == ["/app/a"]


def test_json(tmp_path: Path):
    file = tmp_path / "store.json"
    store = MemoryStore({"app": {"count": 1}})

    store.dump_json(file)
    loaded = MemoryStore.load_json(file)

    assert loaded.tree == {"app": {"count": 1}}

    # empty store dumps as empty object
    MemoryStore().dump_json(file)
    assert MemoryStore.load_json(file).tree is None
