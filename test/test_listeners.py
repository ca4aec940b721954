from typing import Any

from pytest import fixture, raises

from live_state import *


@fixture
def registry() -> ListenerRegistry:
    store = MemoryStore({"app": {"count": 1, "items": {"a": {"x": 1}}}})
    return ListenerRegistry(store)


def _noop(_: Snapshot):
    pass


def _create(registry: ListenerRegistry, path_key: str, is_collection: bool):
    return registry.create(
        path_key,
        is_collection,
        path=join_path(["/app", path_key]),
        on_value_changed=_noop,
        on_child_added=_noop,
        on_child_removed=_noop,
    )


def test_create_idempotent(registry: ListenerRegistry):
    store = registry._store
    assert isinstance(store, MemoryStore)

    listener = _create(registry, "/count", False)
    assert isinstance(listener, ScalarListener)
    assert listener.shape is Shape.SCALAR
    assert store.subscription_count == 1

    # creating again returns the same listener
    assert _create(registry, "/count", False) is listener
    assert len(registry) == 1
    assert store.subscription_count == 1


def test_create_collection(registry: ListenerRegistry):
    store = registry._store
    assert isinstance(store, MemoryStore)

    added: list[str] = []
    listener = registry.create(
        "/items",
        True,
        path="/app/items",
        on_child_added=lambda s: added.append(s.path),
        on_child_removed=_noop,
    )

    assert isinstance(listener, CollectionListener)
    assert registry.has("/items")
    assert "/items" in registry
    assert store.subscription_count == 2

    # existing child replayed on creation
    assert added == ["/app/items/a"]


def test_remove(registry: ListenerRegistry):
    store = registry._store
    assert isinstance(store, MemoryStore)

    _create(registry, "/items", True)
    _create(registry, "/count", False)
    assert store.subscription_count == 4

    registry.remove("/items")
    assert not registry.has("/items")
    assert registry.get("/items") is None
    assert store.subscription_count == 1

    # removing again is a no-op
    registry.remove("/items")
    registry.remove("/missing")
    assert list(registry) == ["/count"]


def test_remove_tree(registry: ListenerRegistry):
    _create(registry, "/items", True)
    _create(registry, "/items/a", True)
    _create(registry, "/items/a/x", False)
    _create(registry, "/items2", False)
    _create(registry, "/count", False)

    registry.remove_tree("/items")

    # sibling with common prefix is kept
    assert sorted(registry) == ["/count", "/items2"]

    registry.remove_tree("/")
    assert len(registry) == 0


def test_clear(registry: ListenerRegistry):
    store = registry._store
    assert isinstance(store, MemoryStore)

    _create(registry, "/items", True)
    _create(registry, "/count", False)

    registry.clear()
    assert len(registry) == 0
    assert store.subscription_count == 0


def test_shape_change(registry: ListenerRegistry):
    _create(registry, "/count", False)

    with raises(ShapeChangeError) as exc_info:
        _create(registry, "/count", True)

    assert exc_info.value.path_key == "/count"
    assert exc_info.value.expected is Shape.SCALAR
    assert exc_info.value.actual is Shape.COLLECTION


def test_collection_value(registry: ListenerRegistry):
    store = registry._store
    assert isinstance(store, MemoryStore)

    values: list[Any] = []
    listener = registry.create(
        "/items",
        True,
        path="/app/items",
        on_value_changed=lambda s: values.append(s.value),
        on_child_added=_noop,
        on_child_removed=_noop,
    )
    assert isinstance(listener, CollectionListener)
    assert store.subscription_count == 3

    # collection replaced by scalar
    store.write_batch({"/app/items": 5})
    assert values == [5]

    registry.remove("/items")
    assert store.subscription_count == 0
