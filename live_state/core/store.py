"""
Interface to a remote tree store, and an in-memory implementation of it.
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, auto
from logging import Logger
from pathlib import Path
from typing import Any, Callable, Mapping

from .exceptions import StoreError
from .path import join_path, split_path

__all__ = [
    "Snapshot",
    "Callback",
    "Unsubscribe",
    "BaseStore",
    "MemoryStore",
]

type Callback = Callable[[Snapshot], None]
"""
Invoked with a snapshot of the node a notification concerns.
"""

type Unsubscribe = Callable[[], None]
"""
Cancels a subscription.
"""


@dataclass(frozen=True)
class Snapshot:
    """
    Value of a node at a point in time, along with its absolute location.
    """

    location: tuple[str, ...]
    """Keys from the top of the tree to this node"""

    value: Any = None
    """Value at node, or `None` if it has no data"""

    @property
    def exists(self) -> bool:
        return self.value is not None

    @property
    def has_children(self) -> bool:
        return isinstance(self.value, (dict, list)) and len(self.value) > 0

    @property
    def key(self) -> str | None:
        """
        Last segment of location, or `None` for the top of the tree.
        """
        return self.location[-1] if self.location else None

    @property
    def path(self) -> str:
        """
        Canonical absolute path.
        """
        return join_path(self.location)


class BaseStore(ABC):
    """
    Client of a hierarchical key-value store supporting path-scoped reads,
    change subscriptions and multi-path writes.
    """

    @abstractmethod
    def read(self, path: str) -> Snapshot:
        """
        Get snapshot of node at path.
        """
        ...

    @abstractmethod
    def subscribe_value_changed(
        self, path: str, callback: Callback
    ) -> Unsubscribe:
        """
        Invoke callback when value at path is replaced.
        """
        ...

    @abstractmethod
    def subscribe_child_added(
        self, path: str, callback: Callback
    ) -> Unsubscribe:
        """
        Invoke callback when a child is added at path. Must invoke callback
        synchronously for each existing child before returning.
        """
        ...

    @abstractmethod
    def subscribe_child_removed(
        self, path: str, callback: Callback
    ) -> Unsubscribe:
        """
        Invoke callback when a child is removed at path.
        """
        ...

    @abstractmethod
    def write_batch(self, updates: Mapping[str, Any]):
        """
        Atomically write each value to its absolute path; `None` deletes
        the node at that path.
        """
        ...


class EventType(Enum):
    """
    Kind of notification a subscription receives.
    """

    CHILD_REMOVED = auto()
    CHILD_ADDED = auto()
    VALUE_CHANGED = auto()


@dataclass(eq=False)
class _Subscription:
    event: EventType
    location: tuple[str, ...]
    callback: Callback
    active: bool = True


class MemoryStore(BaseStore):
    """
    Store keeping its tree in memory, with the semantics of a real-time
    database:

    - Only mappings are stored; lists are written as mappings keyed by index
    - Writing `None` or an empty container deletes a node, and parents left
    without children are pruned
    - Notifications are delivered synchronously once a batch is applied:
    child removals, then child additions, then value changes, each in
    subscription order

    Value listeners are only notified while their node exists; a deleted
    node is reported through its parent's child-removed listeners.
    """

    _tree: Any
    """
    Value at top of tree, or `None` if empty.
    """

    _subscriptions: list[_Subscription]

    _logger: Logger

    def __init__(
        self, tree: Any = None, *, logger: Logger | None = None
    ) -> None:
        self._tree = _normalize_value(tree)
        self._subscriptions = []
        self._logger = logger or logging.getLogger()

    def __str__(self) -> str:
        return f"MemoryStore: subscriptions={len(self._subscriptions)}"

    @classmethod
    def load_json(
        cls, file: Path, *, logger: Logger | None = None
    ) -> MemoryStore:
        """
        Load tree from .json file.
        """
        with file.open() as fh:
            tree = json.load(fh)

        return cls(tree, logger=logger)

    def dump_json(self, file: Path):
        """
        Dump tree to .json file.
        """
        tree = self._tree if self._tree is not None else {}
        file.write_text(json.dumps(tree, indent=2) + "\n")

    @property
    def tree(self) -> Any:
        """
        Copy of entire tree.
        """
        return copy.deepcopy(self._tree)

    @property
    def subscription_count(self) -> int:
        """
        Number of active subscriptions.
        """
        return len(self._subscriptions)

    def read(self, path: str) -> Snapshot:
        location = split_path(path)
        return Snapshot(location, copy.deepcopy(_lookup(self._tree, location)))

    def subscribe_value_changed(
        self, path: str, callback: Callback
    ) -> Unsubscribe:
        return self._subscribe(EventType.VALUE_CHANGED, path, callback)

    def subscribe_child_added(
        self, path: str, callback: Callback
    ) -> Unsubscribe:
        unsubscribe = self._subscribe(EventType.CHILD_ADDED, path, callback)

        # replay existing children
        location = split_path(path)
        node = _lookup(self._tree, location)
        if isinstance(node, dict):
            for key, value in list(node.items()):
                callback(Snapshot(location + (key,), copy.deepcopy(value)))

        return unsubscribe

    def subscribe_child_removed(
        self, path: str, callback: Callback
    ) -> Unsubscribe:
        return self._subscribe(EventType.CHILD_REMOVED, path, callback)

    def write_batch(self, updates: Mapping[str, Any]):
        writes = {
            split_path(path): _normalize_value(value)
            for path, value in updates.items()
        }

        # reject paths which would overwrite each other
        for location in writes:
            for other in writes:
                if other != location and other[: len(location)] == location:
                    raise StoreError(
                        f"Path '{join_path(location)}' is an ancestor of '{join_path(other)}' in the same batch"
                    )

        before = self._tree
        after = before
        for location, value in writes.items():
            after = _assign(after, location, value)

        self._tree = after
        self._logger.debug(f"Wrote {len(writes)} paths: {list(updates)}")

        self._notify(before, after)

    def _subscribe(
        self, event: EventType, path: str, callback: Callback
    ) -> Unsubscribe:
        subscription = _Subscription(event, split_path(path), callback)
        self._subscriptions.append(subscription)

        def unsubscribe():
            if subscription.active:
                subscription.active = False
                self._subscriptions.remove(subscription)

        return unsubscribe

    def _notify(self, before: Any, after: Any):
        """
        Deliver notifications for the difference between two trees.
        """
        # subscriptions created by callbacks will have replayed current
        # state already, so only notify those which existed before
        subscriptions = list(self._subscriptions)

        for event in EventType:
            for subscription in subscriptions:
                if subscription.event is not event:
                    continue

                location = subscription.location
                old = _lookup(before, location)
                new = _lookup(after, location)

                for snapshot in _get_events(event, location, old, new):
                    # may have been cancelled by a previous callback
                    if not subscription.active:
                        break
                    subscription.callback(snapshot)


def _get_events(
    event: EventType, location: tuple[str, ...], old: Any, new: Any
) -> list[Snapshot]:
    """
    Get snapshots to deliver to a subscription of the given type for a node
    changing from `old` to `new`.
    """
    if event is EventType.VALUE_CHANGED:
        if new is not None and new != old:
            return [Snapshot(location, copy.deepcopy(new))]
        return []

    old_children = old if isinstance(old, dict) else {}
    new_children = new if isinstance(new, dict) else {}

    if event is EventType.CHILD_ADDED:
        return [
            Snapshot(location + (key,), copy.deepcopy(value))
            for key, value in new_children.items()
            if key not in old_children
        ]

    return [
        Snapshot(location + (key,), copy.deepcopy(value))
        for key, value in old_children.items()
        if key not in new_children
    ]


def _normalize_value(value: Any) -> Any:
    """
    Convert value to stored representation: lists become mappings keyed by
    index, and empty containers become `None`.
    """
    if isinstance(value, list):
        value = {str(i): v for i, v in enumerate(value)}

    if isinstance(value, dict):
        children = {}
        for key, child in value.items():
            child = _normalize_value(child)
            if child is not None:
                children[str(key)] = child
        return children or None

    return value


def _lookup(tree: Any, location: tuple[str, ...]) -> Any:
    node = tree
    for key in location:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _assign(node: Any, location: tuple[str, ...], value: Any) -> Any:
    """
    Get a new tree with value set at location, copying nodes along the path.
    Existing nodes are never modified.
    """
    if not location:
        return value

    children = dict(node) if isinstance(node, dict) else {}
    key = location[0]

    child = _assign(children.get(key), location[1:], value)
    if child is None:
        children.pop(key, None)
    else:
        children[key] = child

    return children or None
