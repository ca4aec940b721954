"""
Bookkeeping of store subscriptions installed for each path of a mirror.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from logging import Logger
from typing import ClassVar, Iterator

from .exceptions import ShapeChangeError
from .store import BaseStore, Callback, Unsubscribe
from .types import Shape

__all__ = [
    "BaseListener",
    "ScalarListener",
    "CollectionListener",
    "ListenerRegistry",
]


class BaseListener(ABC):
    """
    Live subscription(s) tracking one path of a mirror.
    """

    shape: ClassVar[Shape]

    path_key: str

    @abstractmethod
    def unsubscribe(self):
        """
        Cancel all subscriptions held by this listener.
        """
        ...


@dataclass
class ScalarListener(BaseListener):
    """
    Listener for a leaf value, notified when it's replaced.
    """

    shape: ClassVar[Shape] = Shape.SCALAR

    path_key: str
    unsubscribe_value: Unsubscribe

    def unsubscribe(self):
        self.unsubscribe_value()


@dataclass
class CollectionListener(BaseListener):
    """
    Listener for a node with children, notified when a child is added or
    removed. May also be notified of value changes, which is how the node
    being replaced by a scalar is detected.
    """

    shape: ClassVar[Shape] = Shape.COLLECTION

    path_key: str
    unsubscribe_add: Unsubscribe
    unsubscribe_remove: Unsubscribe
    unsubscribe_value: Unsubscribe | None = None

    def unsubscribe(self):
        self.unsubscribe_add()
        self.unsubscribe_remove()
        if self.unsubscribe_value:
            self.unsubscribe_value()


class ListenerRegistry:
    """
    Mapping of canonical relative path to the listener installed for it.
    Ensures at most one listener per path.
    """

    _store: BaseStore
    _listeners: dict[str, BaseListener]
    _logger: Logger

    def __init__(self, store: BaseStore, *, logger: Logger | None = None):
        self._store = store
        self._listeners = dict()
        self._logger = logger or logging.getLogger()

    def __str__(self):
        return f"ListenerRegistry: {list(self._listeners)}"

    def __contains__(self, path_key: str) -> bool:
        return self.has(path_key)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._listeners))

    def __len__(self) -> int:
        return len(self._listeners)

    def has(self, path_key: str) -> bool:
        return path_key in self._listeners

    def get(self, path_key: str) -> BaseListener | None:
        return self._listeners.get(path_key)

    def create(
        self,
        path_key: str,
        is_collection: bool,
        *,
        path: str,
        on_value_changed: Callback | None = None,
        on_child_added: Callback | None = None,
        on_child_removed: Callback | None = None,
    ) -> BaseListener:
        """
        Install listener for a path unless one exists, in which case the
        existing one is returned. Child notifications can lead to the same
        subtree being discovered more than once, so this is expected.

        :param path_key: Canonical path relative to synchronized root
        :param is_collection: Whether to listen for children rather than value
        :param path: Absolute path in store
        :param on_value_changed: Callback for scalar listener; optional for collection listener
        :param on_child_added: Callback for collection listener; invoked for existing children before returning
        :param on_child_removed: Callback for collection listener
        :raises ShapeChangeError: If a listener of the other shape exists
        """
        shape = Shape.COLLECTION if is_collection else Shape.SCALAR

        if existing := self._listeners.get(path_key):
            if existing.shape is not shape:
                raise ShapeChangeError(path_key, existing.shape, shape)
            return existing

        listener: BaseListener
        if is_collection:
            assert on_child_added and on_child_removed
            listener = CollectionListener(
                path_key,
                self._store.subscribe_child_added(path, on_child_added),
                self._store.subscribe_child_removed(path, on_child_removed),
                (
                    self._store.subscribe_value_changed(path, on_value_changed)
                    if on_value_changed
                    else None
                ),
            )
        else:
            assert on_value_changed
            listener = ScalarListener(
                path_key,
                self._store.subscribe_value_changed(path, on_value_changed),
            )

        self._listeners[path_key] = listener
        self._logger.debug(
            f"Created {shape.name.lower()} listener: {path_key} -> {path}"
        )

        return listener

    def remove(self, path_key: str):
        """
        Unsubscribe and delete listener for path; no-op if there is none.
        """
        listener = self._listeners.pop(path_key, None)
        if listener is None:
            return

        listener.unsubscribe()
        self._logger.debug(f"Removed listener: {path_key}")

    def remove_tree(self, path_key: str):
        """
        Remove listener for path and all paths beneath it.
        """
        prefix = path_key.rstrip("/") + "/"
        for key in list(self._listeners):
            if key == path_key or key.startswith(prefix):
                self.remove(key)

    def clear(self):
        """
        Remove all listeners.
        """
        for key in list(self._listeners):
            self.remove(key)
