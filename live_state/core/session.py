"""
Implementation of session functionality.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from logging import Logger
from typing import Any, Callable

from .batch import WriteBatcher
from .differ import ChangeKind, DiffRecord, diff
from .exceptions import ShapeChangeError
from .listeners import ListenerRegistry
from .path import normalize_path
from .reconciler import Reconciler
from .store import BaseStore
from .types import UNKNOWN, SessionState, Shape

__all__ = [
    "SyncSession",
    "Updater",
]

type Updater = Callable[[Any], Any]
"""
Pure function taking the current mirror and returning the new one.
"""

type Transition = Callable[[Any], Any]


class SyncSession:
    """
    Keeps a local mirror of a subtree of a store synchronized in both
    directions.

    Once a root path is set, the subtree is read from the store and the
    mirror seeded with it; listeners are then installed for every node so
    remote changes are merged into the mirror as they arrive. Local changes
    are made with {obj}`SyncSession.update` and written to the store as the
    minimal set of paths which differ.

    The mirror is replaced on every change rather than modified, so a value
    obtained from {obj}`SyncSession.value` is a consistent snapshot.

    ```{note}
    If the root has no data when it's set, the session stays in
    {obj}`SessionState.INITIALIZING` until the root is changed: structure
    is only discovered through listeners seeded from an initial read.
    ```
    """

    _store: BaseStore
    """
    Store being mirrored.
    """

    _path: str | None = None
    """
    Synchronized root, or `None` if inactive.
    """

    _state: SessionState = SessionState.INACTIVE
    """
    Current state.
    """

    _mirror: Any = UNKNOWN
    """
    Current snapshot of mirror.
    """

    _generation: int = 0
    """
    Incremented on each activation and deactivation; notifications and
    transitions from a previous generation are discarded.
    """

    _listeners: ListenerRegistry
    """
    Listeners installed for current root.
    """

    _reconciler: Reconciler
    """
    Handler of remote notifications.
    """

    _batcher: WriteBatcher
    """
    Writer of local changes.
    """

    _queue: deque[tuple[Transition, int]]
    """
    Pending transitions of mirror along with their generation.
    """

    _draining: bool = False
    """
    Whether transitions are currently being applied.
    """

    _observers: list[Callable[[Any], None]]
    """
    Callbacks invoked with each new snapshot of mirror.
    """

    _logger: Logger
    """
    Logger to use.
    """

    def __init__(
        self,
        store: BaseStore,
        path: str | None = None,
        *,
        logger: Logger | None = None,
    ):
        """
        :param store: Store to mirror
        :param path: Root path of subtree to mirror, or `None` to start inactive
        :param logger: Logger to use, or `None` to use default logger
        """
        self._logger = logger or logging.getLogger()
        self._store = store
        self._listeners = ListenerRegistry(store, logger=self._logger)
        self._reconciler = Reconciler(self)
        self._batcher = WriteBatcher(store, logger=self._logger)
        self._queue = deque()
        self._observers = list()

        self.path = path

    def __str__(self):
        return f"SyncSession(path={self._path}, state={self._state.name})"

    def __enter__(self):
        self._logger.debug(f"Entering context: {self}")
        return self

    def __exit__(self, exc_type, exc_val, traceback):
        if exc_type:
            self._logger.error(f"Exiting context with error: {self}")
        else:
            self._logger.debug(f"Exiting context: {self}")

        self.close()

    @property
    def path(self) -> str | None:
        """
        Synchronized root. Setting a different path tears down all listeners
        and initializes the session from the new path; setting `None`
        deactivates it.
        """
        return self._path

    @path.setter
    def path(self, path: str | None):
        if path is not None:
            path = normalize_path(path)

        if path == self._path:
            return

        self._deactivate()
        self._path = path

        if path is not None:
            self._activate()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def value(self) -> Any:
        """
        Current snapshot of mirror, or {obj}`UNKNOWN` if not initialized.
        """
        return self._mirror

    @property
    def listeners(self) -> ListenerRegistry:
        """
        Listeners installed for the current root.
        """
        return self._listeners

    @property
    def store(self) -> BaseStore:
        return self._store

    def update(self, updater: Updater):
        """
        Update mirror and write the differences to the store.

        The updater receives a copy of the current mirror, so it may modify
        and return it. Updates requested while the session isn't active are
        discarded.

        :param updater: Function taking current mirror and returning new mirror
        :raises ShapeChangeError: If the update would replace a scalar with a collection or vice versa; nothing is written in this case
        """
        generation = self._generation

        def transition(mirror: Any) -> Any:
            if self._state is not SessionState.ACTIVE:
                self._logger.debug(f"Discarding update of inactive {self}")
                return mirror

            assert self._path is not None

            mirror_new = updater(copy.deepcopy(mirror))
            records = diff(mirror, mirror_new)

            self._check_shapes(records)
            self._batcher.dispatch(self._path, records)

            return mirror_new

        self._dispatch(transition, generation)

    def on_change(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Register callback to be invoked with each new snapshot of mirror.

        :returns: Function to deregister callback
        """
        self._observers.append(callback)

        def remove():
            if callback in self._observers:
                self._observers.remove(callback)

        return remove

    def close(self):
        """
        Deactivate session, removing all listeners.
        """
        self.path = None

    def _activate(self):
        """
        Read root from store and seed mirror if it has data.
        """
        assert self._path is not None

        self._generation += 1
        generation = self._generation
        self._set_state(SessionState.INITIALIZING)

        snapshot = self._store.read(self._path)

        if not snapshot.exists:
            self._logger.debug(
                f"No data at '{self._path}', not initializing mirror"
            )
            return

        def seed(_: Any) -> Any:
            self._set_state(SessionState.ACTIVE)
            self._reconciler.observe(snapshot)
            return snapshot.value

        self._dispatch(seed, generation)

    def _deactivate(self):
        """
        Remove all listeners and reset mirror.
        """
        if self._path is None:
            return

        self._generation += 1
        self._listeners.clear()
        self._set_state(SessionState.INACTIVE)

        if self._mirror is not UNKNOWN:
            self._mirror = UNKNOWN
            self._notify_observers()

    def _dispatch(self, transition: Transition, generation: int):
        """
        Apply transition to mirror, serialized with all other transitions:
        if invoked while a transition is being applied, it's queued and
        applied afterward.
        """
        self._queue.append((transition, generation))

        if self._draining:
            return

        self._draining = True
        try:
            while self._queue:
                transition, generation = self._queue.popleft()

                if generation != self._generation:
                    self._logger.debug("Discarding stale transition")
                    continue

                mirror = transition(self._mirror)

                # replayed notifications often leave mirror unchanged
                if mirror is self._mirror or not self._is_changed(mirror):
                    continue

                self._mirror = mirror
                self._notify_observers()
        finally:
            self._draining = False

    def _check_shapes(self, records: list[DiffRecord]):
        """
        Ensure no record changes the shape of a value having a listener.
        """
        for record in records:
            if record.kind is ChangeKind.REMOVE:
                continue

            listener = self._listeners.get(record.path_key)
            if listener is None:
                continue

            shape = Shape.of(record.value)
            if shape is not listener.shape:
                raise ShapeChangeError(record.path_key, listener.shape, shape)

    def _is_changed(self, mirror: Any) -> bool:
        if self._mirror is UNKNOWN or mirror is UNKNOWN:
            return True
        return len(diff(self._mirror, mirror)) > 0

    def _is_active(self, generation: int) -> bool:
        """
        Check whether session is active with the given generation.
        """
        return (
            self._state is SessionState.ACTIVE
            and generation == self._generation
        )

    def _set_state(self, state: SessionState):
        if state is not self._state:
            self._logger.debug(
                f"Session '{self._path}': {self._state.name} -> {state.name}"
            )
            self._state = state

    def _notify_observers(self):
        for callback in list(self._observers):
            callback(self._mirror)
