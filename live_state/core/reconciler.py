"""
Merging of remote notifications into a mirror.

Each notification produces a new snapshot of the mirror: the previous
snapshot is deep-copied and the copy modified, so readers holding the
previous snapshot never observe a change.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Sequence

from .exceptions import ShapeChangeError
from .path import Segment, join_path, resolve_relative_path, split_path
from .store import Snapshot
from .types import Shape

if TYPE_CHECKING:
    from .session import SyncSession

__all__ = [
    "Reconciler",
    "apply_value_changed",
    "apply_child_added",
    "apply_child_removed",
]


def apply_value_changed(mirror: Any, path: Sequence[Segment], value: Any) -> Any:
    """
    Get new mirror with value set at path, creating any missing parent
    containers.

    Missing parents are expected: a child's notification may be applied
    before its parent's.
    """
    if not len(path):
        return copy.deepcopy(value)

    result = _fit(_as_container(copy.deepcopy(mirror)), path[0])

    node = result
    for key, next_key in zip(path[:-1], path[1:]):
        child = _get_child(node, key)
        container = _fit(_as_container(child), next_key)

        if container is not child:
            _set_child(node, key, container)

        node = container

    _set_child(node, path[-1], copy.deepcopy(value))

    return result


def apply_child_added(
    mirror: Any, path: Sequence[Segment], key: Segment, value: Any
) -> Any:
    """
    Get new mirror with child added to the container at path, creating any
    missing parent containers.
    """
    return apply_value_changed(mirror, (*path, key), value)


def apply_child_removed(
    mirror: Any, path: Sequence[Segment], key: Segment
) -> Any:
    """
    Get new mirror with child removed from the container at path. If the
    container doesn't exist there's nothing to remove.
    """
    result = copy.deepcopy(mirror)

    parent = _walk(result, path)
    if parent is not None:
        _remove_child(parent, key)

    return result


class Reconciler:
    """
    Handles notifications from store listeners on behalf of a session:
    applies them to the session's mirror and installs or removes listeners
    as substructure appears or disappears.
    """

    _session: SyncSession

    def __init__(self, session: SyncSession):
        self._session = session

    def observe(self, snapshot: Snapshot):
        """
        Install listener for node if it has data and doesn't have one yet.

        Collection listeners receive a child-added notification for each
        existing child as they're installed, which in turn observes each
        child; this way a whole subtree gets listeners.
        """
        if not snapshot.exists:
            return

        session = self._session
        path = resolve_relative_path(snapshot.location, session.path)
        generation = session._generation

        # collections only check for being replaced by a scalar
        on_value_changed = (
            self._on_collection_changed
            if snapshot.has_children
            else self._on_value_changed
        )

        session._listeners.create(
            join_path(path),
            snapshot.has_children,
            path=snapshot.path,
            on_value_changed=lambda s: on_value_changed(s, generation),
            on_child_added=lambda s: self._on_child_added(s, generation),
            on_child_removed=lambda s: self._on_child_removed(s, generation),
        )

    def _on_value_changed(self, snapshot: Snapshot, generation: int):
        if not self._check_current(snapshot, generation):
            return

        path = self._get_path(snapshot)

        if snapshot.has_children:
            raise ShapeChangeError(
                join_path(path), Shape.SCALAR, Shape.COLLECTION
            )

        self._session._dispatch(
            lambda mirror: apply_value_changed(mirror, path, snapshot.value),
            generation,
        )

    def _on_collection_changed(self, snapshot: Snapshot, generation: int):
        if not self._check_current(snapshot, generation):
            return

        # changes to children are handled by their own listeners
        if snapshot.has_children:
            return

        raise ShapeChangeError(
            join_path(self._get_path(snapshot)), Shape.COLLECTION, Shape.SCALAR
        )

    def _on_child_added(self, snapshot: Snapshot, generation: int):
        if not self._check_current(snapshot, generation):
            return

        path = self._get_path(snapshot)
        assert len(path)

        def transition(mirror: Any) -> Any:
            mirror = apply_child_added(
                mirror, path[:-1], path[-1], snapshot.value
            )

            # synchronize the new child as well
            self.observe(snapshot)

            return mirror

        self._session._dispatch(transition, generation)

    def _on_child_removed(self, snapshot: Snapshot, generation: int):
        if not self._check_current(snapshot, generation):
            return

        path = self._get_path(snapshot)
        assert len(path)

        def transition(mirror: Any) -> Any:
            mirror = apply_child_removed(mirror, path[:-1], path[-1])

            # stop receiving notifications for the removed subtree
            self._session._listeners.remove_tree(join_path(path))

            return mirror

        self._session._dispatch(transition, generation)

    def _check_current(self, snapshot: Snapshot, generation: int) -> bool:
        """
        Check whether notification was received by a listener of the
        current activation; otherwise it's stale and gets discarded.
        """
        if self._session._is_active(generation):
            return True

        self._session._logger.debug(
            f"Discarding stale notification: {snapshot.path}"
        )
        return False

    def _get_path(self, snapshot: Snapshot) -> tuple[str, ...]:
        """
        Get path of notification relative to current root.
        """
        root = self._session.path
        assert root is not None
        assert snapshot.location[: len(split_path(root))] == split_path(root)

        return resolve_relative_path(snapshot.location, root)


def _as_container(value: Any) -> Any:
    return value if isinstance(value, (dict, list)) else {}


def _index(key: Segment) -> int | None:
    """
    Get key as list index, or `None` if it isn't one.
    """
    if isinstance(key, int):
        return key
    return int(key) if key.isdigit() else None


def _fit(node: dict | list, key: Segment) -> dict | list:
    """
    Get container able to hold the given key. A list can only be extended
    by one item at a time, so for any other key it's converted to the
    mapping keyed by index the store holds it as.
    """
    if isinstance(node, list):
        index = _index(key)
        if index is None or index > len(node):
            return {str(i): v for i, v in enumerate(node) if v is not None}
    return node


def _walk(node: Any, path: Sequence[Segment]) -> Any:
    """
    Get container at path, or `None` if it doesn't exist.
    """
    for key in path:
        if not isinstance(node, (dict, list)):
            return None
        node = _get_child(node, key)

    return node if isinstance(node, (dict, list)) else None


def _get_child(node: dict | list, key: Segment) -> Any:
    if isinstance(node, list):
        index = _index(key)
        if index is None or index >= len(node):
            return None
        return node[index]
    return node.get(str(key))


def _set_child(node: dict | list, key: Segment, value: Any):
    if isinstance(node, list):
        index = _index(key)
        assert index is not None and index <= len(node)

        if index < len(node):
            node[index] = value
        else:
            node.append(value)
    else:
        node[str(key)] = value


def _remove_child(node: dict | list, key: Segment):
    if isinstance(node, list):
        index = _index(key)
        if index is None or index >= len(node):
            return
        if index == len(node) - 1:
            node.pop()
        else:
            # keep indices of following items
            node[index] = None
    else:
        node.pop(str(key), None)
