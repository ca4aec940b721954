"""
Structural comparison of two snapshots of a mirror.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterable

from rich.markup import escape

from .path import Segment, join_path
from .types import UNKNOWN

__all__ = [
    "ChangeKind",
    "DiffRecord",
    "diff",
]


class ChangeKind(Enum):
    """
    Kind of difference found at a path.
    """

    CREATE = auto()
    """Present only in new snapshot"""

    CHANGE = auto()
    """Present in both with different values"""

    REMOVE = auto()
    """Present only in old snapshot"""

    def __str__(self) -> str:
        color_map = {
            ChangeKind.CREATE: "bright_green",
            ChangeKind.CHANGE: "bright_yellow",
            ChangeKind.REMOVE: "red",
        }

        start = escape("[")
        end = escape("]")
        return f"{start}[{color_map[self]}]{self.name}[/{color_map[self]}]{end}"


@dataclass(frozen=True)
class DiffRecord:
    """
    One difference between two snapshots.
    """

    path: tuple[Segment, ...]
    """Path relative to the compared values"""

    kind: ChangeKind

    value: Any = None
    """New value; `None` for {obj}`ChangeKind.REMOVE`"""

    @property
    def path_key(self) -> str:
        return join_path(self.path)


def diff(previous: Any, next: Any) -> list[DiffRecord]:
    """
    Compare two snapshots and get the differences, depth-first.

    Dicts and lists are both compared as mappings, using the index as key
    for lists, as they're stored that way remotely. At each level, keys of
    `previous` are visited in order, yielding removals and changes; keys
    only in `next` then yield creations in their order.

    Values which aren't containers are compared directly; a difference at
    the top level is reported with an empty path.
    """
    records: list[DiffRecord] = []

    if _is_container(previous) and _is_container(next):
        _diff_containers(previous, next, (), records)
    elif _is_missing(previous) and _is_missing(next):
        pass
    elif _is_missing(previous):
        records.append(DiffRecord((), ChangeKind.CREATE, next))
    elif _is_missing(next):
        records.append(DiffRecord((), ChangeKind.REMOVE))
    elif not _is_same(previous, next):
        records.append(DiffRecord((), ChangeKind.CHANGE, next))

    return records


def _diff_containers(
    previous: dict | list,
    next: dict | list,
    path: tuple[Segment, ...],
    records: list[DiffRecord],
):
    next_index = {str(key): value for key, value in _items(next)}
    previous_keys: set[str] = set()

    for key, old in _items(previous):
        previous_keys.add(str(key))
        child_path = path + (key,)

        if str(key) not in next_index:
            records.append(DiffRecord(child_path, ChangeKind.REMOVE))
            continue

        new = next_index[str(key)]

        if _is_container(old) and _is_container(new):
            _diff_containers(old, new, child_path, records)
        elif not _is_same(old, new):
            records.append(DiffRecord(child_path, ChangeKind.CHANGE, new))

    for key, new in _items(next):
        if str(key) not in previous_keys:
            records.append(DiffRecord(path + (key,), ChangeKind.CREATE, new))


def _items(container: dict | list) -> Iterable[tuple[Segment, Any]]:
    if isinstance(container, list):
        return enumerate(container)
    return container.items()


def _is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _is_missing(value: Any) -> bool:
    return value is None or value is UNKNOWN


def _is_same(a: Any, b: Any) -> bool:
    # e.g. True and 1 compare equal, but are stored differently
    return type(a) is type(b) and a == b
