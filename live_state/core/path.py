"""
Canonical form of paths in the remote tree.

A canonical path has a single leading `/`, segments separated by a single
`/` and no trailing `/`. The root is `/`.
"""

from __future__ import annotations

from typing import Iterable, Sequence

__all__ = [
    "Segment",
    "normalize_path",
    "join_path",
    "split_path",
    "count_segments",
    "resolve_relative_path",
]

type Segment = str | int
"""
Path segment: a key, or an index into a list.
"""


def normalize_path(path: str) -> str:
    """
    Get canonical form of path. Empty and whitespace-only segments are
    dropped, so an empty path or one consisting of separators normalizes
    to `/`.
    """
    segments = [s for s in path.split("/") if s.strip()]
    return "/" + "/".join(segments)


def join_path(segments: Iterable[Segment]) -> str:
    """
    Join segments into a canonical path. Segments may themselves contain
    separators, e.g. an absolute root path.
    """
    return normalize_path("/".join(str(s) for s in segments))


def split_path(path: str) -> tuple[str, ...]:
    """
    Get segments of path; `()` for root.
    """
    normalized = normalize_path(path)
    if normalized == "/":
        return ()
    return tuple(normalized[1:].split("/"))


def count_segments(path: str) -> int:
    """
    Get number of segments in path; 0 for root.
    """
    return len(split_path(path))


def resolve_relative_path(
    location: Sequence[str], root: str | None
) -> tuple[str, ...]:
    """
    Derive path of a node relative to the synchronized root, given its
    absolute location as a sequence of keys from the top of the tree.

    Drops as many leading segments as the root has; the result is only
    meaningful if the location is within the root, which callers ensure by
    discarding notifications from listeners created for another root.

    :param location: Absolute segments of node
    :param root: Synchronized root, or `None` for the top of the tree
    """
    depth = count_segments(root) if root is not None else 0
    return tuple(location[depth:])
