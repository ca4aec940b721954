from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import Shape

__all__ = [
    "ShapeChangeError",
    "StoreError",
]


class ShapeChangeError(Exception):
    """
    Raised when a path with an active listener changes between holding a
    scalar and holding a collection. Listeners are installed according to
    the shape first observed at a path, so such a change can't be
    reconciled.
    """

    path_key: str
    expected: Shape
    actual: Shape

    def __init__(self, path_key: str, expected: Shape, actual: Shape):
        self.path_key = path_key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Path '{path_key}' changed from {expected.name.lower()} to {actual.name.lower()} while subscribed"
        )


class StoreError(Exception):
    """
    Raised by a store when a write can't be applied, e.g. a batch with
    overlapping paths.
    """
