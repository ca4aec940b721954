from __future__ import annotations

from enum import Enum, auto
from typing import Any

from rich.markup import escape

__all__ = [
    "SessionState",
    "Shape",
    "UNKNOWN",
]


class SessionState(Enum):
    """
    State of a {obj}`SyncSession`. Maintained automatically as the
    synchronized root is set, fetched and cleared.
    """

    INACTIVE = auto()
    """No synchronized root"""

    INITIALIZING = auto()
    """Root set, mirror not yet populated from the store"""

    ACTIVE = auto()
    """Mirror populated and listeners live"""

    def __str__(self) -> str:
        color_map = {
            SessionState.INACTIVE: "cyan",
            SessionState.INITIALIZING: "bright_yellow",
            SessionState.ACTIVE: "bright_green",
        }

        start = escape("[")
        end = escape("]")
        return f"{start}[{color_map[self]}]{self.name}[/{color_map[self]}]{end}"


class Shape(Enum):
    """
    Shape of a value as stored remotely, which determines the kind of
    listener installed for it.
    """

    SCALAR = auto()
    """Leaf value, observed by value changes"""

    COLLECTION = auto()
    """Node with children, observed by children being added or removed"""

    @classmethod
    def of(cls, value: Any) -> Shape:
        """
        Classify a value: a collection if it has any children, otherwise
        a scalar.
        """
        if isinstance(value, (dict, list)) and len(value) > 0:
            return cls.COLLECTION
        return cls.SCALAR


class _Unknown:
    """
    Value of a mirror which has not been populated from the store.
    """

    _instance: _Unknown | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


UNKNOWN = _Unknown()
"""
Sentinel value of a mirror with no data yet.
"""
