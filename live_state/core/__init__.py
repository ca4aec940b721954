"""
This module implements the mirroring core: path handling, listener
bookkeeping, reconciliation of remote notifications, diffing of local
changes and the session tying them together.
"""

from pyrollup import rollup

from . import (
    batch,
    differ,
    exceptions,
    listeners,
    path,
    reconciler,
    session,
    store,
    types,
)
from .batch import *  # noqa
from .differ import *  # noqa
from .exceptions import *  # noqa
from .listeners import *  # noqa
from .path import *  # noqa
from .reconciler import *  # noqa
from .session import *  # noqa
from .store import *  # noqa
from .types import *  # noqa

__all__ = rollup(
    session,
    store,
    listeners,
    reconciler,
    differ,
    batch,
    path,
    types,
    exceptions,
)

__canonical_children__ = [
    "session",
    "store",
    "listeners",
    "reconciler",
    "differ",
    "batch",
    "path",
    "types",
    "exceptions",
]
