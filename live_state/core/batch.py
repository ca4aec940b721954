"""
Conversion of diff records to a single multi-path write.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import TYPE_CHECKING, Any, Iterable

from .differ import ChangeKind, DiffRecord
from .path import join_path

if TYPE_CHECKING:
    from .store import BaseStore

__all__ = [
    "WriteBatcher",
    "build_write_batch",
]


def build_write_batch(
    root: str,
    records: Iterable[DiffRecord],
    *,
    logger: Logger | None = None,
) -> dict[str, Any]:
    """
    Get mapping of absolute path to value to write for each record;
    removals are written as `None`.

    A removal of the root itself is skipped with a warning; deleting the
    whole subtree must be done through the store directly.

    :param root: Synchronized root which record paths are relative to
    :param records: Differences between old and new mirror
    """
    logger = logger or logging.getLogger()
    updates: dict[str, Any] = {}

    for record in records:
        if record.kind is ChangeKind.REMOVE and not len(record.path):
            logger.warning(f"Skipping removal of synchronized root '{root}'")
            continue

        path = join_path([root, *record.path])
        updates[path] = (
            None if record.kind is ChangeKind.REMOVE else record.value
        )

    return updates


class WriteBatcher:
    """
    Submits the differences of a local update to the store.
    """

    _store: BaseStore
    _logger: Logger

    def __init__(self, store: BaseStore, *, logger: Logger | None = None):
        self._store = store
        self._logger = logger or logging.getLogger()

    def dispatch(
        self, root: str, records: Iterable[DiffRecord]
    ) -> dict[str, Any]:
        """
        Write records to store as one batch. No write is made if there are
        no records.

        :returns: Updates written
        """
        updates = build_write_batch(root, records, logger=self._logger)

        if not len(updates):
            self._logger.debug("No changes to write")
            return updates

        self._logger.debug(
            f"Writing {len(updates)} changes under '{root}': {list(updates)}"
        )
        self._store.write_batch(updates)

        return updates
