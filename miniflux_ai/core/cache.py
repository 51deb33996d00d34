"""
In-memory record of entries already judged by the oracle.

The cache lives for the lifetime of the process: it is unbounded and is not
persisted, so entries are re-evaluated after a restart. Writing it to local
storage would avoid that and remains an open improvement.
"""

from __future__ import annotations

from typing import Iterable, Iterator


class DecisionCache:
    """Append-only set of evaluated entry ids, kept in insertion order.

    Ids are recorded regardless of the decision outcome. The pipeline adds a
    tick's ids only after every classification of that tick has completed.
    """

    def __init__(self, entry_ids: Iterable[int] = ()):
        self._ids: dict[int, None] = {}
        self.add_many(entry_ids)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self._ids)

    def add(self, entry_id: int) -> bool:
        """Record ``entry_id``; return False if it was already present."""
        if entry_id in self._ids:
            return False
        self._ids[entry_id] = None
        return True

    def add_many(self, entry_ids: Iterable[int]) -> int:
        """Record several ids and return how many were new."""
        return sum(1 for entry_id in entry_ids if self.add(entry_id))

    def snapshot(self) -> list[int]:
        return list(self._ids)
