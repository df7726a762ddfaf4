"""Caller-owned memoisation of rating tables."""

from __future__ import annotations

import collections
import hashlib
import logging
from typing import Callable, Iterable, List, Sequence, Tuple

from .models import GameResult, TeamRating

logger = logging.getLogger(__name__)

Fingerprint = Tuple[str, ...]


def season_fingerprint(seasons: Iterable[str]) -> Fingerprint:
    """Order-insensitive key for a set of seasons."""

    return tuple(sorted({str(season).strip() for season in seasons}))


def results_fingerprint(results: Sequence[GameResult]) -> Fingerprint:
    """Key derived from the ordered game ids, dates and scores.

    Two histories share a fingerprint only if they replay identically.
    """

    digest = hashlib.sha1()
    for result in results:
        digest.update(
            f"{result.id}|{result.date.isoformat()}|{result.home_goals}|"
            f"{result.away_goals}|{int(result.decided_in_extra_period)};".encode()
        )
    return ("results", str(len(results)), digest.hexdigest())


class RatingCache:
    """LRU cache of rating tables keyed by a game-set fingerprint.

    The engine never caches on its own; hosts that answer many queries over
    the same history hold one of these and pass it to the predictor.
    """

    def __init__(self, max_entries: int = 8) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._entries: collections.OrderedDict[Fingerprint, List[TeamRating]] = (
            collections.OrderedDict()
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: Fingerprint) -> List[TeamRating] | None:
        table = self._entries.get(key)
        if table is None:
            return None
        self._entries.move_to_end(key)
        return list(table)

    def set(self, key: Fingerprint, table: Sequence[TeamRating]) -> None:
        self._entries[key] = list(table)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted rating table %s", evicted)

    def get_or_compute(
        self, key: Fingerprint, factory: Callable[[], Sequence[TeamRating]]
    ) -> List[TeamRating]:
        cached = self.get(key)
        if cached is not None:
            logger.debug("Rating cache hit for %s", key)
            return cached
        logger.debug("Rating cache miss for %s", key)
        table = list(factory())
        self.set(key, table)
        return list(table)

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["Fingerprint", "RatingCache", "results_fingerprint", "season_fingerprint"]
