from __future__ import annotations

"""
In-process TTL cache for ranked results, keyed by (base_item_id, limit).

Entries are written once and never re-validated: a hit returns exactly what
was stored until it expires. Concurrent writers for the same key simply
overwrite each other (last write wins).
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

from loguru import logger

from .config import DEFAULT_CACHE_TTL
from .pipeline_types import CandidateScore

CacheKey = Tuple[int, int]


@dataclass(frozen=True)
class CacheEntry:
    results: Tuple[CandidateScore, ...]
    expires_at: float


class ResultCache:
    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = float(default_ttl)
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, base_item_id: int, limit: int) -> Optional[Tuple[CandidateScore, ...]]:
        key = (int(base_item_id), int(limit))
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                logger.debug("Cache entry {} expired", key)
                return None
            return entry.results

    def set(
        self,
        base_item_id: int,
        limit: int,
        results: Sequence[CandidateScore],
        ttl: Optional[float] = None,
    ) -> Tuple[CandidateScore, ...]:
        """Store ``results`` and return the immutable tuple that hits will see."""
        ttl = self.default_ttl if ttl is None else float(ttl)
        key = (int(base_item_id), int(limit))
        stored = tuple(results)
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = CacheEntry(results=stored, expires_at=now + ttl)
        return stored

    def _purge_expired(self, now: float) -> None:
        stale = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in stale:
            del self._entries[k]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
