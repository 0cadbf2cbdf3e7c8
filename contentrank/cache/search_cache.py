"""Bounded FIFO search cache with per-entry TTL.

At most `max_entries` keys are resident. Inserting a new key at capacity
evicts exactly one entry: the oldest by insertion order, regardless of how
often it was read. Expired entries read as misses even before they are purged.

One lock guards the value store and the order index together, so the
capacity check, eviction and insert happen as a single step for concurrent
writers.
"""

from __future__ import annotations

import hashlib
import itertools
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

MAX_ENTRIES = 10
DEFAULT_TTL_SECONDS = 3600
CACHE_PREFIX = "search:"


def make_cache_key(keyword: Optional[str], content_type: Optional[str], page: int, page_size: int) -> str:
    """Canonical key for a search; equivalent queries map to the same key.

    The keyword is matched case-insensitively downstream, so it is folded here.
    JSON-encoding the tuple keeps fields from bleeding into each other; an absent
    filter encodes as null, never as a string a real keyword could equal.
    """
    kw = (keyword or "").strip().lower() or None
    ct = (getattr(content_type, "value", content_type) or "").strip().lower() or None
    signature = json.dumps([kw, ct, int(page), int(page_size)], separators=(",", ":"))
    return CACHE_PREFIX + hashlib.sha256(signature.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    key: str
    payload: str  # JSON-encoded
    inserted_at: int  # logical insertion sequence
    expires_at: float


class BoundedSearchCache:
    def __init__(
        self,
        *,
        max_entries: int = MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}
        # key -> insertion sequence, oldest first
        self._order: "OrderedDict[str, int]" = OrderedDict()
        self._seq = itertools.count()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss key={key}")
                return None
            if entry.expires_at <= self._clock():
                self._remove(key)
                logger.debug(f"Cache expired key={key}")
                return None
            payload = entry.payload
        logger.debug(f"Cache hit key={key}")
        return json.loads(payload)

    def set(self, key: str, payload: Dict[str, Any]) -> None:
        encoded = json.dumps(payload, separators=(",", ":"), default=str)
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            if key in self._entries:
                self._remove(key)
            elif len(self._entries) >= self.max_entries:
                self._evict_oldest()
            entry = CacheEntry(key=key, payload=encoded, inserted_at=next(self._seq), expires_at=now + self.ttl_seconds)
            self._entries[key] = entry
            self._order[key] = entry.inserted_at
            count = len(self._entries)
        logger.debug(f"Cache set key={key} size={len(encoded)} current_count={count}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._order.clear()
        logger.info("Search cache cleared")

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.expires_at > self._clock()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            self._purge_expired(self._clock())
            return {
                "total_queries": len(self._entries),
                "max_queries": self.max_entries,
                "queries": dict(self._order),
            }

    # Callers below must hold self._lock.

    def _remove(self, key: str) -> None:
        self._entries.pop(key, None)
        self._order.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            self._remove(k)

    def _evict_oldest(self) -> None:
        if not self._order:
            return
        oldest, _ = self._order.popitem(last=False)
        self._entries.pop(oldest, None)
        logger.info(f"Evicted oldest cache entry key={oldest}")
