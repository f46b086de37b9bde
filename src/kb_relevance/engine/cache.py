"""TTL cache for ranked search pages, keyed by query fingerprint."""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from kb_relevance.errors import CacheUnavailableError
from kb_relevance.models.search import RankedPage, SearchQuery

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 1024


def fingerprint(query: SearchQuery) -> str:
    """Deterministic hash of normalized query text, owner and filters."""
    payload = {
        "owner": query.owner_id,
        "query": query.text,
        "filters": query.filters.model_dump(mode="json"),
    }
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    """A stored page with its insertion time on the cache clock."""

    fingerprint: str
    owner_id: str
    page: RankedPage
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        """True once more than ``ttl`` seconds have passed since insertion."""
        return now - self.inserted_at > self.ttl


@runtime_checkable
class CacheBackend(Protocol):
    """Anything the scorer can read pages from and write pages to."""

    def get(self, key: str) -> RankedPage | None:
        """Return the live page for ``key`` or None."""
        ...

    def put(self, key: str, owner_id: str, page: RankedPage) -> None:
        """Store ``page`` under ``key``, replacing any previous entry."""
        ...


class ResultCache:
    """In-process TTL cache, safe for concurrent readers and writers.

    Writes overwrite (last writer wins). Once full, expired entries go first,
    then the oldest insertion. The clock is injectable so expiry can be tested
    without waiting. A failing clock surfaces as ``CacheUnavailableError``.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty cache."""
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> RankedPage | None:
        """Return the cached page, dropping it if expired."""
        now = self._now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                return None
            return entry.page

    def put(self, key: str, owner_id: str, page: RankedPage) -> None:
        """Insert or overwrite an entry.

        When the cache is full, expired entries are dropped first; the oldest
        live insertion is evicted only if that frees no room.
        """
        now = self._now()
        entry = CacheEntry(
            fingerprint=key,
            owner_id=owner_id,
            page=page,
            inserted_at=now,
            ttl=self.ttl,
        )
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_entries:
                self._drop_expired(now)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate_owner(self, owner_id: str) -> int:
        """Drop every entry belonging to ``owner_id``. Returns the count removed."""
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.owner_id == owner_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cached pages for owner %s", len(stale), owner_id)
        return len(stale)

    def purge_expired(self) -> int:
        """Remove expired entries. Returns the count removed."""
        now = self._now()
        with self._lock:
            return self._drop_expired(now)

    def _drop_expired(self, now: float) -> int:
        # Caller holds the lock
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Dropped %d expired cached pages", len(expired))
        return len(expired)

    def _now(self) -> float:
        try:
            return self._clock()
        except Exception as e:
            raise CacheUnavailableError("Cache clock failed") from e

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
