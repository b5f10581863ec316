"""In-process, time-bounded cache of assembled folder responses.

Keyed by folder id, holding ``FullFolderResponse`` objects. One instance is
created in the application lifespan and shared by every request through a
FastAPI dependency.

Consistency model
-----------------
The database stays authoritative. Every write path in this process
invalidates the affected entries *after* its commit, so a write followed by
a read in the same process never sees stale data. Writes made by another
process (a second worker, a manual SQL fix) are not seen until the entry
expires: the TTL is the staleness window, traded against re-reading deep
folders on every navigation. If the process dies between commit and
invalidation nothing is lost; the in-memory entry dies with it.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..schemas.folder import FullFolderResponse

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    size: int
    ttl_seconds: float


class TreeCache:
    """Thread-safe TTL map ``folder_id -> FullFolderResponse``.

    Responses are copied on the way in and out, so a caller editing one
    cannot change what later hits return. All operations take a single lock
    held only for dictionary access and copying. The cache never performs I/O.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[FullFolderResponse, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, folder_id: str) -> Optional[FullFolderResponse]:
        """Return a copy of the cached response, or None on a miss. Expired entries are evicted."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(folder_id)
            if entry is None:
                self._misses += 1
                return None
            response, expires_at = entry
            if now >= expires_at:
                del self._entries[folder_id]
                self._misses += 1
                return None
            self._hits += 1
            return response.model_copy(deep=True)

    def put(self, folder_id: str, response: FullFolderResponse) -> None:
        stored = response.model_copy(deep=True)
        expires_at = self._clock() + self._ttl
        with self._lock:
            self._entries[folder_id] = (stored, expires_at)

    def invalidate(self, folder_id: Optional[str]) -> None:
        """Drop one entry. Missing ids and None are ignored."""
        if folder_id is None:
            return
        with self._lock:
            self._entries.pop(folder_id, None)

    def invalidate_many(self, folder_ids: Iterable[Optional[str]]) -> None:
        ids = [fid for fid in folder_ids if fid is not None]
        with self._lock:
            for fid in ids:
                self._entries.pop(fid, None)
        if ids:
            logger.debug("Invalidated %d folder cache entries", len(ids))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            stale = [fid for fid, (_, expires_at) in self._entries.items() if now >= expires_at]
            for fid in stale:
                del self._entries[fid]
        return len(stale)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                ttl_seconds=self._ttl,
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, folder_id: str) -> bool:
        """True if an unexpired entry exists. Does not count as a hit or miss."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(folder_id)
            return entry is not None and now < entry[1]
