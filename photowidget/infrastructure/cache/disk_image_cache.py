"""Concrete implementation of the two-level image cache.

L1 is an in-memory map from key to cached file path with TTL and a size
cap. L2 is a `diskcache.Cache` that keeps every image as its own file and
evicts by size limit, so a cache hit always resolves to a real path.
"""

import asyncio
import io
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import diskcache as dc

from photowidget.domain.interfaces.cache import ImageCache
from photowidget.domain.models.common import CacheKey, LocalPath
from photowidget.domain.models.errors import InvalidateError

logger = logging.getLogger(__name__)

DEFAULT_L1_MAX_ITEMS = 64
DEFAULT_L1_TTL_SECONDS = 15 * 60
DEFAULT_SIZE_LIMIT_BYTES = 250 * 1024 * 1024
# Seconds diskcache waits on its SQLite lock before raising dc.Timeout
DISK_TIMEOUT_SECONDS = 1

VALID_LEVELS = ('l1', 'l2', 'all')


@dataclass
class CacheEntry:
    """L1 entry: where the file lives and when we stop trusting that."""
    path: LocalPath
    expiry_time: float


class DiskImageCache(ImageCache):
    """Image cache backed by diskcache, fronted by an in-memory path map."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        size_limit: int = DEFAULT_SIZE_LIMIT_BYTES,
        l1_max_items: int = DEFAULT_L1_MAX_ITEMS,
        l1_ttl: int = DEFAULT_L1_TTL_SECONDS,
        expire: Optional[float] = None,
    ):
        """Initializes the cache.

        Args:
            cache_dir: Directory of the L2 disk cache (created if missing).
            size_limit: L2 size limit in bytes; older entries are evicted past it.
            l1_max_items: Maximum number of paths kept in memory.
            l1_ttl: Seconds an L1 entry is trusted before re-checking L2.
            expire: Optional L2 expiry in seconds for new entries.
        """
        self.cache_dir = Path(cache_dir)
        self.disk_cache = dc.Cache(
            str(self.cache_dir),
            size_limit=size_limit,
            timeout=DISK_TIMEOUT_SECONDS,
        )
        self.expire = expire
        self.l1_cache: Dict[CacheKey, CacheEntry] = {}
        self.l1_max_items = l1_max_items
        self.l1_ttl = l1_ttl
        logger.info(
            f"DiskImageCache initialized. L1(ttl={l1_ttl}s, max={l1_max_items}), "
            f"L2(dir={self.disk_cache.directory}, size_limit={size_limit})"
        )

    # --- L1 helpers ---

    def _prune_l1(self) -> None:
        """Removes expired items from L1 and evicts the oldest if over limit."""
        now = time.time()
        expired_keys = [k for k, v in self.l1_cache.items() if now > v.expiry_time]
        for k in expired_keys:
            del self.l1_cache[k]

        # Insertion order doubles as age
        while len(self.l1_cache) > self.l1_max_items:
            oldest_key = next(iter(self.l1_cache))
            del self.l1_cache[oldest_key]

    def _remember(self, key: CacheKey, path: LocalPath) -> None:
        self.l1_cache.pop(key, None)
        self.l1_cache[key] = CacheEntry(path=path, expiry_time=time.time() + self.l1_ttl)
        self._prune_l1()

    # --- L2 helpers (blocking, run in a worker thread) ---

    def _l2_path(self, key: CacheKey) -> Optional[LocalPath]:
        handle = self.disk_cache.get(key, default=None, read=True)
        if handle is None:
            return None
        if isinstance(handle, (bytes, str)):
            # Stored inline in SQLite rather than as a file; no path to hand out.
            logger.warning(f"L2 entry for key {key} is not file-backed; ignoring it.")
            return None
        with handle:
            return LocalPath(handle.name)

    def _l2_put(self, key: CacheKey, data: bytes) -> None:
        # read=True forces diskcache to write the value to its own file
        self.disk_cache.set(key, io.BytesIO(data), expire=self.expire, read=True)

    # --- ImageCache Interface Implementation ---

    async def get_path(self, key: CacheKey, level: str = 'all') -> Optional[LocalPath]:
        """Returns the cached file path for key, checking L1 then L2."""
        if level in ('l1', 'all'):
            self._prune_l1()
            entry = self.l1_cache.get(key)
            if entry and os.path.exists(entry.path):
                logger.debug(f"L1 cache hit for key: {key}")
                return entry.path
            if entry:
                # File evicted from L2 underneath us
                del self.l1_cache[key]

        if level in ('l2', 'all'):
            path = await asyncio.to_thread(self._l2_path, key)
            if path is not None:
                logger.debug(f"L2 cache hit for key: {key}, file={path}")
                self._remember(key, path)
                return path

        logger.debug(f"Cache miss for key: {key} across checked levels: {level}")
        return None

    async def put(self, key: CacheKey, data: bytes) -> None:
        """Stores image bytes in L2; L1 is filled on the next lookup."""
        await asyncio.to_thread(self._l2_put, key, data)
        self.l1_cache.pop(key, None)
        logger.debug(f"Stored {len(data)} bytes in L2 cache: key={key}")

    async def invalidate(self, key: CacheKey, level: str = 'all') -> None:
        """Deletes the entry for key from the specified level(s)."""
        if level in ('l1', 'all'):
            if self.l1_cache.pop(key, None) is not None:
                logger.debug(f"Deleted item from L1 cache: key={key}")

        if level in ('l2', 'all'):
            try:
                removed = await asyncio.to_thread(self.disk_cache.delete, key)
            except (dc.Timeout, OSError) as e:
                raise InvalidateError(key, e) from e
            if removed:
                logger.debug(f"Deleted item from L2 cache: key={key}")

    async def clear(self, level: str = 'all') -> None:
        """Clears all items from the specified cache level(s)."""
        if level in ('l1', 'all'):
            self.l1_cache.clear()
            logger.info("Cleared L1 (in-memory) cache.")

        if level in ('l2', 'all'):
            removed = await asyncio.to_thread(self.disk_cache.clear)
            logger.info(f"Cleared L2 (disk) cache at {self.disk_cache.directory}: {removed} entries removed.")

    def close(self) -> None:
        self.disk_cache.close()
