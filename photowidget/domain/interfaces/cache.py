"""Interface for the image cache.

Defines the contract for a content-addressable cache that stores image
bytes by key and hands back the local file holding them. Eviction is the
implementation's business.
"""

import abc
from typing import Optional

from photowidget.domain.models.common import CacheKey, LocalPath


class ImageCache(abc.ABC):
    """Abstract Base Class for image caching operations."""

    @abc.abstractmethod
    async def get_path(self, key: CacheKey, level: str = 'all') -> Optional[LocalPath]:
        """Returns the local path of the cached image for key.

        Args:
            key: The cache key to look up.
            level: The cache level(s) to check ('l1', 'l2', 'all').

        Returns:
            The path of the cached file, or None on a miss.
        """
        pass

    @abc.abstractmethod
    async def put(self, key: CacheKey, data: bytes) -> None:
        """Stores image bytes under key, replacing any previous entry."""
        pass

    @abc.abstractmethod
    async def invalidate(self, key: CacheKey, level: str = 'all') -> None:
        """Removes the entry for key from the specified level(s).

        Raises:
            InvalidateError: If the entry exists but could not be removed.
        """
        pass

    @abc.abstractmethod
    async def clear(self, level: str = 'all') -> None:
        """Clears all entries from the specified cache level(s)."""
        pass
