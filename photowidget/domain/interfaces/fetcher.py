"""Interface for the cache-backed image fetcher."""

import abc
from typing import Optional

from photowidget.domain.models.common import LocalPath, ResourceKey


class ImageFetcher(abc.ABC):
    """Loads remote images into a local cache."""

    @abc.abstractmethod
    async def invalidate(self, resource_key: ResourceKey) -> None:
        """Drops any cached copy of the resource. Best-effort.

        Raises:
            InvalidateError: If removal failed.
        """
        pass

    @abc.abstractmethod
    async def fetch_and_cache(self, resource_key: ResourceKey) -> Optional[LocalPath]:
        """Ensures the resource is cached, downloading it when absent.

        Returns:
            The local path of the cached file, or None when the fetch
            succeeded but the cache cannot resolve a path for it.

        Raises:
            FetchError: If the resource could not be fetched or stored.
        """
        pass
