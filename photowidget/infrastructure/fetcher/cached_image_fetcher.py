"""Cache-backed image fetcher.

Combines the Picsum client with the image cache: a cached image is served
from disk, a missing one is downloaded and stored first. Cache entries are
keyed by the full resource URL.
"""

import logging
from typing import Optional

import diskcache as dc

from photowidget.domain.interfaces.cache import ImageCache
from photowidget.domain.interfaces.fetcher import ImageFetcher
from photowidget.domain.models.common import CacheKey, LocalPath, ResourceKey
from photowidget.domain.models.errors import FetchError, InvalidateError
from photowidget.infrastructure.http.picsum_client import PicsumClient

logger = logging.getLogger(__name__)


class CachedImageFetcher(ImageFetcher):
    """ImageFetcher that downloads through PicsumClient into an ImageCache."""

    def __init__(self, client: PicsumClient, cache: ImageCache):
        self.client = client
        self.cache = cache

    def _cache_key(self, resource_key: ResourceKey) -> CacheKey:
        return CacheKey(self.client.resource_url(resource_key))

    async def invalidate(self, resource_key: ResourceKey) -> None:
        key = self._cache_key(resource_key)
        try:
            await self.cache.invalidate(key)
        except InvalidateError:
            raise
        except Exception as e:
            raise InvalidateError(resource_key, e) from e
        logger.debug(f"Invalidated cached image for {resource_key}")

    async def fetch_and_cache(self, resource_key: ResourceKey) -> Optional[LocalPath]:
        key = self._cache_key(resource_key)
        path = await self.cache.get_path(key)
        if path is not None:
            logger.info(f"Serving {resource_key} from cache: {path}")
            return path

        data = await self.client.download(resource_key)
        try:
            await self.cache.put(key, data)
        except (OSError, dc.Timeout) as e:
            raise FetchError(resource_key, f"failed to store in cache: {e}") from e

        path = await self.cache.get_path(key)
        logger.info(f"Fetched {resource_key} ({len(data)} bytes) into cache: {path}")
        return path
