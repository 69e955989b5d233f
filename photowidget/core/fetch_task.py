"""Fetch-and-cache task.

One run resolves the resource key for a requested size, makes sure the
image is in the local cache (dropping the old copy first when forced),
publishes the cached path into widget state and tells consumers to redraw.
Failures are classified for the scheduler; the task never sleeps or
retries by itself.
"""

import logging

from photowidget.domain.interfaces.fetcher import ImageFetcher
from photowidget.domain.interfaces.state_store import WidgetStateStore
from photowidget.domain.models.common import (
    IMAGE_PATH_FIELD,
    SOURCE_FIELD,
    SOURCE_URL_FIELD,
    LocalPath,
    ResourceKey,
    WidgetImageState,
)
from photowidget.domain.models.errors import CacheMiss, InvalidRequestError
from photowidget.domain.models.work import FetchRequest, Outcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_SOURCE_NAME = "Picsum Photos"
DEFAULT_SOURCE_URL = "https://picsum.photos/"


class FetchAndCacheTask:
    """Fetches an image into the cache and publishes its path to widget state."""

    def __init__(
        self,
        fetcher: ImageFetcher,
        state_store: WidgetStateStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        source_name: str = DEFAULT_SOURCE_NAME,
        source_url: str = DEFAULT_SOURCE_URL,
    ):
        """Initializes the task.

        Args:
            fetcher: Cache-backed fetcher used to load the image.
            state_store: Store that receives the image fields on success.
            max_attempts: Attempt number from which failures are permanent.
            source_name: Attribution written next to the image path.
            source_url: Attribution link written next to the image path.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.fetcher = fetcher
        self.state_store = state_store
        self.max_attempts = max_attempts
        self.source_name = source_name
        self.source_url = source_url

    async def run(self, request: FetchRequest, run_attempt_count: int) -> Outcome:
        """Runs one attempt for request.

        Args:
            request: The size and force flag to fetch for.
            run_attempt_count: 1-based number of this attempt.

        Returns:
            SUCCEEDED on success; on failure RETRYABLE while the attempt
            number is below max_attempts, PERMANENT from then on.
        """
        try:
            path = await self._load_image(request)
            await self._update_widgets(request.resource_key, path)
            return Outcome.SUCCEEDED
        except InvalidRequestError as e:
            logger.error(f"Rejecting malformed request {request}: {e}")
            return Outcome.PERMANENT
        except Exception as e:
            logger.error(
                f"Error while loading image {request.resource_key} "
                f"(attempt {run_attempt_count}/{self.max_attempts}): {e}",
                exc_info=True,
            )
            return self.classify_failure(run_attempt_count)

    def classify_failure(self, run_attempt_count: int) -> Outcome:
        if run_attempt_count < self.max_attempts:
            return Outcome.RETRYABLE
        return Outcome.PERMANENT

    async def _load_image(self, request: FetchRequest) -> LocalPath:
        """Ensures the image for request is cached and returns its path."""
        key = request.resource_key
        if request.force:
            try:
                await self.fetcher.invalidate(key)
            except Exception as e:
                logger.warning(f"Could not invalidate cached image {key}, fetching anyway: {e}")

        path = await self.fetcher.fetch_and_cache(key)
        if path is None:
            raise CacheMiss(key)
        return path

    async def _update_widgets(self, key: ResourceKey, path: LocalPath) -> None:
        fields = WidgetImageState(**{
            IMAGE_PATH_FIELD: path,
            SOURCE_FIELD: self.source_name,
            SOURCE_URL_FIELD: self.source_url,
        })
        await self.state_store.write_state(key, fields)
        await self.state_store.refresh_all()
        logger.info(f"Widget state updated for {key}: {path}")
