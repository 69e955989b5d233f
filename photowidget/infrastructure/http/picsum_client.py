"""Picsum Photos HTTP Client Implementation.

Hides httpx behind a small async client that downloads the image bytes for
a resource key and translates transport and status failures into FetchError.
"""

import logging
from typing import Optional

import httpx

from photowidget.domain.models.common import ResourceKey, ResourceUrl
from photowidget.domain.models.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://picsum.photos"
DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "photowidget/0.1"


class PicsumClient:
    """Downloads randomly chosen images of a given size from Picsum Photos."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initializes the client.

        Args:
            base_url: Service root; the size path is appended to it.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        logger.info(f"PicsumClient initialized for {self.base_url} (timeout={timeout}s)")

    def resource_url(self, resource_key: ResourceKey) -> ResourceUrl:
        """Builds `<base-url>/<W>/<H>` for a resource key."""
        return ResourceUrl(f"{self.base_url}/{resource_key}")

    async def download(self, resource_key: ResourceKey) -> bytes:
        """Downloads the image for resource_key.

        Picsum answers with a redirect to the concrete image, so redirects
        are followed.

        Raises:
            FetchError: On transport errors, non-2xx responses or empty bodies.
        """
        url = self.resource_url(resource_key)
        logger.debug(f"Requesting {url}")
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error while requesting {url}: {type(e).__name__}: {e}")
            raise FetchError(resource_key, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise FetchError(resource_key, f"HTTP {response.status_code}", status_code=response.status_code)
        if not response.content:
            raise FetchError(resource_key, "empty response body", status_code=response.status_code)

        logger.debug(f"Downloaded {len(response.content)} bytes from {response.url}")
        return response.content
