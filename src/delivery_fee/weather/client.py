"""HTTP client for the weather observation feed."""

import logging
from typing import Optional

import httpx

from delivery_fee.config import WEATHER_FEED_URL, USER_AGENT, FETCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class WeatherFeedClient:
    """Async client for fetching the raw observation XML document."""

    def __init__(
        self,
        feed_url: str = WEATHER_FEED_URL,
        user_agent: str = USER_AGENT,
        timeout: Optional[float] = FETCH_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the feed client.

        Args:
            feed_url: URL of the observation feed
            user_agent: User-Agent header for feed requests
            timeout: Request timeout in seconds, None for no timeout
            transport: Optional httpx transport (used to stub the feed)
        """
        self.feed_url = feed_url
        self.user_agent = user_agent
        self.client = httpx.AsyncClient(
            headers={"User-Agent": self.user_agent},
            timeout=timeout,
            transport=transport
        )

    async def get_observations_document(self) -> bytes:
        """Fetch the current observation document.

        Returns:
            Raw XML bytes of the feed, decoded later per its XML declaration

        Raises:
            httpx.HTTPError: If the request fails or returns a non-2xx status
        """
        logger.info(f"Fetching weather observations from {self.feed_url}")

        try:
            response = await self.client.get(self.feed_url)
            response.raise_for_status()

            logger.info(f"Fetched observation document ({len(response.content)} bytes)")
            return response.content

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from weather feed: {e.response.status_code} - {e.response.text[:200]}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Request error to weather feed: {e}")
            raise

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
