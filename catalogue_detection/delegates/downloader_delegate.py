# catalogue_detection/delegates/downloader_delegate.py
import logging
from typing import Optional

import httpx

from ..config import BrowserSettings
from ..models import RenderedPage

logger = logging.getLogger(__name__)


class DownloaderDelegate:
    """
    Fetches raw HTML over plain HTTP, without running any JavaScript.
    Cheaper than a browser and good enough for server-rendered sites; client-side
    rendered pages will come back mostly empty.
    """
    def __init__(self, settings: BrowserSettings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self.client = httpx.AsyncClient(
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=True,
            timeout=self.settings.timeout_ms / 1000,
            transport=self._transport,
        )
        logger.debug("DownloaderDelegate httpx.AsyncClient initialized.")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client:
            await self.client.aclose()
            self.client = None
            logger.debug("DownloaderDelegate httpx.AsyncClient closed.")

    async def render_page(self, url: str) -> Optional[RenderedPage]:
        """Downloads ``url`` and wraps the response body as a page snapshot. None on any HTTP/network error."""
        if not self.client:
            logger.error("HTTP client not initialized. Cannot download %s.", url)
            return None

        try:
            logger.info("Downloading: %s", url)
            response = await self.client.get(url)
            response.raise_for_status()
            logger.debug("Downloaded %s (%d bytes)", response.url, len(response.content))
            return RenderedPage(url=str(response.url), html=response.text)
        except httpx.HTTPStatusError as e:
            logger.error("HTTP error downloading %s: %s", url, e)
        except httpx.RequestError as e:
            logger.error("Network error downloading %s: %s", url, e)
        except httpx.InvalidURL as e:
            logger.error("Invalid URL %s: %s", url, e)
        return None
