# catalogue_detection/delegates/web_scraper_delegate.py
import logging
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

from .. import config
from ..config import BrowserSettings
from ..models import RenderedPage

logger = logging.getLogger(__name__)


class WebScraperDelegate:
    """
    Renders pages in headless Chromium and hands back HTML snapshots.

    One delegate is one browser session: use it as an async context manager so the
    browser is closed on every exit path. Launch failures propagate; a page that
    fails to load only returns None.
    """
    def __init__(self, settings: BrowserSettings):
        self.settings = settings
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self):
        logger.debug("Starting Playwright and launching browser (executable: %s)...", self.settings.executable_path or "bundled")
        self._playwright = await async_playwright().start()
        try:
            launch_kwargs = {"headless": self.settings.headless, "args": config.BROWSER_ARGS}
            if self.settings.executable_path:
                launch_kwargs["executable_path"] = self.settings.executable_path
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)
            self._context = await self._browser.new_context(
                user_agent=self.settings.user_agent,
                viewport=self.settings.viewport or config.VIEWPORT,
            )
        except Exception:
            # __aexit__ is not called when __aenter__ raises, so release what we started.
            await self._close()
            raise
        logger.debug("Playwright browser launched and context created.")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self._close()

    async def _close(self):
        logger.debug("Closing browser, context, and stopping Playwright...")
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.debug("Playwright resources released.")

    async def _dismiss_consent(self, page) -> None:
        """Clicks the first cookie-consent button we recognise, if any."""
        for selector in config.CONSENT_SELECTORS:
            try:
                button = await page.query_selector(selector)
                if button and await button.is_visible():
                    await button.click(timeout=2000)
                    logger.debug("Clicked consent button: %s", selector)
                    await page.wait_for_timeout(1000)
                    return
            except Exception as e:
                logger.debug("Consent selector %s not clickable: %s", selector, e)

    async def render_page(self, url: str) -> Optional[RenderedPage]:
        """
        Navigates to ``url``, waits for the network to go idle and returns the final URL
        and rendered HTML. Returns None if the navigation fails or times out.
        """
        if not self._context:
            logger.error("Browser context not initialized. Cannot render %s.", url)
            return None

        page = None
        try:
            page = await self._context.new_page()
            logger.info("Navigating to: %s", url)
            await page.goto(url, wait_until="domcontentloaded", timeout=self.settings.timeout_ms)
            await page.wait_for_load_state("networkidle", timeout=self.settings.timeout_ms)
            logger.debug("Network idle state reached for %s.", url)

            await self._dismiss_consent(page)
            # Scroll half-way down to trigger lazy-loaded listings.
            await page.evaluate("window.scrollTo(0, document.body ? document.body.scrollHeight / 2 : 0)")
            if self.settings.settle_ms:
                await page.wait_for_timeout(self.settings.settle_ms)

            rendered = RenderedPage(url=page.url, html=await page.content())
            logger.info("Successfully rendered %s (%d chars).", rendered.url, len(rendered.html))
            return rendered
        except Exception as e:
            logger.error("Failed to render page %s: %s", url, e)
            return None
        finally:
            if page is not None:
                await page.close()
