import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from catalogue_detection.config import BROWSER_ARGS, BrowserSettings
from catalogue_detection.delegates import web_scraper_delegate
from catalogue_detection.delegates.web_scraper_delegate import WebScraperDelegate


class FakeButton:
    def __init__(self):
        self.clicked = False

    async def is_visible(self):
        return True

    async def click(self, timeout=None):
        self.clicked = True


class FakePage:
    def __init__(self, final_url="https://pub.example/menu", html="<html><body>Menu</body></html>",
                 goto_error=None, consent_selector=None):
        self.url = final_url
        self.html = html
        self.goto_error = goto_error
        self.consent_selector = consent_selector
        self.consent_button = FakeButton()
        self.closed = False
        self.scrolled = False
        self.waits = []

    async def goto(self, url, wait_until=None, timeout=None):
        if self.goto_error:
            raise self.goto_error

    async def wait_for_load_state(self, state, timeout=None):
        self.waits.append(state)

    async def query_selector(self, selector):
        return self.consent_button if selector == self.consent_selector else None

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)

    async def evaluate(self, script):
        self.scrolled = True

    async def content(self):
        return self.html

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page=None, new_page_error=None):
        self.page = page or FakePage()
        self.new_page_error = new_page_error
        self.closed = False

    async def new_page(self):
        if self.new_page_error:
            raise self.new_page_error
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, context):
        self.context = context
        self.context_kwargs = None
        self.closed = False

    async def new_context(self, **kwargs):
        self.context_kwargs = kwargs
        return self.context

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser, launch_error=None):
        self.browser = browser
        self.launch_error = launch_error
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launch_kwargs = kwargs
        if self.launch_error:
            raise self.launch_error
        return self.browser


class FakePlaywright:
    def __init__(self, chromium):
        self.chromium = chromium
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakeStarter:
    def __init__(self, playwright):
        self.playwright = playwright

    async def start(self):
        return self.playwright


def install(monkeypatch, context=None, launch_error=None):
    context = context or FakeContext()
    browser = FakeBrowser(context)
    playwright = FakePlaywright(FakeChromium(browser, launch_error))
    monkeypatch.setattr(web_scraper_delegate, "async_playwright", lambda: FakeStarter(playwright))
    return playwright, browser, context


@pytest.fixture
def settings():
    return BrowserSettings(executable_path="/usr/bin/chromium", timeout_ms=5000, settle_ms=250)


@pytest.mark.asyncio
async def test_renders_page_and_releases_everything_on_exit(monkeypatch, settings):
    page = FakePage(final_url="https://pub.example/menu/", consent_selector="#onetrust-accept-btn-handler")
    playwright, browser, context = install(monkeypatch, context=FakeContext(page))

    async with WebScraperDelegate(settings) as delegate:
        rendered = await delegate.render_page("https://pub.example/menu")

    assert rendered.url == "https://pub.example/menu/"
    assert rendered.html == page.html
    assert page.consent_button.clicked
    assert page.scrolled
    assert page.waits[0] == "networkidle"
    assert 250 in page.waits
    assert page.closed
    assert context.closed and browser.closed and playwright.stopped
    launch = playwright.chromium.launch_kwargs
    assert launch["executable_path"] == "/usr/bin/chromium"
    assert launch["args"] == BROWSER_ARGS
    assert browser.context_kwargs["user_agent"] == settings.user_agent


@pytest.mark.asyncio
async def test_bundled_browser_is_used_without_an_executable_path(monkeypatch):
    playwright, _browser, _context = install(monkeypatch)

    async with WebScraperDelegate(BrowserSettings(executable_path=None)):
        pass

    assert "executable_path" not in playwright.chromium.launch_kwargs


@pytest.mark.asyncio
async def test_launch_failure_propagates_and_stops_playwright(monkeypatch, settings):
    playwright, browser, _context = install(monkeypatch, launch_error=RuntimeError("no chromium binary"))

    with pytest.raises(RuntimeError, match="no chromium binary"):
        async with WebScraperDelegate(settings):
            pass

    assert playwright.stopped
    assert not browser.closed


@pytest.mark.asyncio
async def test_navigation_timeout_returns_none_and_closes_the_page(monkeypatch, settings):
    page = FakePage(goto_error=PlaywrightTimeoutError("Timeout 5000ms exceeded"))
    playwright, _browser, context = install(monkeypatch, context=FakeContext(page))

    async with WebScraperDelegate(settings) as delegate:
        assert await delegate.render_page("https://slow.example/") is None
        assert page.closed

    assert context.closed and playwright.stopped


@pytest.mark.asyncio
async def test_failing_to_open_a_tab_only_loses_that_page(monkeypatch, settings):
    context = FakeContext(new_page_error=RuntimeError("Target page, context or browser has been closed"))
    playwright, _browser, _context = install(monkeypatch, context=context)

    async with WebScraperDelegate(settings) as delegate:
        assert await delegate.render_page("https://pub.example/menu") is None

    assert playwright.stopped


@pytest.mark.asyncio
async def test_render_before_start_returns_none(settings):
    assert await WebScraperDelegate(settings).render_page("https://pub.example/") is None
