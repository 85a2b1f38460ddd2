import httpx
import pytest

from catalogue_detection.config import BrowserSettings
from catalogue_detection.delegates import DownloaderDelegate

from conftest import html_page

MENU_HTML = html_page("<h2>Starters</h2>")


def handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/menu":
        return httpx.Response(200, html=MENU_HTML)
    if request.url.path == "/old-menu":
        return httpx.Response(301, headers={"Location": "https://pub.example/menu"})
    if request.url.path == "/down":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(404, text="not found")


@pytest.fixture
def settings():
    return BrowserSettings(renderer="static", timeout_ms=5000)


@pytest.mark.asyncio
async def test_downloads_page(settings):
    async with DownloaderDelegate(settings, transport=httpx.MockTransport(handler)) as delegate:
        page = await delegate.render_page("https://pub.example/menu")

    assert page.url == "https://pub.example/menu"
    assert page.html == MENU_HTML


@pytest.mark.asyncio
async def test_follows_redirects_and_reports_final_url(settings):
    async with DownloaderDelegate(settings, transport=httpx.MockTransport(handler)) as delegate:
        page = await delegate.render_page("https://pub.example/old-menu")

    assert page.url == "https://pub.example/menu"


@pytest.mark.asyncio
async def test_http_error_returns_none(settings):
    async with DownloaderDelegate(settings, transport=httpx.MockTransport(handler)) as delegate:
        assert await delegate.render_page("https://pub.example/missing") is None


@pytest.mark.asyncio
async def test_network_error_returns_none(settings):
    async with DownloaderDelegate(settings, transport=httpx.MockTransport(handler)) as delegate:
        assert await delegate.render_page("https://pub.example/down") is None


@pytest.mark.asyncio
async def test_client_is_closed_on_exit(settings):
    delegate = DownloaderDelegate(settings, transport=httpx.MockTransport(handler))
    async with delegate:
        assert delegate.client is not None
    assert delegate.client is None
    assert await delegate.render_page("https://pub.example/menu") is None
