"""Tests for the cached magazine client using httpx.MockTransport."""

import httpx
import pytest
import pytest_asyncio

from adaptive_feed.constants import HOUR_SECONDS
from adaptive_feed.errors import SourceFetchError
from adaptive_feed.sources import MagazineClient

BASE_URL = "https://mag.test"
EPAPER_URL = "https://epaper.test"


class Router:
    """Scriptable request handler that records every request."""

    def __init__(self):
        self.routes = {}
        self.requests: list[httpx.Request] = []

    def add(self, path, status=200, error=None, **kwargs):
        if error is not None:
            self.routes[path] = error
        else:
            self.routes[path] = lambda: httpx.Response(status, **kwargs)

    def add_handler(self, path, handler):
        self.routes[path] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        return route()

    def count(self, path):
        return sum(1 for r in self.requests if r.url.path == path)


@pytest.fixture
def router():
    return Router()


@pytest_asyncio.fixture
async def client(router, cache):
    http = httpx.AsyncClient(transport=httpx.MockTransport(router), follow_redirects=True)
    magazine = MagazineClient(BASE_URL, cache, epaper_base_url=EPAPER_URL, client=http)
    yield magazine
    await http.aclose()


# =============================================================================
# Editions
# =============================================================================


class TestEditions:
    @pytest.mark.asyncio
    async def test_fetch_editions(self, client, router):
        router.add("/editions", 200, json={"editions": ["2024-01", "2024-02"]})

        assert await client.fetch_editions() == ["2024-01", "2024-02"]

    @pytest.mark.asyncio
    async def test_editions_are_cached(self, client, router):
        router.add("/editions", 200, json={"editions": ["2024-01"]})

        await client.fetch_editions()
        await client.fetch_editions()

        assert router.count("/editions") == 1

    @pytest.mark.asyncio
    async def test_invalid_format_raises(self, client, router):
        router.add("/editions", 200, json={"items": []})

        with pytest.raises(SourceFetchError, match="Invalid editions response format"):
            await client.fetch_editions()

    @pytest.mark.asyncio
    async def test_http_error_without_cache_raises(self, client, router):
        router.add("/editions", 503)

        with pytest.raises(SourceFetchError) as exc_info:
            await client.fetch_editions()
        assert exc_info.value.status == 503
        assert exc_info.value.source == "magazine"

    @pytest.mark.asyncio
    async def test_outage_serves_stale_editions(self, client, router, clock):
        router.add("/editions", 200, json={"editions": ["2024-01"]})
        await client.fetch_editions()

        clock.advance(HOUR_SECONDS * 5)
        router.add("/editions", 500)

        assert await client.fetch_editions() == ["2024-01"]
        assert router.count("/editions") == 2

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self, client, router):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused")
            return httpx.Response(200, json={"editions": ["2024-03"]})

        router.add_handler("/editions", flaky)

        assert await client.fetch_editions() == ["2024-03"]
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_unreachable_becomes_source_error(self, client, router):
        router.add("/editions", error=httpx.ConnectError("connection refused"))

        with pytest.raises(SourceFetchError, match="Could not reach"):
            await client.fetch_editions()
        assert router.count("/editions") == 2


# =============================================================================
# Covers and PDFs
# =============================================================================


class TestCoverAndPdf:
    @pytest.mark.asyncio
    async def test_cover_is_final_url(self, client, router):
        router.add("/cover/2024-01", 302, headers={"location": "https://cdn.test/covers/2024-01.jpg"})
        router.add("/covers/2024-01.jpg", 200, content=b"jpeg")

        assert await client.fetch_cover("2024-01") == "https://cdn.test/covers/2024-01.jpg"

    @pytest.mark.asyncio
    async def test_pdf_content_type_uses_request_url(self, client, router):
        router.add("/editions/2024-01", 200, content=b"%PDF-1.7", headers={"content-type": "application/pdf"})

        assert await client.fetch_pdf_url("2024-01") == f"{BASE_URL}/editions/2024-01"

    @pytest.mark.asyncio
    async def test_pdf_from_json_body(self, client, router):
        router.add("/editions/2024-01", 200, json={"pdf_url": "https://cdn.test/2024-01.pdf"})
        router.add("/editions/2024-02", 200, json={"url": "https://cdn.test/2024-02.pdf"})

        assert await client.fetch_pdf_url("2024-01") == "https://cdn.test/2024-01.pdf"
        assert await client.fetch_pdf_url("2024-02") == "https://cdn.test/2024-02.pdf"

    @pytest.mark.asyncio
    async def test_pdf_unknown_body_uses_response_url(self, client, router):
        router.add("/editions/2024-01", 200, text="<html></html>", headers={"content-type": "text/html"})

        assert await client.fetch_pdf_url("2024-01") == f"{BASE_URL}/editions/2024-01"

    @pytest.mark.asyncio
    async def test_editions_cached_per_id(self, client, router):
        router.add("/editions/2024-01", 200, json={"pdf_url": "a"})
        router.add("/editions/2024-02", 200, json={"pdf_url": "b"})

        assert await client.fetch_pdf_url("2024-01") == "a"
        assert await client.fetch_pdf_url("2024-02") == "b"
        assert await client.fetch_pdf_url("2024-01") == "a"
        assert router.count("/editions/2024-01") == 1

    @pytest.mark.asyncio
    async def test_edition_data_tolerates_partial_failure(self, client, router):
        router.add("/editions/2024-01", 200, json={"pdf_url": "https://cdn.test/2024-01.pdf"})

        data = await client.fetch_edition_data("2024-01")

        assert data == {"id": "2024-01", "cover_url": None, "pdf_url": "https://cdn.test/2024-01.pdf"}


# =============================================================================
# Articles
# =============================================================================


class TestArticles:
    @pytest.mark.asyncio
    async def test_fetch_article(self, client, router):
        article = {"id": "a1", "title": "Headline", "body": "..."}
        router.add("/articles/2024-01/a1", 200, json=article)

        assert await client.fetch_article("2024-01", "a1") == article

    @pytest.mark.asyncio
    async def test_article_without_title_is_invalid(self, client, router):
        router.add("/articles/2024-01/a1", 200, json={"id": "a1"})

        with pytest.raises(SourceFetchError, match="Invalid article response format"):
            await client.fetch_article("2024-01", "a1")

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, client, router):
        router.add("/articles/2024-01/a1", 200, text="not json")

        with pytest.raises(SourceFetchError, match="Invalid JSON"):
            await client.fetch_article("2024-01", "a1")

    @pytest.mark.asyncio
    async def test_pdf_article_detail_uses_epaper_host(self, client, router):
        router.add("/articles/2024-01/a7", 200, json={"id": "a7"})

        assert await client.fetch_pdf_article_detail("2024-01", "a7") == {"id": "a7"}
        assert router.requests[-1].url.host == "epaper.test"


@pytest.mark.asyncio
async def test_close_leaves_injected_client_open(router, cache):
    http = httpx.AsyncClient(transport=httpx.MockTransport(router))
    async with MagazineClient(BASE_URL, cache, client=http):
        pass

    assert http.is_closed is False
    await http.aclose()
