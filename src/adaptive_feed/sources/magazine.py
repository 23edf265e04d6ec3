"""Cached magazine client (editions, covers, PDFs, articles).

Every call reads through the TTL cache and falls back to the last stored
value when the network fails, so the magazine screens keep working during an
outage as long as something was cached once. Only when both the network and
the cache come up empty does the caller see a SourceFetchError.

Endpoints:
    GET /editions                         -> {"editions": ["2024-01", ...]}
    GET /cover/<edition>                  -> image (final URL is the cover URL)
    GET /editions/<edition>               -> PDF, or JSON with "pdf_url"/"url"
    GET /articles/<edition>/<article>     -> article JSON
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from adaptive_feed.cache import CacheService, fetch_with_fallback
from adaptive_feed.constants import (
    CACHE_KEY_ARTICLE,
    CACHE_KEY_COVER,
    CACHE_KEY_EDITION_DATA,
    CACHE_KEY_EDITIONS,
    CACHE_KEY_PDF,
    CACHE_KEY_PDF_ARTICLE_DETAIL,
    HTTP_MAX_ATTEMPTS,
    HTTP_TIMEOUT_SECONDS,
)
from adaptive_feed.errors import SourceFetchError

logger = logging.getLogger("sources")

SOURCE_NAME = "magazine"


class MagazineClient:
    """Magazine API client with stale-on-error caching.

    Usage:
        async with MagazineClient("https://epaper.example.com", cache) as client:
            editions = await client.fetch_editions()
            pdf_url = await client.fetch_pdf_url(editions[0])
    """

    def __init__(
        self,
        base_url: str,
        cache: CacheService,
        epaper_base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.base_url = base_url.rstrip("/")
        self.epaper_base_url = (epaper_base_url or base_url).rstrip("/")
        self.cache = cache
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owns_client = client is None

    async def __aenter__(self) -> "MagazineClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # Editions
    # =========================================================================

    async def fetch_editions(self) -> list[str]:
        """Available edition ids."""

        async def _fetch() -> list[str]:
            response = await self._request(f"{self.base_url}/editions")
            data = _json_body(response)
            editions = data.get("editions") if isinstance(data, dict) else None
            if not isinstance(editions, list):
                raise SourceFetchError(SOURCE_NAME, "Invalid editions response format")
            return [str(e) for e in editions]

        return await fetch_with_fallback(self.cache, CACHE_KEY_EDITIONS, _fetch)

    async def fetch_cover(self, edition_id: str) -> str:
        """Cover image URL (after redirects) for one edition."""

        async def _fetch() -> str:
            response = await self._request(f"{self.base_url}/cover/{edition_id}")
            return str(response.url)

        return await fetch_with_fallback(
            self.cache, CACHE_KEY_COVER, _fetch, {"edition_id": edition_id}
        )

    async def fetch_pdf_url(self, edition_id: str) -> str:
        """PDF URL for one edition.

        A PDF body means the request URL is the PDF. A JSON body may name the
        PDF in ``pdf_url`` or ``url``. Anything else falls back to the
        response URL.
        """

        async def _fetch() -> str:
            response = await self._request(f"{self.base_url}/editions/{edition_id}")
            content_type = response.headers.get("content-type", "")
            if "application/pdf" in content_type:
                return str(response.url)
            try:
                data = response.json()
            except ValueError:
                return str(response.url)
            if isinstance(data, dict):
                return str(data.get("pdf_url") or data.get("url") or response.url)
            return str(response.url)

        return await fetch_with_fallback(
            self.cache, CACHE_KEY_PDF, _fetch, {"edition_id": edition_id}
        )

    async def fetch_edition_data(self, edition_id: str) -> dict[str, Any]:
        """Cover and PDF URLs of one edition, fetched in parallel.

        A part that cannot be fetched is reported as None rather than failing
        the whole record.
        """

        async def _fetch() -> dict[str, Any]:
            cover, pdf = await asyncio.gather(
                self.fetch_cover(edition_id),
                self.fetch_pdf_url(edition_id),
                return_exceptions=True,
            )
            for part, result in (("cover", cover), ("pdf", pdf)):
                if isinstance(result, Exception):
                    logger.warning(f"MAGAZINE_PARTIAL | {edition_id} | {part} | {result}")
            return {
                "id": edition_id,
                "cover_url": None if isinstance(cover, Exception) else cover,
                "pdf_url": None if isinstance(pdf, Exception) else pdf,
            }

        return await fetch_with_fallback(
            self.cache, CACHE_KEY_EDITION_DATA, _fetch, {"edition_id": edition_id}
        )

    # =========================================================================
    # Articles
    # =========================================================================

    async def fetch_article(self, edition_id: str, article_id: str) -> dict[str, Any]:
        """Article record of an edition. Must carry ``id`` and ``title``."""

        async def _fetch() -> dict[str, Any]:
            response = await self._request(f"{self.base_url}/articles/{edition_id}/{article_id}")
            data = _json_body(response)
            if not isinstance(data, dict) or not data.get("id") or not data.get("title"):
                raise SourceFetchError(SOURCE_NAME, "Invalid article response format")
            return data

        return await fetch_with_fallback(
            self.cache,
            CACHE_KEY_ARTICLE,
            _fetch,
            {"edition_id": edition_id, "article_id": article_id},
        )

    async def fetch_pdf_article_detail(self, edition_id: str, article_id: str) -> dict[str, Any]:
        """Article detail shown when an annotation in the PDF viewer is tapped."""

        async def _fetch() -> dict[str, Any]:
            response = await self._request(
                f"{self.epaper_base_url}/articles/{edition_id}/{article_id}"
            )
            data = _json_body(response)
            if not isinstance(data, dict):
                raise SourceFetchError(SOURCE_NAME, "Invalid PDF article response format")
            return data

        return await fetch_with_fallback(
            self.cache,
            CACHE_KEY_PDF_ARTICLE_DETAIL,
            _fetch,
            {"edition_id": edition_id, "article_id": article_id},
        )

    # =========================================================================
    # HTTP
    # =========================================================================

    async def _request(self, url: str) -> httpx.Response:
        try:
            response = await self._get(url)
        except httpx.TransportError as e:
            logger.warning(f"MAGAZINE_UNREACHABLE | {url} | {e}")
            raise SourceFetchError(SOURCE_NAME, f"Could not reach {url}: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"MAGAZINE_HTTP_ERROR | {url} | {response.status_code}")
            raise SourceFetchError(
                SOURCE_NAME, f"HTTP {response.status_code} for {url}", status=response.status_code
            )
        return response

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(HTTP_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _get(self, url: str) -> httpx.Response:
        return await self._client.get(url)


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise SourceFetchError(SOURCE_NAME, f"Invalid JSON from {response.url}: {e}") from e
