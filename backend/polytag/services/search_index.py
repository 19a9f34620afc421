"""Async Meilisearch client for the files index.

The index holds a denormalized copy of complete file records, keyed by file uuid. It is
eventually consistent with the database; only ``upsert`` and ``search`` are used.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from polytag.config import Settings
from polytag.errors import DependencyError

logger = logging.getLogger(__name__)


class SearchIndexError(DependencyError):
    """Failed call to the search index. Carries HTTP status (0 when unreachable) and URL."""

    def __init__(self, status: int, message: str, url: str):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.status:
            return f"search index returned HTTP {self.status} from {self.url}: {self.message}"
        return f"search index unreachable at {self.url}: {self.message}"


class SearchUnavailable(DependencyError):
    def __init__(self):
        super().__init__("search index is not configured")


class SearchIndex:
    """Upsert/search against one Meilisearch index.

    Use ``open()``/``close()`` (or ``async with``) to share one HTTP session for the
    lifetime of the process. With an empty ``base_url`` the index is disabled: upserts
    are skipped and searches raise ``SearchUnavailable``.
    """

    def __init__(
        self, base_url: str, index: str,
        api_key: str = "",
        timeout: float = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.api_key = api_key
        self._session: Optional[aiohttp.ClientSession] = None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchIndex":
        return cls(
            settings.SEARCH_URL, settings.SEARCH_INDEX,
            api_key=settings.SEARCH_API_KEY,
            timeout=settings.SEARCH_TIMEOUT,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def open(self) -> None:
        if self.enabled and not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "SearchIndex":
        await self.open()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: Any, params: Optional[Dict[str, str]] = None) -> Dict:
        url = f"{self.base_url}{path}"
        try:
            if self._session:
                return await self._request(self._session, url, payload, params)
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                return await self._request(session, url, payload, params)
        except aiohttp.ClientError as e:
            raise SearchIndexError(0, str(e), url) from e
        except asyncio.TimeoutError as e:
            raise SearchIndexError(0, "request timed out", url) from e

    async def _request(self, session: aiohttp.ClientSession, url: str, payload: Any,
                       params: Optional[Dict[str, str]]) -> Dict:
        async with session.post(url, json=payload, params=params, headers=self._headers()) as resp:
            if resp.status >= 400:
                body = await resp.text()
                raise SearchIndexError(resp.status, body[:500], url)
            return await resp.json()

    async def upsert(self, key: str, document: Dict[str, Any]) -> None:
        """Add or replace the document whose primary key is ``key``."""
        if not self.enabled:
            return
        await self._post(
            f"/indexes/{self.index}/documents",
            [{**document, "uuid": key}],
            params={"primaryKey": "uuid"},
        )
        logger.debug(f"Upserted search document {key}")

    async def search(
        self, query: str, attributes_to_retrieve: List[str], limit: int,
    ) -> List[Dict[str, Any]]:
        """Ranked hits for ``query``, each limited to ``attributes_to_retrieve``."""
        if not self.enabled:
            raise SearchUnavailable()
        result = await self._post(
            f"/indexes/{self.index}/search",
            {
                "q": query,
                "attributesToRetrieve": attributes_to_retrieve,
                "attributesToHighlight": [],
                "limit": limit,
            },
        )
        return result.get("hits", [])
