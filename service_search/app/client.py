"""Async client for the search service.

``HybridSearchClient.search`` fires the keyword and semantic requests as two
independent tasks. Each task fills its own ``SearchSlot`` and reports it via
``on_update`` as soon as it finishes, so a fast keyword result can be shown
while the semantic request is still embedding the query, and a failure on one
path leaves the other path's result intact.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import httpx
import structlog

from search_libs.common.config import SearchConfig

logger = structlog.get_logger("search_service.client")

FULLTEXT = "fulltext"
SEMANTIC = "semantic"


class SearchClientError(Exception):
    """Non-2xx response from the search service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class SearchSlot:
    """Independently observable result of one retrieval path."""
    results: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None
    done: bool = False

    @property
    def ok(self) -> bool:
        return self.done and self.error is None


@dataclass
class SearchOutcome:
    fulltext: SearchSlot = field(default_factory=SearchSlot)
    semantic: SearchSlot = field(default_factory=SearchSlot)


class HybridSearchClient:
    """HTTP client for the keyword and semantic endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:9007",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.http_client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_config(cls, config: SearchConfig) -> "HybridSearchClient":
        """Point the client at ``HS_SEARCH_SERVICE_URL``."""
        return cls(base_url=config.hs_search_service_url)

    async def __aenter__(self) -> "HybridSearchClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self.http_client.aclose()

    async def _post_search(self, path: str, query: str) -> List[Dict[str, Any]]:
        response = await self.http_client.post(
            f"/api/v1/search/{path}",
            json={"query": query},
            headers={"Cache-Control": "no-store"}
        )
        if response.is_error:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            raise SearchClientError(f"{path} search failed: {message}", response.status_code)

        return response.json()["results"]

    async def fulltext(self, query: str) -> List[Dict[str, Any]]:
        return await self._post_search(FULLTEXT, query)

    async def semantic(self, query: str) -> List[Dict[str, Any]]:
        return await self._post_search(SEMANTIC, query)

    async def search(
        self,
        query: str,
        on_update: Optional[Callable[[str, SearchSlot], None]] = None
    ) -> SearchOutcome:
        """Run both searches concurrently and return once both have finished."""
        outcome = SearchOutcome()

        async def run(path: str, slot: SearchSlot) -> None:
            try:
                slot.results = await self._post_search(path, query)
            except (SearchClientError, httpx.HTTPError) as e:
                slot.error = str(e)
                logger.warning("Search path failed", path=path, error=str(e))
            slot.done = True
            if on_update:
                try:
                    on_update(path, slot)
                except Exception:
                    # Callback errors stay local to this path
                    logger.exception("Search update callback failed", path=path)

        await asyncio.gather(
            run(FULLTEXT, outcome.fulltext),
            run(SEMANTIC, outcome.semantic),
        )
        return outcome
