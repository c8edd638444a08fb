"""Search manager for keyword and hybrid retrieval.

Exposes the two retrieval paths as independent coroutines:

- ``keyword_search`` ranks by full-text relevance and only touches the
  document store.
- ``semantic_search`` embeds the query with the embedding provider and asks
  the document store for the weighted hybrid ranking.

The paths share no mutable state, so callers may run them concurrently and
handle each outcome on its own. Nothing is retried here; store and provider
errors propagate to the caller.
"""

import time
from typing import Any, Dict, List, Optional

import structlog

from search_libs.common.config import SearchConfig
from search_libs.common.logging import log_performance, search_context
from search_libs.common.metrics import MetricsCollector, get_metrics_collector
from search_libs.document_store.base import (
    Document,
    DocumentStore,
    DocumentStoreError,
    ScoredDocument,
)
from search_libs.document_store.factory import create_document_store
from search_libs.embeddings.base import EmbeddingProvider, EmbeddingProviderError
from search_libs.embeddings.openai_provider import create_embedding_provider
from search_libs.ranking.fusion import validate_weights

logger = structlog.get_logger("search_service.search_manager")

FULLTEXT_PATH = "fulltext"
SEMANTIC_PATH = "semantic"


class SearchManager:
    """Coordinates the document store and embedding provider.

    Responsibilities
    - Own the store and provider for the lifetime of the service
    - Run keyword and hybrid retrieval with the configured weights and limit
    - Record per-path metrics and failures
    """

    def __init__(
        self,
        config: SearchConfig,
        document_store: Optional[DocumentStore] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        """Construct a search manager.

        Parameters
        - config: ``SearchConfig`` with store, provider, and scoring settings
        - document_store: Override the store built from config
        - embedding_provider: Override the provider built from config
        - metrics_collector: Override the process-wide collector
        """
        validate_weights(config.hs_text_weight, config.hs_vector_weight)

        self.config = config
        self.text_weight = config.hs_text_weight
        self.vector_weight = config.hs_vector_weight
        self.limit = config.hs_result_limit
        self.metrics_collector = metrics_collector or get_metrics_collector("search-service")
        self.document_store = document_store or create_document_store(config)
        self.embedding_provider = embedding_provider or create_embedding_provider(
            config, self.metrics_collector
        )

    async def keyword_search(self, query: str) -> List[ScoredDocument]:
        """Rank documents by text relevance alone."""
        start_time = time.time()
        with search_context(FULLTEXT_PATH):
            try:
                results = await self.document_store.keyword_search(query, limit=self.limit)
            except DocumentStoreError as e:
                self.metrics_collector.record_search_failure(FULLTEXT_PATH, "datastore")
                logger.error("Keyword search failed", query=query, error=str(e))
                raise

            self._record(FULLTEXT_PATH, start_time, query, len(results))
        return results

    async def semantic_search(self, query: str) -> List[ScoredDocument]:
        """Embed the query and rank documents with the hybrid scorer.

        A blank query returns no results without calling the provider.
        """
        with search_context(SEMANTIC_PATH):
            return await self._semantic_search(query)

    async def _semantic_search(self, query: str) -> List[ScoredDocument]:
        start_time = time.time()
        if not query or not query.strip():
            self._record(SEMANTIC_PATH, start_time, query, 0)
            return []

        try:
            query_embedding = await self.embedding_provider.embed(query)
        except EmbeddingProviderError as e:
            self.metrics_collector.record_search_failure(SEMANTIC_PATH, "embedding")
            logger.error("Query embedding failed", query=query, error=str(e))
            raise

        logger.info("Query embedding generated", dimension=len(query_embedding))

        try:
            results = await self.document_store.hybrid_search(
                query,
                query_embedding,
                limit=self.limit,
                text_weight=self.text_weight,
                vector_weight=self.vector_weight
            )
        except DocumentStoreError as e:
            self.metrics_collector.record_search_failure(SEMANTIC_PATH, "datastore")
            logger.error("Hybrid search failed", query=query, error=str(e))
            raise

        self._record(SEMANTIC_PATH, start_time, query, len(results))
        return results

    async def index_document(
        self,
        title: str,
        body: str,
        document_id: Optional[str] = None
    ) -> Document:
        """Create or replace a document; its embedding is left for the backfill job."""
        document = await self.document_store.upsert_document(title, body, document_id)
        logger.info("Document indexed", document_id=document.id)
        return document

    async def get_document(self, document_id: str) -> Optional[Document]:
        return await self.document_store.get_document(document_id)

    async def get_index_stats(self) -> Dict[str, Any]:
        counts = await self.document_store.count_documents()
        return {
            "total_documents": counts["total"],
            "documents_with_embedding": counts["with_embedding"],
            "embedding_model": self.embedding_provider.model_name,
            "text_weight": self.text_weight,
            "vector_weight": self.vector_weight,
        }

    async def health_check(self) -> bool:
        """Check if the document store is reachable."""
        return await self.document_store.health_check()

    async def cleanup(self) -> None:
        """Release the store and provider."""
        try:
            await self.document_store.close()
            await self.embedding_provider.close()
            logger.info("Search manager cleanup completed")
        except Exception as e:
            logger.error("Search manager cleanup failed", error=str(e))

    def _record(self, path: str, start_time: float, query: str, count: int) -> None:
        duration = time.time() - start_time
        self.metrics_collector.record_search(path=path, duration=duration)
        log_performance(f"{path}_search", duration * 1000, query=query, results_count=count)
