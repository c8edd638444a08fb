"""Shared fixtures: a fake embedding provider and a small article corpus."""

from typing import Dict, List, Optional, Sequence

import numpy as np
import pytest

from search_libs.common.config import SearchConfig
from search_libs.common.metrics import MetricsCollector
from search_libs.document_store.memory import MemoryDocumentStore
from search_libs.document_store.base import DocumentStoreQueryError
from search_libs.embeddings.base import EmbeddingProvider, EmbeddingProviderError
from service_search.app.hybrid.search_manager import SearchManager

DIMENSION = 3

CORPUS_VECTORS = {
    "Engineer": [1.0, 0.0, 0.0],
    "SE": [0.9, 0.3, 0.0],
    "Technician": [0.6, 0.5, 0.3],
}


class FakeEmbeddingProvider(EmbeddingProvider):
    """Looks vectors up by exact text; optionally fails every call."""

    model_name = "fake-embedding"
    dimension = DIMENSION

    def __init__(
        self,
        vectors: Optional[Dict[str, Sequence[float]]] = None,
        default: Sequence[float] = (0.0, 0.0, 1.0),
        fail_on: Sequence[str] = (),
        fail_all: bool = False
    ):
        self.vectors = dict(vectors or {})
        self.default = default
        self.fail_on = set(fail_on)
        self.fail_all = fail_all
        self.calls: List[str] = []
        self.closed = False

    async def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if self.fail_all or text in self.fail_on:
            raise EmbeddingProviderError("provider unreachable")
        return np.asarray(self.vectors.get(text, self.default), dtype=np.float32)

    async def close(self) -> None:
        self.closed = True


class BrokenStore(MemoryDocumentStore):
    """Store whose queries always fail."""

    async def keyword_search(self, query, limit=10):
        raise DocumentStoreQueryError("connection reset")

    async def hybrid_search(self, query, query_embedding, limit=10, text_weight=0.6, vector_weight=0.4):
        raise DocumentStoreQueryError("connection reset")


async def seed_corpus(store: MemoryDocumentStore, with_embeddings: bool = True) -> Dict[str, str]:
    """Store the Engineer/SE/Technician corpus; returns title -> id."""
    ids = {}
    for index, (title, vector) in enumerate(CORPUS_VECTORS.items()):
        document = await store.upsert_document(title, title, document_id=f"doc-{index}")
        if with_embeddings:
            await store.update_embedding(document.id, np.asarray(vector, dtype=np.float32))
        ids[title] = document.id
    return ids


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore(vector_dimension=DIMENSION)


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(vectors={"Engineer": CORPUS_VECTORS["Engineer"]})


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    return MetricsCollector("test-service")


@pytest.fixture
def search_config() -> SearchConfig:
    return SearchConfig(hs_store_backend="memory", hs_embedding_dimension=DIMENSION)


@pytest.fixture
def search_manager(search_config, store, provider, metrics_collector) -> SearchManager:
    return SearchManager(
        search_config,
        document_store=store,
        embedding_provider=provider,
        metrics_collector=metrics_collector
    )
