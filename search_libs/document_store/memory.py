"""In-memory implementation of the document store.

Evaluates both relevance signals in the application layer: each document's
``SearchVector`` is rebuilt synchronously on write, and hybrid queries score
the whole corpus with ``HybridScorer``. Useful for local development and as
the reference behaviour the SQL ``hybrid_search`` function reproduces.

Reads return copies, so callers never share mutable state with the store.
"""

import uuid
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from ..ranking.fusion import HybridScorer, ranking_key
from ..ranking.signals import SearchVector, TextRelevanceSignal, parse_websearch_query
from .base import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    ScoredDocument,
    ensure_vector_dimension,
)

logger = structlog.get_logger("document_store.memory")


class MemoryDocumentStore(DocumentStore):
    """Dictionary-backed document store."""

    def __init__(
        self,
        vector_dimension: Optional[int] = None,
        text_signal: Optional[TextRelevanceSignal] = None
    ):
        self.vector_dimension = vector_dimension
        self.text_signal = text_signal or TextRelevanceSignal()
        self._documents: Dict[str, Document] = {}
        self._search_vectors: Dict[str, SearchVector] = {}

    def _snapshot(self) -> List[Tuple[Document, SearchVector]]:
        return [
            (self._copy(document), self._search_vectors[document_id])
            for document_id, document in self._documents.items()
        ]

    @staticmethod
    def _copy(document: Document) -> Document:
        embedding = None if document.embedding is None else document.embedding.copy()
        return Document(
            id=document.id,
            title=document.title,
            body=document.body,
            embedding=embedding,
        )

    async def keyword_search(self, query: str, limit: int = 10) -> List[ScoredDocument]:
        parsed = parse_websearch_query(query)
        if parsed.is_empty:
            return []

        results = []
        for document, search_vector in self._snapshot():
            rank = self.text_signal.rank(parsed, search_vector)
            if rank <= 0:
                continue
            results.append(ScoredDocument(
                id=document.id,
                title=document.title,
                body=document.body,
                hybrid_score=rank,
                text_score=rank,
            ))

        results.sort(key=ranking_key)
        logger.info("Keyword search completed", results_count=min(len(results), limit))
        return results[:limit]

    async def hybrid_search(
        self,
        query: str,
        query_embedding: np.ndarray,
        limit: int = 10,
        text_weight: float = 0.6,
        vector_weight: float = 0.4
    ) -> List[ScoredDocument]:
        query_vector = ensure_vector_dimension(query_embedding, self.vector_dimension)
        scorer = HybridScorer(
            text_weight=text_weight,
            vector_weight=vector_weight,
            limit=limit,
            text_signal=self.text_signal,
        )
        results = scorer.rank(query, query_vector, self._snapshot())
        logger.info("Hybrid search completed", results_count=len(results))
        return results

    async def get_document(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return self._copy(document) if document else None

    async def upsert_document(
        self,
        title: str,
        body: str,
        document_id: Optional[str] = None
    ) -> Document:
        document_id = document_id or str(uuid.uuid4())
        existing = self._documents.get(document_id)

        document = Document(
            id=document_id,
            title=title or "",
            body=body or "",
            embedding=existing.embedding if existing else None,
        )
        self._documents[document_id] = document
        self._search_vectors[document_id] = SearchVector.from_text(document.title, document.body)

        logger.info("Stored document", document_id=document_id, created=existing is None)
        return self._copy(document)

    async def list_documents(self, missing_embedding_only: bool = False) -> List[Document]:
        documents = [
            self._copy(document)
            for document in self._documents.values()
            if not (missing_embedding_only and document.has_embedding)
        ]
        documents.sort(key=lambda document: document.id)
        return documents

    async def update_embedding(self, document_id: str, vector: np.ndarray) -> None:
        array = ensure_vector_dimension(vector, self.vector_dimension)
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")

        document.embedding = array.copy()
        logger.info("Stored embedding", document_id=document_id)

    async def count_documents(self) -> Dict[str, int]:
        with_embedding = sum(1 for document in self._documents.values() if document.has_embedding)
        return {"total": len(self._documents), "with_embedding": with_embedding}

    async def health_check(self) -> bool:
        return True
