"""Base document store interface.

Defines the contract the search service and the backfill job depend on,
independent of the backing implementation (PostgreSQL/pgvector or memory).

All methods are asynchronous so the retrieval paths can run concurrently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class Document:
    """A stored article.

    ``embedding`` is ``None`` until the backfill job has run for the document;
    otherwise it has exactly the store's configured dimensionality.
    """

    id: str
    title: str
    body: str
    embedding: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "title": self.title, "body": self.body}


@dataclass
class ScoredDocument:
    """A document with its relevance breakdown.

    ``hybrid_score`` is the blended score for semantic results; keyword results
    carry only ``text_score`` and leave ``hybrid_score`` equal to it.
    """

    id: str
    title: str
    body: str
    hybrid_score: float
    text_score: float = 0.0
    vector_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "hybrid_score": self.hybrid_score,
            "text_score": self.text_score,
            "vector_score": self.vector_score,
        }


class DocumentStore(ABC):
    """Abstract base class for document stores.

    Implementations keep the lexical index consistent with ``title``/``body``
    on every write and treat a missing embedding as zero semantic signal.
    """

    @abstractmethod
    async def keyword_search(self, query: str, limit: int = 10) -> List[ScoredDocument]:
        """Rank matching documents by text relevance alone.

        Returns at most ``limit`` documents that match the parsed query,
        ordered by descending raw rank then ascending id.
        """
        pass

    @abstractmethod
    async def hybrid_search(
        self,
        query: str,
        query_embedding: np.ndarray,
        limit: int = 10,
        text_weight: float = 0.6,
        vector_weight: float = 0.4
    ) -> List[ScoredDocument]:
        """Rank all documents by the weighted blend of both signals."""
        pass

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[Document]:
        """Point read. Returns ``None`` when the id is unknown."""
        pass

    @abstractmethod
    async def upsert_document(
        self,
        title: str,
        body: str,
        document_id: Optional[str] = None
    ) -> Document:
        """Create or replace a document's text fields.

        A new id is assigned when ``document_id`` is omitted. The stored
        embedding is left untouched.
        """
        pass

    @abstractmethod
    async def list_documents(self, missing_embedding_only: bool = False) -> List[Document]:
        """Enumerate documents ordered by id."""
        pass

    @abstractmethod
    async def update_embedding(self, document_id: str, vector: np.ndarray) -> None:
        """Persist an embedding for a document.

        Raises ``DocumentNotFoundError`` if the document does not exist and
        ``ValueError`` if the vector has the wrong shape.
        """
        pass

    @abstractmethod
    async def count_documents(self) -> Dict[str, int]:
        """Return ``{"total": n, "with_embedding": m}``."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the document store is healthy."""
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None


def ensure_vector_dimension(vector: Any, dimension: Optional[int]) -> np.ndarray:
    """Coerce ``vector`` to a 1-D float32 array of the expected length."""
    array = np.asarray(vector, dtype=np.float32)
    if array.ndim != 1:
        raise ValueError("Vector must be one-dimensional")

    if dimension is not None and array.shape[0] != dimension:
        raise ValueError(
            f"Expected vector dimension {dimension}, "
            f"got {array.shape[0]}"
        )
    return array


class DocumentStoreError(Exception):
    """Base exception for document store operations."""
    pass


class DocumentStoreConnectionError(DocumentStoreError):
    """Connection error to the document store."""
    pass


class DocumentStoreQueryError(DocumentStoreError):
    """Query error in the document store."""
    pass


class DocumentNotFoundError(DocumentStoreError):
    """Document not found in store."""
    pass


class InvalidDocumentIdError(DocumentStoreError, ValueError):
    """Caller-supplied document id the backend cannot represent."""
    pass
