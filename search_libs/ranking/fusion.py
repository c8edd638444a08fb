"""Weighted score fusion for hybrid search.

``HybridScorer`` blends the normalised text relevance and the vector
similarity of every candidate with fixed weights and keeps the top results:

    hybrid = text_weight * normalize(text_rank) + vector_weight * similarity

Each score is a pure function of ``(query, document)``, so the ranking does
not depend on the order candidates are supplied in. Equal scores are ordered
by ascending document id.
"""

import math
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
import structlog

from ..document_store.base import Document, ScoredDocument
from .signals import (
    ParsedQuery,
    SearchVector,
    TextRelevanceSignal,
    VectorSimilaritySignal,
    parse_websearch_query,
)

logger = structlog.get_logger("ranking.fusion")

DEFAULT_TEXT_WEIGHT = 0.6
DEFAULT_VECTOR_WEIGHT = 0.4
DEFAULT_RESULT_LIMIT = 10


def validate_weights(text_weight: float, vector_weight: float) -> None:
    """Reject negative weights or weights that do not sum to 1.0."""
    if text_weight < 0 or vector_weight < 0:
        raise ValueError("Hybrid weights must be non-negative")
    if not math.isclose(text_weight + vector_weight, 1.0, rel_tol=0.0, abs_tol=1e-9):
        raise ValueError(
            f"Hybrid weights must sum to 1.0, got {text_weight} + {vector_weight}"
        )


def ranking_key(result: ScoredDocument) -> Tuple[float, str]:
    """Sort key: descending score, then ascending id."""
    return (-result.hybrid_score, result.id)


class HybridScorer:
    """Combine text and vector relevance into one ranked result set."""

    def __init__(
        self,
        text_weight: float = DEFAULT_TEXT_WEIGHT,
        vector_weight: float = DEFAULT_VECTOR_WEIGHT,
        limit: int = DEFAULT_RESULT_LIMIT,
        text_signal: Optional[TextRelevanceSignal] = None,
        vector_signal: Optional[VectorSimilaritySignal] = None
    ):
        validate_weights(text_weight, vector_weight)
        if limit < 1:
            raise ValueError("Result limit must be positive")

        self.text_weight = text_weight
        self.vector_weight = vector_weight
        self.limit = limit
        self.text_signal = text_signal or TextRelevanceSignal()
        self.vector_signal = vector_signal or VectorSimilaritySignal()

    def score(
        self,
        query: ParsedQuery,
        query_embedding: Optional[np.ndarray],
        document: Document,
        search_vector: SearchVector
    ) -> ScoredDocument:
        """Score a single document."""
        text_score = self.text_signal.normalize(self.text_signal.rank(query, search_vector))
        vector_score = self.vector_signal.score(query_embedding, document.embedding)
        hybrid_score = self.text_weight * text_score + self.vector_weight * vector_score

        return ScoredDocument(
            id=document.id,
            title=document.title,
            body=document.body,
            hybrid_score=hybrid_score,
            text_score=text_score,
            vector_score=vector_score,
        )

    def rank(
        self,
        query: Union[str, ParsedQuery],
        query_embedding: Optional[np.ndarray],
        candidates: Iterable[Tuple[Document, SearchVector]],
        limit: Optional[int] = None
    ) -> List[ScoredDocument]:
        """Score every candidate and return the top ``limit`` results."""
        parsed = parse_websearch_query(query) if isinstance(query, str) else query

        scored = [
            self.score(parsed, query_embedding, document, search_vector)
            for document, search_vector in candidates
        ]
        scored.sort(key=ranking_key)
        results = scored[:limit or self.limit]

        logger.debug(
            "Hybrid scoring completed",
            candidates=len(scored),
            returned=len(results),
            text_weight=self.text_weight,
            vector_weight=self.vector_weight,
        )
        return results
