"""Tests for hybrid score fusion."""

import random

import numpy as np
import pytest

from search_libs.document_store.base import Document
from search_libs.ranking.fusion import HybridScorer, validate_weights
from search_libs.ranking.signals import SearchVector, TextRelevanceSignal, parse_websearch_query


def make_candidate(doc_id, title, body="", embedding=None):
    if embedding is not None:
        embedding = np.asarray(embedding, dtype=np.float32)
    document = Document(id=doc_id, title=title, body=body, embedding=embedding)
    return document, SearchVector.from_text(title, body)


def test_validate_weights():
    validate_weights(0.6, 0.4)
    validate_weights(1.0, 0.0)

    with pytest.raises(ValueError):
        validate_weights(0.7, 0.4)
    with pytest.raises(ValueError):
        validate_weights(-0.2, 1.2)


def test_scorer_rejects_bad_limit():
    with pytest.raises(ValueError):
        HybridScorer(limit=0)


def test_hybrid_score_formula():
    """hybrid = 0.6 * normalized text rank + 0.4 * cosine."""
    scorer = HybridScorer()
    document, vector = make_candidate("a", "Engineer", "Builds bridges", [1.0, 1.0, 0.0])
    query_embedding = np.array([1.0, 0.0, 0.0], dtype=np.float32)

    result = scorer.score(parse_websearch_query("engineer"), query_embedding, document, vector)

    signal = TextRelevanceSignal()
    expected_text = signal.normalize(signal.rank(parse_websearch_query("engineer"), vector))
    expected_vector = 1 / np.sqrt(2)

    assert result.text_score == pytest.approx(expected_text)
    assert result.vector_score == pytest.approx(expected_vector, rel=1e-6)
    assert result.hybrid_score == pytest.approx(0.6 * expected_text + 0.4 * expected_vector, rel=1e-6)
    assert 0.0 <= result.hybrid_score <= 1.0


def test_missing_embedding_contributes_zero():
    scorer = HybridScorer()
    document, vector = make_candidate("a", "Engineer")

    result = scorer.score(parse_websearch_query("engineer"), np.ones(3), document, vector)

    assert result.vector_score == 0.0
    assert result.hybrid_score == pytest.approx(0.6 * result.text_score)


def test_ranking_independent_of_candidate_order():
    candidates = [
        make_candidate(f"doc-{i:02d}", f"Engineer {i}", "engineer " * (i % 4), [i % 3, 1.0, i % 5])
        for i in range(12)
    ]
    query_embedding = np.array([1.0, 0.5, 0.0])
    scorer = HybridScorer()

    expected = [r.id for r in scorer.rank("engineer", query_embedding, candidates)]

    shuffled = list(candidates)
    random.Random(7).shuffle(shuffled)
    assert [r.id for r in scorer.rank("engineer", query_embedding, shuffled)] == expected


def test_ties_are_ordered_by_id():
    candidates = [
        make_candidate(doc_id, "Engineer", "", [1.0, 0.0])
        for doc_id in ("c", "a", "b")
    ]
    results = HybridScorer().rank("engineer", np.array([1.0, 0.0]), candidates)

    assert [r.id for r in results] == ["a", "b", "c"]
    assert len({r.hybrid_score for r in results}) == 1


def test_repeated_ranking_is_deterministic():
    candidates = [make_candidate(str(i), "Analyst", "data", [1.0, float(i)]) for i in range(5)]
    scorer = HybridScorer()

    first = scorer.rank("data", np.array([1.0, 1.0]), candidates)
    second = scorer.rank("data", np.array([1.0, 1.0]), candidates)

    assert [r.to_dict() for r in first] == [r.to_dict() for r in second]


def test_result_limit():
    candidates = [make_candidate(f"{i:02d}", "Engineer") for i in range(15)]

    assert len(HybridScorer().rank("engineer", None, candidates)) == 10
    assert len(HybridScorer(limit=3).rank("engineer", None, candidates)) == 3


def test_all_embeddings_missing_ranks_by_text():
    candidates = [
        make_candidate("a", "Developer", "engineer"),
        make_candidate("b", "Engineer", "engineer engineer"),
        make_candidate("c", "Engineer", ""),
    ]
    results = HybridScorer().rank("engineer", np.array([1.0, 0.0]), candidates)

    assert [r.id for r in results] == ["b", "c", "a"]
    assert all(r.vector_score == 0.0 for r in results)


def test_no_token_overlap_ranks_by_vector():
    candidates = [
        make_candidate("a", "Plumber", "", [0.0, 1.0]),
        make_candidate("b", "Carpenter", "", [1.0, 0.0]),
        make_candidate("c", "Welder", "", [1.0, 1.0]),
    ]
    results = HybridScorer().rank("engineer", np.array([1.0, 0.0]), candidates)

    assert [r.id for r in results] == ["b", "c", "a"]
    assert all(r.text_score == 0.0 for r in results)
    assert results[0].hybrid_score == pytest.approx(0.4)


def test_custom_weights():
    candidates = [
        make_candidate("text", "Engineer", "", [0.0, 1.0]),
        make_candidate("vector", "Plumber", "", [1.0, 0.0]),
    ]
    query_embedding = np.array([1.0, 0.0])

    text_heavy = HybridScorer(text_weight=1.0, vector_weight=0.0).rank("engineer", query_embedding, candidates)
    vector_heavy = HybridScorer(text_weight=0.0, vector_weight=1.0).rank("engineer", query_embedding, candidates)

    assert text_heavy[0].id == "text"
    assert vector_heavy[0].id == "vector"
