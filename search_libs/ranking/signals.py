"""Relevance signals for hybrid search.

Application-layer counterparts of the two database primitives the PostgreSQL
store relies on:

- ``TextRelevanceSignal`` mirrors ``ts_rank`` over a ``tsvector`` built with
  the ``simple`` text search configuration, title weighted ``A`` and body
  weighted ``B``. Queries use ``websearch_to_tsquery`` syntax.
- ``VectorSimilaritySignal`` mirrors ``1 - (embedding <=> query)`` clamped to
  ``[0, 1]``, with a missing embedding scoring 0.

Tokenization is locale-agnostic on purpose: lowercase Unicode word runs, no
stemming, no stop-words.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

_WORD_RE = re.compile(r"\w+", re.UNICODE)
_QUERY_TOKEN_RE = re.compile(r'(-?)"([^"]*)"?|(\S+)')

# Postgres default weights for the A and B labels
TITLE_WEIGHT = 1.0
BODY_WEIGHT = 0.4

Phrase = Tuple[str, ...]


def tokenize(text: Optional[str]) -> List[str]:
    """Split text into lowercase lexemes."""
    if not text:
        return []
    return [token.lower() for token in _WORD_RE.findall(text)]


@dataclass(frozen=True)
class QueryClause:
    """One OR-branch of a parsed query: all ``required`` and no ``excluded``."""

    required: Tuple[Phrase, ...] = ()
    excluded: Tuple[Phrase, ...] = ()


@dataclass(frozen=True)
class ParsedQuery:
    """A ``websearch_to_tsquery``-style query as a disjunction of clauses."""

    clauses: Tuple[QueryClause, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(clause.required for clause in self.clauses)

    @property
    def lexemes(self) -> Tuple[str, ...]:
        """Distinct positive lexemes in first-seen order."""
        seen: List[str] = []
        for clause in self.clauses:
            for phrase in clause.required:
                for lexeme in phrase:
                    if lexeme not in seen:
                        seen.append(lexeme)
        return tuple(seen)

    def to_tsquery(self) -> str:
        """Render as ``to_tsquery`` input.

        Clauses without a positive term are dropped, so a query made only of
        exclusions renders as the empty string and matches nothing.
        """
        rendered = []
        for clause in self.clauses:
            if not clause.required:
                continue
            terms = [_tsquery_phrase(phrase) for phrase in clause.required]
            terms.extend("!" + _tsquery_phrase(phrase) for phrase in clause.excluded)
            rendered.append("(" + " & ".join(terms) + ")")
        return " | ".join(rendered)


def _tsquery_phrase(phrase: Phrase) -> str:
    quoted = ["'" + lexeme.replace("'", "''") + "'" for lexeme in phrase]
    if len(quoted) == 1:
        return quoted[0]
    return "(" + " <-> ".join(quoted) + ")"


def parse_websearch_query(text: Optional[str]) -> ParsedQuery:
    """Parse a raw query string.

    Unquoted words are ANDed, ``"quoted text"`` is a phrase, ``or`` starts a
    new alternative and a leading ``-`` excludes the following word or
    phrase. A word that tokenizes into several lexemes (``e-mail``) becomes a
    phrase, as Postgres does.
    """
    clauses: List[QueryClause] = []
    required: List[Phrase] = []
    excluded: List[Phrase] = []
    pending_or = False

    for match in _QUERY_TOKEN_RE.finditer(text or ""):
        negated, quoted, word = match.group(1), match.group(2), match.group(3)

        if word is not None:
            if word.lower() == "or":
                pending_or = bool(required or excluded)
                continue
            negated = "-" if word.startswith("-") else ""
            tokens = tokenize(word[1:] if negated else word)
        else:
            tokens = tokenize(quoted)

        if not tokens:
            continue

        if pending_or:
            clauses.append(QueryClause(tuple(required), tuple(excluded)))
            required, excluded = [], []
            pending_or = False

        if negated:
            excluded.append(tuple(tokens))
        else:
            required.append(tuple(tokens))

    if required or excluded:
        clauses.append(QueryClause(tuple(required), tuple(excluded)))

    return ParsedQuery(tuple(clauses))


@dataclass
class SearchVector:
    """Derived lexical index of a document.

    Rebuilt from ``title`` and ``body`` on every write; never set directly.
    Positions run through the title first and continue into the body, so a
    phrase may span the two fields just as it can in a concatenated tsvector.
    """

    title_tokens: Tuple[str, ...] = ()
    body_tokens: Tuple[str, ...] = ()
    title_counts: Counter = field(default_factory=Counter, repr=False)
    body_counts: Counter = field(default_factory=Counter, repr=False)

    @classmethod
    def from_text(cls, title: Optional[str], body: Optional[str]) -> "SearchVector":
        title_tokens = tuple(tokenize(title))
        body_tokens = tuple(tokenize(body))
        return cls(
            title_tokens=title_tokens,
            body_tokens=body_tokens,
            title_counts=Counter(title_tokens),
            body_counts=Counter(body_tokens),
        )

    def contains(self, phrase: Sequence[str]) -> bool:
        if not phrase:
            return False
        if len(phrase) == 1:
            lexeme = phrase[0]
            return lexeme in self.title_counts or lexeme in self.body_counts

        tokens = self.title_tokens + self.body_tokens
        width = len(phrase)
        target = tuple(phrase)
        return any(
            tokens[start:start + width] == target
            for start in range(len(tokens) - width + 1)
        )


class TextRelevanceSignal:
    """Keyword relevance of a parsed query against a ``SearchVector``.

    The raw rank sums, over distinct positive query lexemes, the weighted
    occurrence counts in title and body. Documents that do not satisfy the
    query's boolean structure rank 0.
    """

    def __init__(self, title_weight: float = TITLE_WEIGHT, body_weight: float = BODY_WEIGHT):
        if title_weight < 0 or body_weight < 0:
            raise ValueError("Field weights must be non-negative")
        self.title_weight = title_weight
        self.body_weight = body_weight

    def matches(self, query: ParsedQuery, vector: SearchVector) -> bool:
        for clause in query.clauses:
            if not clause.required:
                continue
            if not all(vector.contains(phrase) for phrase in clause.required):
                continue
            if any(vector.contains(phrase) for phrase in clause.excluded):
                continue
            return True
        return False

    def rank(self, query: ParsedQuery, vector: SearchVector) -> float:
        if query.is_empty or not self.matches(query, vector):
            return 0.0

        score = 0.0
        for lexeme in query.lexemes:
            score += self.title_weight * vector.title_counts.get(lexeme, 0)
            score += self.body_weight * vector.body_counts.get(lexeme, 0)
        return score

    @staticmethod
    def normalize(rank: float) -> float:
        """Map a raw rank into ``[0, 1)`` (``ts_rank`` normalization 32)."""
        if rank <= 0:
            return 0.0
        return rank / (rank + 1.0)


class VectorSimilaritySignal:
    """Cosine similarity mapped to ``[0, 1]``.

    A missing embedding on either side, or a zero vector, scores 0.
    """

    def score(
        self,
        query_embedding: Optional[np.ndarray],
        document_embedding: Optional[np.ndarray]
    ) -> float:
        if query_embedding is None or document_embedding is None:
            return 0.0

        query = np.asarray(query_embedding, dtype=np.float64)
        document = np.asarray(document_embedding, dtype=np.float64)
        if query.shape != document.shape:
            raise ValueError(
                f"Embedding shape mismatch: query {query.shape}, document {document.shape}"
            )

        query_norm = np.linalg.norm(query)
        document_norm = np.linalg.norm(document)
        if query_norm == 0.0 or document_norm == 0.0:
            return 0.0

        cosine = float(np.dot(query, document) / (query_norm * document_norm))
        return min(1.0, max(0.0, cosine))
