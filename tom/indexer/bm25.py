"""Okapi BM25: index building and tier-weighted ranking across memory tiers."""

from __future__ import annotations

import math
import re
from collections import Counter
from collections.abc import Iterable

from tom.indexer.models import BM25Document, BM25Index, IndexedDoc, SearchResult

K1 = 1.2
B = 0.75

# Aggregated memory outranks raw logs at equal textual relevance.
TIER_WEIGHTS: dict[int, int] = {1: 1, 2: 2, 3: 3}

_NON_WORD = re.compile(r"\W+", re.ASCII)


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------


def tokenize(text: str) -> list[str]:
    """Lowercase *text* and split it on runs of non-word characters."""
    return [token for token in _NON_WORD.split(text.lower()) if token]


# ---------------------------------------------------------------------------
# Index building
# ---------------------------------------------------------------------------


def build_index(documents: Iterable[BM25Document]) -> BM25Index:
    """Build a BM25 index from scratch.

    Documents and terms are visited in input order and lengths are summed as
    integers, so the same input always yields an identical index.

    Args:
        documents: Documents to index. An empty iterable yields an empty index.

    Returns:
        The built BM25Index.
    """
    indexed: list[IndexedDoc] = []
    doc_freqs: Counter[str] = Counter()
    total_length = 0

    for doc in documents:
        tokens = tokenize(doc.content)
        term_freqs = dict(Counter(tokens))
        indexed.append(
            IndexedDoc(id=doc.id, tier=doc.tier, length=len(tokens), term_freqs=term_freqs)
        )
        total_length += len(tokens)
        doc_freqs.update(term_freqs.keys())

    if not indexed:
        return BM25Index.empty()

    n = len(indexed)
    # "+1" inside the log keeps IDF non-negative for terms in every document.
    idf = {term: math.log((n - df + 0.5) / (df + 0.5) + 1) for term, df in doc_freqs.items()}

    return BM25Index(
        document_count=n,
        avg_doc_length=total_length / n,
        docs=tuple(indexed),
        idf=idf,
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def score_document(index: BM25Index, doc: IndexedDoc, query_tokens: list[str]) -> float:
    """Raw (unweighted) BM25 score of *doc* for the tokenized query."""
    score = 0.0
    for token in query_tokens:
        tf = doc.term_freqs.get(token, 0)
        if tf == 0:
            continue
        norm = 1 - B + B * (doc.length / index.avg_doc_length)
        score += index.idf.get(token, 0.0) * (tf * (K1 + 1)) / (tf + K1 * norm)
    return score


def search(index: BM25Index, query: str, k: int = 3) -> list[SearchResult]:
    """Rank indexed documents against *query*.

    Raw scores are multiplied by the document's tier weight. Documents with
    no matching term are left out. Results are ordered by score descending,
    then by document id ascending, and truncated to *k*.

    Args:
        index: A built (or reloaded) index.
        query: Free-text query, tokenized like the indexed content.
        k: Maximum number of results.

    Returns:
        Up to *k* SearchResult entries.
    """
    if index.document_count == 0 or k <= 0:
        return []

    query_tokens = tokenize(query)
    if not query_tokens:
        return []

    scored: list[SearchResult] = []
    for doc in index.docs:
        raw = score_document(index, doc, query_tokens)
        if raw > 0:
            scored.append(SearchResult(id=doc.id, score=raw * TIER_WEIGHTS.get(doc.tier, 1)))

    scored.sort(key=lambda r: (-r.score, r.id))
    return scored[:k]
