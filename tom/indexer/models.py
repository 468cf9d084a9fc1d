"""Data models for the BM25 index."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Tier = Literal[1, 2, 3]


@dataclass(frozen=True)
class BM25Document:
    """A document handed to the indexer by the corpus builder."""

    id: str
    content: str
    tier: Tier


@dataclass(frozen=True)
class IndexedDoc:
    id: str
    tier: Tier
    length: int
    term_freqs: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tier": self.tier,
            "length": self.length,
            "termFreqs": dict(self.term_freqs),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IndexedDoc:
        return cls(
            id=str(data["id"]),
            tier=int(data["tier"]),  # type: ignore[arg-type]
            length=int(data["length"]),
            term_freqs={str(t): int(f) for t, f in data.get("termFreqs", {}).items()},
        )


@dataclass(frozen=True)
class BM25Index:
    """A fully built, immutable BM25 index.

    Attributes:
        document_count: Number of indexed documents.
        avg_doc_length: Mean token count across documents.
        docs: Indexed documents, in input order.
        idf: Inverse document frequency per term.
    """

    document_count: int
    avg_doc_length: float
    docs: tuple[IndexedDoc, ...] = ()
    idf: dict[str, float] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> BM25Index:
        return cls(document_count=0, avg_doc_length=0.0)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the persisted camelCase field names."""
        return {
            "documentCount": self.document_count,
            "avgDocLength": float(self.avg_doc_length),
            "docs": [doc.to_dict() for doc in self.docs],
            "idf": dict(self.idf),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BM25Index:
        return cls(
            document_count=int(data["documentCount"]),
            avg_doc_length=float(data["avgDocLength"]),
            docs=tuple(IndexedDoc.from_dict(d) for d in data.get("docs", [])),
            idf={str(t): float(v) for t, v in data.get("idf", {}).items()},
        )


@dataclass(frozen=True)
class SearchResult:
    """A ranked hit: document id and tier-weighted BM25 score."""

    id: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "score": self.score}
