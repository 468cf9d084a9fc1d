"""Indexer module: BM25 indexing and ranking over the memory tiers."""

from tom.indexer.bm25 import build_index, search, tokenize
from tom.indexer.corpus import build_corpus, build_memory_index
from tom.indexer.models import BM25Document, BM25Index, IndexedDoc, SearchResult

__all__ = [
    "BM25Document",
    "BM25Index",
    "IndexedDoc",
    "SearchResult",
    "build_corpus",
    "build_index",
    "build_memory_index",
    "search",
    "tokenize",
]
