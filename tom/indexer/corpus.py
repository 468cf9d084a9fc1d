"""Corpus builder: turns the stored memory tiers into BM25 documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tom.indexer.bm25 import build_index
from tom.indexer.models import BM25Document, BM25Index

if TYPE_CHECKING:
    from tom.memory.models import SessionLog, SessionModel, UserModel
    from tom.memory.store import MemoryStore, Scope

USER_MODEL_DOC_ID = "user-model"


def session_log_document(session_log: SessionLog) -> BM25Document:
    """Tier 1: tool name, parameter names and outcome of every interaction."""
    content = " ".join(
        f"{i.tool_name} {' '.join(i.parameter_shape)} {i.outcome_summary}"
        for i in session_log.interactions
    )
    return BM25Document(id=f"session:{session_log.session_id}", content=content, tier=1)


def session_model_document(session_model: SessionModel) -> BM25Document:
    """Tier 2: intent, interaction patterns and coding preferences."""
    content = " ".join(
        [
            session_model.intent,
            *session_model.interaction_patterns,
            *session_model.coding_preferences,
        ]
    )
    return BM25Document(id=f"model:{session_model.session_id}", content=content, tier=2)


def user_model_document(user_model: UserModel) -> BM25Document:
    """Tier 3: both summaries plus ``category key value`` per cluster."""
    content = " ".join(
        [
            user_model.interaction_style_summary,
            user_model.coding_style_summary,
            *(f"{p.category} {p.key} {p.value}" for p in user_model.preferences_clusters),
        ]
    )
    return BM25Document(id=USER_MODEL_DOC_ID, content=content, tier=3)


def build_corpus(store: MemoryStore, scope: Scope = "global") -> list[BM25Document]:
    """Collect documents from all three tiers of one scope.

    Session ids are visited in sorted order so the same stored data always
    produces the same corpus. Unreadable files are skipped.
    """
    documents: list[BM25Document] = []

    for session_id in store.list_session_ids(1, scope):
        session_log = store.read_session_log(session_id, scope)
        if session_log is not None:
            documents.append(session_log_document(session_log))

    for session_id in store.list_session_ids(2, scope):
        session_model = store.read_session_model(session_id, scope)
        if session_model is not None:
            documents.append(session_model_document(session_model))

    user_model = store.read_user_model(scope)
    if user_model is not None:
        documents.append(user_model_document(user_model))

    return documents


def build_memory_index(store: MemoryStore, scope: Scope = "global") -> BM25Index:
    """Build a fresh index over everything stored in *scope*."""
    return build_index(build_corpus(store, scope))
