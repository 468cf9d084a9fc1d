"""Session pruning: caps the number of retained tier 1 sessions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tom.indexer.corpus import build_memory_index
from tom.memory.store import MemoryStore, Scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PruneResult:
    sessions_before_prune: int
    sessions_after_prune: int
    index_rebuilt: bool
    pruned_session_ids: list[str] = field(default_factory=list)


def prune_old_sessions(
    store: MemoryStore,
    max_sessions_retained: int,
    scope: Scope = "global",
) -> PruneResult:
    """Delete the oldest sessions once more than *max_sessions_retained* exist.

    Sessions are ordered by ``started_at`` (session id breaks ties). Each
    pruned session loses both its tier 1 log and its tier 2 model, and the
    index is rebuilt afterwards.
    """
    sessions = []
    for session_id in store.list_session_ids(1, scope):
        log = store.read_session_log(session_id, scope)
        if log is not None:
            sessions.append((log.started_at, session_id))

    before = len(sessions)
    if before <= max_sessions_retained:
        return PruneResult(
            sessions_before_prune=before,
            sessions_after_prune=before,
            index_rebuilt=False,
        )

    sessions.sort()
    to_remove = [session_id for _, session_id in sessions[: before - max_sessions_retained]]

    for session_id in to_remove:
        store.delete_session_log(session_id, scope)
        store.delete_session_model(session_id, scope)

    store.save_index(build_memory_index(store, scope), scope)
    logger.info("Pruned %d sessions from %s scope", len(to_remove), scope)

    return PruneResult(
        sessions_before_prune=before,
        sessions_after_prune=before - len(to_remove),
        index_rebuilt=True,
        pruned_session_ids=to_remove,
    )
