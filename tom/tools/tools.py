"""Agent tool implementations for tom.

Memory operations (search, read, analyze) draw on a per-invocation budget;
once it is spent they return an empty result instead of touching storage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Literal

from pydantic import ValidationError

from tom.indexer.bm25 import search
from tom.memory.aggregation import aggregate_session_into_model
from tom.memory.analysis import extract_session_model
from tom.memory.models import Suggestion, UserModel

if TYPE_CHECKING:
    from tom.core.engine import TomEngine
    from tom.indexer.models import BM25Index
    from tom.memory.store import Scope, UserModelScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationState:
    """Memory operations used so far by one agent invocation."""

    operation_count: int = 0
    max_operations: int = 3

    @property
    def allowed(self) -> bool:
        return self.operation_count < self.max_operations

    def consume(self) -> InvocationState:
        return replace(self, operation_count=self.operation_count + 1)


def create_invocation_state(engine: TomEngine) -> InvocationState:
    return InvocationState(max_operations=engine.config.max_memory_operations)


def search_memory(
    engine: TomEngine,
    state: InvocationState,
    query: str,
    k: int | None = None,
    index: BM25Index | None = None,
    scope: Scope = "global",
) -> tuple[dict[str, Any], InvocationState]:
    """BM25 search across all memory tiers.

    Args:
        index: Prebuilt index to query; the persisted one is used otherwise.
    """
    if not state.allowed:
        return {"results": [], "operation_count": state.operation_count}, state

    state = state.consume()
    if index is None:
        index = engine.load_or_build_index(scope)
    if k is None:
        k = engine.config.search_k
    results = search(index, query, k)
    return {
        "results": [r.to_dict() for r in results],
        "operation_count": state.operation_count,
    }, state


def read_memory_file(
    engine: TomEngine,
    state: InvocationState,
    tier: Literal[1, 2, 3],
    session_id: str = "",
    scope: UserModelScope | None = None,
) -> tuple[dict[str, Any], InvocationState]:
    """Read one tier file. Tier 3 defaults to the merged user model."""
    if not state.allowed:
        return {"data": None, "operation_count": state.operation_count}, state

    state = state.consume()
    file_scope: Scope = "project" if scope == "project" else "global"
    if tier == 1:
        model = engine.store.read_session_log(session_id, file_scope)
    elif tier == 2:
        model = engine.store.read_session_model(session_id, file_scope)
    else:
        model = engine.store.read_user_model(scope or "merged")

    return {
        "data": model.to_json_dict() if model is not None else None,
        "operation_count": state.operation_count,
    }, state


def analyze_session(
    engine: TomEngine,
    state: InvocationState,
    session_id: str,
    scope: Scope = "global",
) -> tuple[dict[str, Any], InvocationState]:
    """Extract and store the tier 2 model of a tier 1 session log."""
    if not state.allowed:
        return {"session_model": None, "operation_count": state.operation_count}, state

    state = state.consume()
    session_log = engine.store.read_session_log(session_id, scope)
    if session_log is None:
        return {"session_model": None, "operation_count": state.operation_count}, state

    session_model = extract_session_model(session_log)
    engine.store.write_session_model(session_model, scope)
    return {
        "session_model": session_model.to_json_dict(),
        "operation_count": state.operation_count,
    }, state


def initialize_user_profile(engine: TomEngine, scope: Scope = "global") -> dict[str, Any]:
    """Bootstrap the user model from stored session models.

    Does nothing when a user model already exists for *scope*.
    """
    if engine.store.read_user_model(scope) is not None:
        return {"created": False, "session_count": 0}

    model = UserModel.empty()
    session_count = 0
    for session_id in engine.store.list_session_ids(2, scope):
        session_model = engine.store.read_session_model(session_id, scope)
        if session_model is not None:
            model = aggregate_session_into_model(
                model, session_model, engine.config.preference_decay_days
            )
            session_count += 1

    engine.store.write_user_model(model, scope)
    return {"created": True, "session_count": session_count}


def give_suggestions(suggestions: list[dict[str, Any]]) -> dict[str, Any]:
    """Validate agent suggestions, keeping only well-formed ones."""
    accepted: list[Suggestion] = []
    for raw in suggestions:
        try:
            accepted.append(Suggestion.model_validate(raw))
        except ValidationError as e:
            logger.debug("Dropping invalid suggestion: %s", e)

    return {
        "accepted": len(accepted),
        "suggestions": [s.to_json_dict() for s in accepted],
    }
