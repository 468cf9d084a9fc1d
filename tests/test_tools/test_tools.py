"""Tests for tom.tools.tools: agent tool implementations."""

from __future__ import annotations

from unittest.mock import MagicMock

from tom.indexer.bm25 import build_index
from tom.indexer.models import BM25Document
from tom.memory.models import UserModel
from tom.tools.tools import (
    InvocationState,
    analyze_session,
    create_invocation_state,
    give_suggestions,
    initialize_user_profile,
    read_memory_file,
    search_memory,
)


def _make_engine() -> MagicMock:
    """Create a mock TomEngine with common defaults."""
    engine = MagicMock()
    engine.config.search_k = 3
    engine.config.max_memory_operations = 3
    engine.config.preference_decay_days = 30
    return engine


# -------------------------------------------------------------------------
# InvocationState
# -------------------------------------------------------------------------


class TestInvocationState:
    def test_from_engine_config(self) -> None:
        engine = _make_engine()
        engine.config.max_memory_operations = 5
        state = create_invocation_state(engine)
        assert state == InvocationState(operation_count=0, max_operations=5)

    def test_consume_returns_new_state(self) -> None:
        state = InvocationState()
        consumed = state.consume()
        assert state.operation_count == 0
        assert consumed.operation_count == 1

    def test_allowed_until_budget_spent(self) -> None:
        state = InvocationState(max_operations=2)
        assert state.allowed
        assert state.consume().allowed
        assert not state.consume().consume().allowed


# -------------------------------------------------------------------------
# search_memory
# -------------------------------------------------------------------------


class TestSearchMemory:
    def test_search_prebuilt_index(self) -> None:
        engine = _make_engine()
        index = build_index(
            [
                BM25Document(id="model:s1", content="react hooks", tier=2),
                BM25Document(id="session:s1", content="vue", tier=1),
            ]
        )

        result, state = search_memory(engine, InvocationState(), "react", index=index)

        assert result == {
            "results": [{"id": "model:s1", "score": result["results"][0]["score"]}],
            "operation_count": 1,
        }
        assert state.operation_count == 1
        engine.load_or_build_index.assert_not_called()

    def test_search_uses_persisted_index(self) -> None:
        engine = _make_engine()
        engine.load_or_build_index.return_value = build_index([])

        result, _ = search_memory(engine, InvocationState(), "react", scope="project")

        engine.load_or_build_index.assert_called_once_with("project")
        assert result["results"] == []

    def test_budget_exhausted(self) -> None:
        engine = _make_engine()
        state = InvocationState(operation_count=3, max_operations=3)

        result, new_state = search_memory(engine, state, "react")

        assert result == {"results": [], "operation_count": 3}
        assert new_state is state
        engine.load_or_build_index.assert_not_called()

    def test_budget_shared_across_tools(self, engine, make_session_log) -> None:
        engine.store.write_session_log(make_session_log(session_id="s1"))
        state = InvocationState(max_operations=2)

        _, state = search_memory(engine, state, "edit")
        _, state = read_memory_file(engine, state, 1, "s1")
        result, state = analyze_session(engine, state, "s1")

        assert result["session_model"] is None
        assert state.operation_count == 2
        assert engine.store.read_session_model("s1") is None


# -------------------------------------------------------------------------
# read_memory_file
# -------------------------------------------------------------------------


class TestReadMemoryFile:
    def test_read_tiers(self, engine, make_session_log, make_session_model) -> None:
        engine.store.write_session_log(make_session_log(session_id="s1"))
        engine.store.write_session_model(make_session_model(session_id="s1"))
        engine.store.write_user_model(UserModel(coding_style_summary="typed"))
        state = InvocationState()

        tier1, state = read_memory_file(engine, state, 1, "s1")
        tier2, state = read_memory_file(engine, state, 2, "s1")
        tier3, state = read_memory_file(engine, state, 3)

        assert tier1["data"]["sessionId"] == "s1"
        assert tier2["data"]["intent"] == "brief code modification"
        assert tier3["data"]["codingStyleSummary"] == "typed"
        assert tier3["operation_count"] == 3

    def test_missing_file(self, engine) -> None:
        result, state = read_memory_file(engine, InvocationState(), 2, "nope")
        assert result == {"data": None, "operation_count": 1}
        assert state.operation_count == 1

    def test_project_scope(self, engine, make_session_model) -> None:
        engine.store.write_session_model(make_session_model(session_id="p1"), "project")

        result, _ = read_memory_file(engine, InvocationState(), 2, "p1", scope="project")

        assert result["data"]["sessionId"] == "p1"

    def test_budget_exhausted(self, engine) -> None:
        state = InvocationState(operation_count=3)
        result, new_state = read_memory_file(engine, state, 3)
        assert result == {"data": None, "operation_count": 3}
        assert new_state is state


# -------------------------------------------------------------------------
# analyze_session
# -------------------------------------------------------------------------


class TestAnalyzeSession:
    def test_writes_session_model(self, engine, make_session_log) -> None:
        engine.store.write_session_log(make_session_log(session_id="s1"))

        result, state = analyze_session(engine, InvocationState(), "s1")

        assert result["session_model"]["sessionId"] == "s1"
        assert state.operation_count == 1
        assert engine.store.read_session_model("s1") is not None
        assert engine.store.read_user_model("global") is None

    def test_missing_log(self, engine) -> None:
        result, state = analyze_session(engine, InvocationState(), "ghost")
        assert result == {"session_model": None, "operation_count": 1}
        assert state.operation_count == 1


# -------------------------------------------------------------------------
# initialize_user_profile / give_suggestions
# -------------------------------------------------------------------------


class TestInitializeUserProfile:
    def test_bootstraps_from_session_models(self, engine, make_session_model) -> None:
        engine.store.write_session_model(
            make_session_model(session_id="a", coding_preferences=["Go"])
        )
        engine.store.write_session_model(
            make_session_model(session_id="b", coding_preferences=["Go"])
        )

        result = initialize_user_profile(engine)

        assert result == {"created": True, "session_count": 2}
        model = engine.store.read_user_model("global")
        go = next(c for c in model.preferences_clusters if c.value == "Go")
        assert go.session_count == 2

    def test_existing_model_untouched(self, engine) -> None:
        engine.store.write_user_model(UserModel(coding_style_summary="keep"))

        result = initialize_user_profile(engine)

        assert result == {"created": False, "session_count": 0}
        assert engine.store.read_user_model("global").coding_style_summary == "keep"

    def test_no_sessions_writes_empty_model(self, engine) -> None:
        assert initialize_user_profile(engine, "project") == {"created": True, "session_count": 0}
        assert engine.store.read_user_model("project") == UserModel.empty()


class TestGiveSuggestions:
    def test_filters_invalid(self) -> None:
        result = give_suggestions(
            [
                {"type": "preference", "content": "Use TypeScript", "confidence": 0.8},
                {"type": "rumor", "content": "x", "confidence": 0.5},
                {"type": "style", "content": "Be terse"},
            ]
        )
        assert result["accepted"] == 1
        assert result["suggestions"] == [
            {
                "type": "preference",
                "content": "Use TypeScript",
                "confidence": 0.8,
                "sourceSessions": [],
            }
        ]

    def test_empty(self) -> None:
        assert give_suggestions([]) == {"accepted": 0, "suggestions": []}
