"""TomEngine -- central orchestrator for consolidation and recall."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from tom.core.config import TomConfig, load_config
from tom.core.hooks import HookEvent, HookManager
from tom.indexer.bm25 import search as bm25_search
from tom.indexer.corpus import build_memory_index
from tom.indexer.models import BM25Index, SearchResult
from tom.memory.aggregation import aggregate_session_into_model
from tom.memory.analysis import extract_session_model
from tom.memory.models import PreferenceCluster, SessionModel, UserModel
from tom.memory.pruning import PruneResult, prune_old_sessions
from tom.memory.store import SCOPES, DeletedSummary, MemoryStore, Scope, StorageStats

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of consolidating one completed session."""

    success: bool
    session_id: str
    session_model: SessionModel | None = None
    user_model_updated: bool = False
    index_rebuilt: bool = False
    error: str | None = None


@dataclass(frozen=True)
class ForgetResult:
    session_id: str
    tier1_deleted: bool
    tier2_deleted: bool
    tier3_rebuilt: bool


@dataclass(frozen=True)
class StatusReport:
    has_model: bool
    config: dict[str, Any]
    storage: StorageStats
    top_preferences: list[PreferenceCluster] = field(default_factory=list)
    interaction_style_summary: str = ""
    coding_style_summary: str = ""


@dataclass(frozen=True)
class SessionEntry:
    session_id: str
    started_at: datetime
    intent: str
    scope: Scope
    will_be_pruned: bool


@dataclass(frozen=True)
class InspectReport:
    """Everything tom has stored about the user.

    Attributes:
        sessions: Stored sessions across both scopes, oldest first.
        user_model: The merged user model, or None before the first analysis.
        max_sessions_retained: Configured retention limit.
        prune_count: Oldest sessions that the next stored session would push
            out of retention.
    """

    sessions: list[SessionEntry]
    user_model: UserModel | None
    max_sessions_retained: int
    prune_count: int

    @property
    def total_session_count(self) -> int:
        return len(self.sessions)

    def preferences_by_category(self) -> dict[str, list[PreferenceCluster]]:
        """Group user model clusters by category, strongest first within each."""
        groups: dict[str, list[PreferenceCluster]] = {}
        if self.user_model is None:
            return groups
        for pref in self.user_model.preferences_clusters:
            groups.setdefault(pref.category, []).append(pref)
        return {
            category: sorted(prefs, key=lambda p: p.confidence, reverse=True)
            for category, prefs in groups.items()
        }


class TomEngine:
    """Wires configuration, tier storage and lifecycle hooks together.

    Every operation here reads its inputs from the store, runs the pure
    memory/indexer functions and writes the results back.
    """

    def __init__(self, config: TomConfig | None = None) -> None:
        self.config = config or load_config()
        self._store: MemoryStore | None = None
        self._hooks: HookManager | None = None
        self._initialized = False

    def initialize(self) -> None:
        """Initialize all components. Must be called before use."""
        if self._initialized:
            return
        self._store = MemoryStore(self.config.global_dir, self.config.project_dir)
        self._hooks = HookManager()
        self._initialized = True

    @property
    def store(self) -> MemoryStore:
        self._ensure_initialized()
        return self._store  # type: ignore[return-value]

    @property
    def hooks(self) -> HookManager:
        self._ensure_initialized()
        return self._hooks  # type: ignore[return-value]

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("TomEngine not initialized. Call initialize() first.")

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------

    def analyze_completed_session(self, session_id: str, scope: Scope = "global") -> AnalysisResult:
        """Consolidate a finished session into memory.

        1. Read the tier 1 session log
        2. Extract and store the tier 2 session model
        3. Aggregate it into the tier 3 user model
        4. Rebuild the BM25 index
        5. Record the run in the usage log
        """
        self.hooks.emit(HookEvent.PRE_ANALYZE, {"session_id": session_id, "scope": scope})

        session_log = self.store.read_session_log(session_id, scope)
        if session_log is None:
            logger.info("No session log for %s in %s scope", session_id, scope)
            return AnalysisResult(
                success=False,
                session_id=session_id,
                error=f"Session log not found for {session_id}",
            )

        try:
            session_model = extract_session_model(session_log)
            self.store.write_session_model(session_model, scope)

            user_model = aggregate_session_into_model(
                self.store.read_user_model(scope),
                session_model,
                self.config.preference_decay_days,
            )
            self.store.write_user_model(user_model, scope)
            self.rebuild_index(scope)
        except Exception as e:
            self.store.append_usage(
                "session-analysis-error", self.config.memory_update_model, session_id
            )
            self.hooks.emit(HookEvent.ON_ERROR, {"session_id": session_id, "error": e})
            raise

        self.store.append_usage("session-analysis", self.config.memory_update_model, session_id)
        result = AnalysisResult(
            success=True,
            session_id=session_id,
            session_model=session_model,
            user_model_updated=True,
            index_rebuilt=True,
        )
        self.hooks.emit(HookEvent.POST_ANALYZE, {"session_id": session_id, "result": result})
        return result

    def rebuild_user_model(self, scope: Scope = "global") -> UserModel:
        """Rebuild the user model from scratch out of every stored session model.

        Session models are replayed in session-id order.
        """
        model = UserModel.empty()
        for session_id in self.store.list_session_ids(2, scope):
            session_model = self.store.read_session_model(session_id, scope)
            if session_model is not None:
                model = aggregate_session_into_model(
                    model, session_model, self.config.preference_decay_days
                )
        self.store.write_user_model(model, scope)
        return model

    # ------------------------------------------------------------------
    # Recall
    # ------------------------------------------------------------------

    def rebuild_index(self, scope: Scope = "global") -> BM25Index:
        index = build_memory_index(self.store, scope)
        path = self.store.save_index(index, scope)
        logger.debug("Indexed %d documents into %s", index.document_count, path)
        self.hooks.emit(
            HookEvent.POST_INDEX, {"scope": scope, "document_count": index.document_count}
        )
        return index

    def load_or_build_index(self, scope: Scope = "global") -> BM25Index:
        index = self.store.load_index(scope)
        if index is None:
            index = self.rebuild_index(scope)
        return index

    def search(self, query: str, k: int | None = None, scope: Scope = "global") -> list[SearchResult]:
        """Search the persisted index of *scope*, building it if absent."""
        self.hooks.emit(HookEvent.PRE_SEARCH, {"query": query, "scope": scope})
        if k is None:
            k = self.config.search_k
        results = bm25_search(self.load_or_build_index(scope), query, k)
        self.hooks.emit(HookEvent.POST_SEARCH, {"query": query, "results": results})
        return results

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def forget_session(self, session_id: str) -> ForgetResult:
        """Delete a session from both scopes and rebuild what depended on it."""
        tier1_deleted = False
        tier2_deleted = False
        tier3_rebuilt = False

        for scope in SCOPES:
            log_deleted = self.store.delete_session_log(session_id, scope)
            model_deleted = self.store.delete_session_model(session_id, scope)
            if log_deleted or model_deleted:
                self.rebuild_user_model(scope)
                self.rebuild_index(scope)
                tier3_rebuilt = True
            tier1_deleted = tier1_deleted or log_deleted
            tier2_deleted = tier2_deleted or model_deleted

        result = ForgetResult(
            session_id=session_id,
            tier1_deleted=tier1_deleted,
            tier2_deleted=tier2_deleted,
            tier3_rebuilt=tier3_rebuilt,
        )
        self.hooks.emit(HookEvent.POST_FORGET, {"result": result})
        return result

    def prune(self, scope: Scope = "global") -> PruneResult:
        result = prune_old_sessions(self.store, self.config.max_sessions_retained, scope)
        self.hooks.emit(HookEvent.POST_PRUNE, {"scope": scope, "result": result})
        return result

    def reset(self) -> dict[Scope, DeletedSummary]:
        """Delete all stored memory in both scopes. Settings are untouched."""
        return {scope: self.store.reset(scope) for scope in SCOPES}

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def config_summary(self) -> dict[str, Any]:
        cfg = self.config
        return {
            "enabled": cfg.enabled,
            "consultThreshold": cfg.consult_threshold,
            "models": {
                "memoryUpdate": cfg.memory_update_model,
                "consultation": cfg.consultation_model,
            },
            "preferenceDecayDays": cfg.preference_decay_days,
            "maxSessionsRetained": cfg.max_sessions_retained,
        }

    def status(self, limit: int = 10) -> StatusReport:
        """Summarize configuration, storage and the strongest preferences."""
        user_model = self.store.read_user_model("merged")
        storage = self.store.storage_stats()
        if user_model is None:
            return StatusReport(has_model=False, config=self.config_summary(), storage=storage)

        top = sorted(user_model.preferences_clusters, key=lambda p: p.confidence, reverse=True)
        return StatusReport(
            has_model=True,
            config=self.config_summary(),
            storage=storage,
            top_preferences=top[:limit],
            interaction_style_summary=user_model.interaction_style_summary,
            coding_style_summary=user_model.coding_style_summary,
        )

    def inspect(self) -> InspectReport:
        """List stored sessions and the merged user model.

        Sessions are deduplicated across scopes (global wins) and sorted by
        start time. Once the count reaches ``max_sessions_retained`` the
        oldest ``total - max + 1`` are flagged, since storing one more
        session would prune them.
        """
        found: dict[str, tuple[datetime, Scope]] = {}
        for scope in SCOPES:
            for session_id in self.store.list_session_ids(1, scope):
                log = self.store.read_session_log(session_id, scope)
                if log is not None and log.session_id not in found:
                    found[log.session_id] = (log.started_at, scope)

        ordered = sorted(found.items(), key=lambda item: item[1][0])
        limit = self.config.max_sessions_retained
        total = len(ordered)
        prune_count = total - limit + 1 if total >= limit else 0

        sessions = []
        for position, (session_id, (started_at, scope)) in enumerate(ordered):
            session_model = self.store.read_session_model(session_id, scope)
            sessions.append(
                SessionEntry(
                    session_id=session_id,
                    started_at=started_at,
                    intent=session_model.intent if session_model is not None else "",
                    scope=scope,
                    will_be_pruned=position < prune_count,
                )
            )

        return InspectReport(
            sessions=sessions,
            user_model=self.store.read_user_model("merged"),
            max_sessions_retained=limit,
            prune_count=prune_count,
        )

    def export_data(self) -> dict[str, Any]:
        """Collect every tier, the config and the usage log into one dict.

        A session stored in both scopes is exported once, from the global scope.
        """
        sessions: dict[str, dict[str, Any]] = {}
        models: dict[str, dict[str, Any]] = {}
        for scope in SCOPES:
            for session_id in self.store.list_session_ids(1, scope):
                log = self.store.read_session_log(session_id, scope)
                if log is not None:
                    sessions.setdefault(log.session_id, log.to_json_dict())
            for session_id in self.store.list_session_ids(2, scope):
                model = self.store.read_session_model(session_id, scope)
                if model is not None:
                    models.setdefault(model.session_id, model.to_json_dict())

        user_model = self.store.read_user_model("merged")
        return {
            "exportedAt": datetime.now(UTC).isoformat(),
            "version": EXPORT_VERSION,
            "config": self.config_summary(),
            "tier1Sessions": list(sessions.values()),
            "tier2Models": list(models.values()),
            "tier3UserModel": user_model.to_json_dict() if user_model else None,
            "usageLog": self.store.read_usage(),
        }

    def close(self) -> None:
        """Release hooks and mark the engine uninitialized."""
        if self._hooks:
            self._hooks.clear()
        self._initialized = False

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, *exc):
        self.close()
