"""MemoryStore: JSON file storage for the three memory tiers.

Layout per scope directory::

    sessions/<session-id>.json         tier 1 session logs
    session-models/<session-id>.json   tier 2 session models
    user-model.json                    tier 3 user model
    bm25-index.json                    persisted search index

The global directory additionally holds ``usage.log`` (one JSON object per
line). Reads resolve every failure to ``None``; writes raise.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from tom.indexer.models import BM25Index
from tom.memory.models import PreferenceCluster, SessionLog, SessionModel, UserModel

logger = logging.getLogger(__name__)

Scope = Literal["global", "project"]
UserModelScope = Literal["global", "project", "merged"]
SCOPES: tuple[Scope, ...] = ("global", "project")

SESSIONS_DIR = "sessions"
SESSION_MODELS_DIR = "session-models"
USER_MODEL_FILE = "user-model.json"
INDEX_FILE = "bm25-index.json"
USAGE_LOG_FILE = "usage.log"

_M = TypeVar("_M", bound=BaseModel)


@dataclass(frozen=True)
class StorageStats:
    """File counts and sizes across both scopes."""

    tier1_session_count: int
    tier2_model_count: int
    tier3_size_bytes: int


@dataclass(frozen=True)
class DeletedSummary:
    file_count: int
    total_bytes: int


class MemoryStore:
    """Reads and writes memory tiers under a global and a project directory.

    Args:
        global_dir: Per-user directory (``~/.claude/tom`` by default).
        project_dir: Per-project directory (``./.claude/tom`` by default).
    """

    def __init__(self, global_dir: Path, project_dir: Path) -> None:
        self._dirs: dict[Scope, Path] = {"global": global_dir, "project": project_dir}

    def scope_dir(self, scope: Scope) -> Path:
        return self._dirs[scope]

    # ------------------------------------------------------------------
    # Tier 1: session logs
    # ------------------------------------------------------------------

    def session_log_path(self, session_id: str, scope: Scope = "global") -> Path:
        return self.scope_dir(scope) / SESSIONS_DIR / f"{session_id}.json"

    def read_session_log(self, session_id: str, scope: Scope = "global") -> SessionLog | None:
        return self._read_model(self.session_log_path(session_id, scope), SessionLog)

    def write_session_log(self, session_log: SessionLog, scope: Scope = "global") -> Path:
        path = self.session_log_path(session_log.session_id, scope)
        _write_json(path, session_log.to_json_dict())
        return path

    def delete_session_log(self, session_id: str, scope: Scope = "global") -> bool:
        return _delete(self.session_log_path(session_id, scope))

    # ------------------------------------------------------------------
    # Tier 2: session models
    # ------------------------------------------------------------------

    def session_model_path(self, session_id: str, scope: Scope = "global") -> Path:
        return self.scope_dir(scope) / SESSION_MODELS_DIR / f"{session_id}.json"

    def read_session_model(self, session_id: str, scope: Scope = "global") -> SessionModel | None:
        return self._read_model(self.session_model_path(session_id, scope), SessionModel)

    def write_session_model(self, session_model: SessionModel, scope: Scope = "global") -> Path:
        path = self.session_model_path(session_model.session_id, scope)
        _write_json(path, session_model.to_json_dict())
        return path

    def delete_session_model(self, session_id: str, scope: Scope = "global") -> bool:
        return _delete(self.session_model_path(session_id, scope))

    def list_session_ids(self, tier: Literal[1, 2], scope: Scope = "global") -> list[str]:
        """Return the session ids stored for a tier, sorted."""
        subdir = SESSIONS_DIR if tier == 1 else SESSION_MODELS_DIR
        directory = self.scope_dir(scope) / subdir
        if not directory.is_dir():
            return []
        return sorted(p.stem for p in directory.glob("*.json"))

    # ------------------------------------------------------------------
    # Tier 3: user model
    # ------------------------------------------------------------------

    def user_model_path(self, scope: Scope = "global") -> Path:
        return self.scope_dir(scope) / USER_MODEL_FILE

    def read_user_model(self, scope: UserModelScope = "merged") -> UserModel | None:
        """Read the user model for a scope.

        ``merged`` overlays the project model on the global one: project
        clusters replace global clusters with the same (category, key),
        non-empty project summaries win, and project overrides are merged in.
        """
        if scope != "merged":
            return self._read_model(self.user_model_path(scope), UserModel)

        global_model = self._read_model(self.user_model_path("global"), UserModel)
        project_model = self._read_model(self.user_model_path("project"), UserModel)
        if global_model is None:
            return project_model
        if project_model is None:
            return global_model

        return UserModel(
            preferences_clusters=_merge_clusters(
                global_model.preferences_clusters, project_model.preferences_clusters
            ),
            interaction_style_summary=(
                project_model.interaction_style_summary or global_model.interaction_style_summary
            ),
            coding_style_summary=(
                project_model.coding_style_summary or global_model.coding_style_summary
            ),
            project_overrides={**global_model.project_overrides, **project_model.project_overrides},
        )

    def write_user_model(self, user_model: UserModel, scope: Scope = "global") -> Path:
        path = self.user_model_path(scope)
        _write_json(path, user_model.to_json_dict())
        return path

    # ------------------------------------------------------------------
    # BM25 index
    # ------------------------------------------------------------------

    def index_path(self, scope: Scope = "global") -> Path:
        return self.scope_dir(scope) / INDEX_FILE

    def save_index(self, index: BM25Index, scope: Scope = "global") -> Path:
        path = self.index_path(scope)
        _write_json(path, index.to_dict(), indent=None)
        return path

    def load_index(self, scope: Scope = "global") -> BM25Index | None:
        data = _read_json(self.index_path(scope))
        if data is None:
            return None
        try:
            return BM25Index.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring malformed index %s: %s", self.index_path(scope), e)
            return None

    # ------------------------------------------------------------------
    # Usage log
    # ------------------------------------------------------------------

    @property
    def usage_log_path(self) -> Path:
        return self.scope_dir("global") / USAGE_LOG_FILE

    def append_usage(
        self,
        operation: str,
        model: str,
        session_id: str | None = None,
        token_count: int = 0,
    ) -> dict[str, Any]:
        """Append one usage entry as a JSON line and return it."""
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "operation": operation,
            "model": model,
            "tokenCount": token_count,
        }
        if session_id is not None:
            entry["sessionId"] = session_id
        path = self.usage_log_path
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry) + "\n")
        return entry

    def read_usage(self) -> list[str]:
        try:
            content = self.usage_log_path.read_text(encoding="utf-8")
        except OSError:
            return []
        return [line for line in content.splitlines() if line.strip()]

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def storage_stats(self) -> StorageStats:
        return StorageStats(
            tier1_session_count=sum(len(self.list_session_ids(1, s)) for s in SCOPES),
            tier2_model_count=sum(len(self.list_session_ids(2, s)) for s in SCOPES),
            tier3_size_bytes=sum(_file_size(self.user_model_path(s)) for s in SCOPES),
        )

    def reset(self, scope: Scope) -> DeletedSummary:
        """Delete everything stored under a scope directory."""
        directory = self.scope_dir(scope)
        if not directory.exists():
            return DeletedSummary(file_count=0, total_bytes=0)
        files = [p for p in directory.rglob("*") if p.is_file()]
        total_bytes = sum(_file_size(p) for p in files)
        shutil.rmtree(directory)
        logger.info("Removed %d files (%d bytes) from %s", len(files), total_bytes, directory)
        return DeletedSummary(file_count=len(files), total_bytes=total_bytes)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_model(path: Path, model_cls: type[_M]) -> _M | None:
        data = _read_json(path)
        if data is None:
            return None
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Ignoring %s that fails validation: %s (%d errors)",
                model_cls.__name__,
                path,
                e.error_count(),
            )
            return None


def _merge_clusters(
    global_clusters: list[PreferenceCluster],
    project_clusters: list[PreferenceCluster],
) -> list[PreferenceCluster]:
    merged: dict[tuple[str, str], PreferenceCluster] = {}
    for cluster in [*global_clusters, *project_clusters]:
        merged[cluster.group_key] = cluster
    return list(merged.values())


def _read_json(path: Path) -> Any | None:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None


def _write_json(path: Path, data: Any, indent: int | None = 2) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=indent), encoding="utf-8")


def _delete(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True


def _file_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0
