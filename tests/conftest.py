"""Shared test fixtures for tom."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """A fixed reference instant for time-dependent tests."""
    return NOW


@pytest.fixture
def tom_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and the working directory at a temporary project."""
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(project)
    return tmp_path


@pytest.fixture
def tom_config(tmp_path: Path):
    """Create a TomConfig whose storage lives under tmp_path."""
    from tom.core.config import TomConfig

    return TomConfig(
        global_dir=tmp_path / "global",
        project_dir=tmp_path / "project" / ".claude" / "tom",
        settings_path=tmp_path / "settings.json",
    )


@pytest.fixture
def store(tom_config):
    from tom.memory.store import MemoryStore

    return MemoryStore(tom_config.global_dir, tom_config.project_dir)


@pytest.fixture
def engine(tom_config):
    from tom.core.engine import TomEngine

    with TomEngine(tom_config) as eng:
        yield eng


@pytest.fixture
def make_cluster():
    """Factory for PreferenceCluster instances with sensible defaults."""
    from tom.memory.models import PreferenceCluster

    def _make(
        value: str = "TypeScript",
        category: str = "codingPreferences",
        key: str = "preference",
        confidence: float = 0.5,
        days_ago: float = 0.0,
        session_count: int = 1,
    ) -> PreferenceCluster:
        return PreferenceCluster(
            category=category,
            key=key,
            value=value,
            confidence=confidence,
            last_updated=NOW - timedelta(days=days_ago),
            session_count=session_count,
        )

    return _make


@pytest.fixture
def make_session_log():
    """Factory for SessionLog instances built from (tool, params, outcome) tuples."""
    from tom.memory.models import Interaction, SessionLog

    def _make(
        session_id: str = "s1",
        calls: list[tuple[str, dict[str, str], str]] | None = None,
        started_at: datetime = NOW,
    ) -> SessionLog:
        calls = calls if calls is not None else [("Edit", {"file_path": ".ts"}, "success")]
        interactions = [
            Interaction(
                tool_name=tool,
                parameter_shape=params,
                outcome_summary=outcome,
                timestamp=started_at + timedelta(minutes=i),
            )
            for i, (tool, params, outcome) in enumerate(calls)
        ]
        return SessionLog(
            session_id=session_id,
            started_at=started_at,
            ended_at=started_at + timedelta(minutes=len(calls)),
            interactions=interactions,
        )

    return _make


@pytest.fixture
def make_session_model():
    """Factory for SessionModel instances."""
    from tom.memory.models import SatisfactionSignals, SessionModel

    def _make(
        session_id: str = "s1",
        coding_preferences: list[str] | None = None,
        interaction_patterns: list[str] | None = None,
        frustration: bool = False,
        satisfaction: bool = True,
        urgency: str = "low",
        intent: str = "brief code modification",
    ) -> SessionModel:
        return SessionModel(
            session_id=session_id,
            intent=intent,
            coding_preferences=coding_preferences or [],
            interaction_patterns=interaction_patterns or [],
            satisfaction_signals=SatisfactionSignals(
                frustration=frustration, satisfaction=satisfaction, urgency=urgency
            ),
        )

    return _make
