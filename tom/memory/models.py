"""Pydantic models for the three tom memory tiers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PreferenceCategory = Literal["interactionStyle", "codingPreferences", "emotionalSignals"]
Urgency = Literal["low", "medium", "high"]


class _TierModel(BaseModel):
    """Base for persisted models: camelCase on disk, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_json_dict(self) -> dict:
        """Return the JSON-ready dict using the on-disk field names."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Tier 1: session log
# ---------------------------------------------------------------------------


class Interaction(_TierModel):
    tool_name: str
    parameter_shape: dict[str, str]
    outcome_summary: str
    timestamp: AwareDatetime


class SessionLog(_TierModel):
    session_id: str
    started_at: AwareDatetime
    ended_at: AwareDatetime
    interactions: list[Interaction]


# ---------------------------------------------------------------------------
# Tier 2: session model
# ---------------------------------------------------------------------------


class SatisfactionSignals(_TierModel):
    frustration: bool
    satisfaction: bool
    urgency: Urgency


class SessionModel(_TierModel):
    session_id: str
    intent: str
    interaction_patterns: list[str]
    coding_preferences: list[str]
    satisfaction_signals: SatisfactionSignals


# ---------------------------------------------------------------------------
# Tier 3: user model
# ---------------------------------------------------------------------------


class PreferenceCluster(_TierModel):
    """One learned (category, key, value) preference.

    ``last_updated`` is kept as an aware datetime so recency comparisons are
    made on instants; it becomes an ISO-8601 string only when serialized.
    """

    model_config = ConfigDict(frozen=True)

    category: PreferenceCategory
    key: str
    value: str
    confidence: float = Field(ge=0.0, le=1.0)
    last_updated: AwareDatetime
    session_count: int = Field(ge=0)

    @property
    def group_key(self) -> tuple[str, str]:
        return (self.category, self.key)


class UserModel(_TierModel):
    preferences_clusters: list[PreferenceCluster] = Field(default_factory=list)
    interaction_style_summary: str = ""
    coding_style_summary: str = ""
    project_overrides: dict[str, list[PreferenceCluster]] = Field(default_factory=dict)

    @classmethod
    def empty(cls) -> UserModel:
        return cls()


# ---------------------------------------------------------------------------
# Agent suggestions
# ---------------------------------------------------------------------------


class Suggestion(_TierModel):
    type: Literal["preference", "disambiguation", "style"]
    content: str
    confidence: float = Field(ge=0.0, le=1.0)
    source_sessions: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PreferenceObservation:
    """A single (category, key, value) signal extracted from a session.

    Observations are transient: they are folded into preference clusters and
    never persisted on their own.
    """

    category: PreferenceCategory
    key: str
    value: str

