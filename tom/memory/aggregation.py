"""Aggregation: fold one session model into the user model."""

from __future__ import annotations

from datetime import UTC, datetime
from functools import reduce

from tom.memory.models import PreferenceObservation, SessionModel, UserModel
from tom.memory.preferences import decay_preferences, reinforce_preference, resolve_conflicts

DEFAULT_DECAY_DAYS = 30


def extract_observations(session: SessionModel) -> list[PreferenceObservation]:
    """Turn a session model into preference observations.

    Order is fixed: coding preferences, interaction patterns, then the three
    satisfaction signals. Booleans use their JSON spelling ("true"/"false").
    """
    observations = [
        PreferenceObservation("codingPreferences", "preference", pref)
        for pref in session.coding_preferences
    ]
    observations.extend(
        PreferenceObservation("interactionStyle", "pattern", pattern)
        for pattern in session.interaction_patterns
    )

    signals = session.satisfaction_signals
    observations.append(
        PreferenceObservation("emotionalSignals", "frustration", _json_bool(signals.frustration))
    )
    observations.append(
        PreferenceObservation("emotionalSignals", "satisfaction", _json_bool(signals.satisfaction))
    )
    observations.append(PreferenceObservation("emotionalSignals", "urgency", signals.urgency))
    return observations


def aggregate_session_into_model(
    current: UserModel | None,
    session: SessionModel,
    decay_days: float = DEFAULT_DECAY_DAYS,
    now: datetime | None = None,
) -> UserModel:
    """Merge a session model into a user model and return the new user model.

    Steps:
        1. Decay the existing clusters (half-life *decay_days*).
        2. Extract observations from the session.
        3. Reinforce or add a cluster for each observation, in order.
        4. Resolve conflicts (most recent value per category+key wins).
        5. Copy summaries and project overrides unchanged.

    Args:
        current: The existing user model; ``None`` counts as empty.
        session: The session model to merge in.
        decay_days: Half-life in days for confidence decay.
        now: Instant used for both decay and reinforcement (defaults to UTC now).
    """
    current = current or UserModel.empty()
    now = now or datetime.now(UTC)

    decayed = decay_preferences(current.preferences_clusters, decay_days, now)
    reinforced = reduce(
        lambda prefs, obs: reinforce_preference(prefs, obs, now),
        extract_observations(session),
        decayed,
    )

    return UserModel(
        preferences_clusters=resolve_conflicts(reinforced),
        interaction_style_summary=current.interaction_style_summary,
        coding_style_summary=current.coding_style_summary,
        project_overrides={
            project: list(clusters) for project, clusters in current.project_overrides.items()
        },
    )


def _json_bool(flag: bool) -> str:
    return "true" if flag else "false"
