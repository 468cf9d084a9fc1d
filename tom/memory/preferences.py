"""Preference lifecycle: reinforcement, half-life decay, conflict resolution.

All three operations are pure: they take a sequence of clusters and return a
new list, leaving the input (and every cluster in it) untouched.

Categories tracked:
    - interactionStyle: verbosity, question timing, response length
    - codingPreferences: language, libraries, testing approach, naming
    - emotionalSignals: frustration, satisfaction, urgency
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from tom.memory.models import PreferenceCluster, PreferenceObservation

CONFIDENCE_INCREMENT = 0.1
CONFIDENCE_MAX = 1.0
CONFIDENCE_MIN_THRESHOLD = 0.01
INITIAL_CONFIDENCE = 0.1

_SECONDS_PER_DAY = 60 * 60 * 24


def _now() -> datetime:
    return datetime.now(UTC)


def reinforce_preference(
    preferences: Sequence[PreferenceCluster],
    observation: PreferenceObservation,
    now: datetime | None = None,
) -> list[PreferenceCluster]:
    """Fold one observation into a preference collection.

    An exact (category, key, value) match is reinforced: confidence grows by
    ``CONFIDENCE_INCREMENT`` up to ``CONFIDENCE_MAX``, the session count is
    incremented and ``last_updated`` moves to *now*. Anything else, including
    a (category, key) match with a different value, is appended as a new
    cluster; disagreeing values are left for :func:`resolve_conflicts`.

    Args:
        preferences: Current clusters.
        observation: The observation to fold in.
        now: Timestamp to stamp on the touched cluster (defaults to UTC now).

    Returns:
        A new list of clusters.
    """
    now = now or _now()

    for i, pref in enumerate(preferences):
        if (
            pref.category == observation.category
            and pref.key == observation.key
            and pref.value == observation.value
        ):
            reinforced = pref.model_copy(
                update={
                    "confidence": min(pref.confidence + CONFIDENCE_INCREMENT, CONFIDENCE_MAX),
                    "last_updated": now,
                    "session_count": pref.session_count + 1,
                }
            )
            return [*preferences[:i], reinforced, *preferences[i + 1 :]]

    created = PreferenceCluster(
        category=observation.category,
        key=observation.key,
        value=observation.value,
        confidence=INITIAL_CONFIDENCE,
        last_updated=now,
        session_count=1,
    )
    return [*preferences, created]


def decay_preferences(
    preferences: Sequence[PreferenceCluster],
    half_life_days: float,
    now: datetime | None = None,
) -> list[PreferenceCluster]:
    """Age every cluster by the time elapsed since its last update.

    Uses ``confidence * 2 ** (-elapsed_days / half_life_days)``. Clusters
    that fall below ``CONFIDENCE_MIN_THRESHOLD`` are dropped. ``last_updated``
    is left as-is; only reinforcement moves it.
    """
    now = now or _now()
    decayed: list[PreferenceCluster] = []

    for pref in preferences:
        # A timestamp in the future counts as zero elapsed time.
        elapsed_days = max((now - pref.last_updated).total_seconds(), 0.0) / _SECONDS_PER_DAY
        confidence = pref.confidence * 2 ** (-elapsed_days / half_life_days)
        if confidence >= CONFIDENCE_MIN_THRESHOLD:
            decayed.append(pref.model_copy(update={"confidence": confidence}))

    return decayed


def resolve_conflicts(preferences: Sequence[PreferenceCluster]) -> list[PreferenceCluster]:
    """Keep only the most recently updated cluster per (category, key).

    Ties on ``last_updated`` keep the cluster seen first. Groups come out in
    the order they first appear, so the operation is idempotent.
    """
    winners: dict[tuple[str, str], PreferenceCluster] = {}

    for pref in preferences:
        existing = winners.get(pref.group_key)
        if existing is None or pref.last_updated > existing.last_updated:
            winners[pref.group_key] = pref

    return list(winners.values())
