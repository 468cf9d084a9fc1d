"""Memory module: tier models, preference lifecycle, aggregation, storage."""

from tom.memory.aggregation import aggregate_session_into_model, extract_observations
from tom.memory.analysis import extract_session_model
from tom.memory.capture import extract_parameter_shape, record_interaction
from tom.memory.models import (
    Interaction,
    PreferenceCluster,
    PreferenceObservation,
    SatisfactionSignals,
    SessionLog,
    SessionModel,
    Suggestion,
    UserModel,
)
from tom.memory.preferences import decay_preferences, reinforce_preference, resolve_conflicts
from tom.memory.pruning import PruneResult, prune_old_sessions
from tom.memory.store import MemoryStore

__all__ = [
    "Interaction",
    "MemoryStore",
    "PreferenceCluster",
    "PreferenceObservation",
    "PruneResult",
    "SatisfactionSignals",
    "SessionLog",
    "SessionModel",
    "Suggestion",
    "UserModel",
    "aggregate_session_into_model",
    "decay_preferences",
    "extract_observations",
    "extract_parameter_shape",
    "extract_session_model",
    "prune_old_sessions",
    "record_interaction",
    "reinforce_preference",
    "resolve_conflicts",
]
