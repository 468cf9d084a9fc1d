"""Session analysis: heuristic extraction of a session model from a session log.

Derives intent, interaction patterns, coding preferences and satisfaction
signals from the tool calls recorded in a tier 1 log. No model is invoked.
"""

from __future__ import annotations

from collections import Counter

from tom.memory.models import SatisfactionSignals, SessionLog, SessionModel, Urgency

# ---------------------------------------------------------------------------
# Heuristic tables
# ---------------------------------------------------------------------------

_TOOL_INTENTS: dict[str, str] = {
    "Edit": "code modification",
    "Write": "file creation",
    "Read": "code exploration",
    "Bash": "command execution",
    "Grep": "code search",
    "Glob": "file search",
    "Task": "complex task delegation",
}

_FRUSTRATION_MARKERS = ("error", "fail", "retry")
_SATISFACTION_MARKERS = ("success", "complete", "pass")

_FRUSTRATION_RATIO = 0.3
_SATISFACTION_RATIO = 0.5
_MAX_PATTERNS = 5

# Interaction counts above which a session counts as extensive / moderate.
_EXTENSIVE = 20
_MODERATE = 10


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_session_model(session_log: SessionLog) -> SessionModel:
    """Build a tier 2 session model from a tier 1 session log.

    Args:
        session_log: The recorded interactions of one session.

    Returns:
        The derived SessionModel.
    """
    interactions = session_log.interactions
    total = len(interactions)

    # Counter.most_common keeps first-seen order among equal counts.
    tool_counts = Counter(i.tool_name for i in interactions)
    ranked_tools = [name for name, _ in tool_counts.most_common()]

    coding_prefs: list[str] = []
    frustration_hits = 0
    satisfaction_hits = 0

    for interaction in interactions:
        shape = interaction.parameter_shape
        if "language" in shape or "file_path" in shape:
            file_path = shape.get("file_path", "")
            if file_path and file_path not in coding_prefs:
                coding_prefs.append(file_path)

        outcome = interaction.outcome_summary.lower()
        if any(marker in outcome for marker in _FRUSTRATION_MARKERS):
            frustration_hits += 1
        if any(marker in outcome for marker in _SATISFACTION_MARKERS):
            satisfaction_hits += 1

    top_tool = ranked_tools[0] if ranked_tools else "unknown"

    return SessionModel(
        session_id=session_log.session_id,
        intent=derive_intent(top_tool, total),
        interaction_patterns=[f"uses-{name}" for name in ranked_tools[:_MAX_PATTERNS]],
        coding_preferences=coding_prefs,
        satisfaction_signals=SatisfactionSignals(
            frustration=total > 0 and frustration_hits / total > _FRUSTRATION_RATIO,
            satisfaction=total > 0 and satisfaction_hits / total > _SATISFACTION_RATIO,
            urgency=_urgency(total),
        ),
    )


def derive_intent(top_tool: str, interaction_count: int) -> str:
    """Describe a session by its most used tool and its size."""
    base = _TOOL_INTENTS.get(top_tool, f"{top_tool} usage")
    if interaction_count > _EXTENSIVE:
        scope = "extensive"
    elif interaction_count > _MODERATE:
        scope = "moderate"
    else:
        scope = "brief"
    return f"{scope} {base}"


def _urgency(interaction_count: int) -> Urgency:
    if interaction_count > _EXTENSIVE:
        return "high"
    if interaction_count > _MODERATE:
        return "medium"
    return "low"
