"""Interaction capture: appends tool calls to the tier 1 session log."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from tom.memory.models import Interaction, SessionLog
from tom.memory.store import MemoryStore, Scope

logger = logging.getLogger(__name__)

MAX_OUTCOME_LENGTH = 200


def extract_parameter_shape(tool_input: dict[str, Any]) -> dict[str, str]:
    """Reduce tool input to string values per parameter name.

    Strings are kept, numbers and booleans use their JSON spelling, missing
    values become ``"null"`` and anything structured becomes ``"object"``.
    """
    shape: dict[str, str] = {}
    for key, value in tool_input.items():
        if isinstance(value, str):
            shape[key] = value
        elif isinstance(value, (bool, int, float)):
            shape[key] = json.dumps(value)
        elif value is None:
            shape[key] = "null"
        elif isinstance(value, (dict, list)):
            shape[key] = "object"
        else:
            shape[key] = type(value).__name__
    return shape


def summarize_outcome(tool_output: str) -> str:
    if len(tool_output) > MAX_OUTCOME_LENGTH:
        return tool_output[:MAX_OUTCOME_LENGTH] + "..."
    return tool_output


def parse_tool_input(raw: str) -> dict[str, Any]:
    """Parse a JSON tool input; anything but a JSON object yields ``{}``."""
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def record_interaction(
    store: MemoryStore,
    session_id: str,
    tool_name: str,
    tool_input: dict[str, Any] | str,
    tool_output: str,
    scope: Scope = "global",
    now: datetime | None = None,
) -> SessionLog:
    """Append one tool call to a session log, creating the log if needed.

    Args:
        store: Tier storage to write to.
        session_id: Session the call belongs to.
        tool_name: Name of the invoked tool.
        tool_input: Tool arguments, as a dict or a JSON string.
        tool_output: Raw tool output; truncated before storing.
        scope: Storage scope of the session log.
        now: Timestamp of the call (defaults to UTC now).

    Returns:
        The updated session log.
    """
    now = now or datetime.now(UTC)
    if isinstance(tool_input, str):
        tool_input = parse_tool_input(tool_input)

    interaction = Interaction(
        tool_name=tool_name,
        parameter_shape=extract_parameter_shape(tool_input),
        outcome_summary=summarize_outcome(tool_output),
        timestamp=now,
    )

    existing = store.read_session_log(session_id, scope)
    if existing is None:
        logger.debug("Starting session log %s in %s scope", session_id, scope)
        updated = SessionLog(
            session_id=session_id,
            started_at=now,
            ended_at=now,
            interactions=[interaction],
        )
    else:
        updated = existing.model_copy(
            update={"ended_at": now, "interactions": [*existing.interactions, interaction]}
        )

    store.write_session_log(updated, scope)
    return updated
