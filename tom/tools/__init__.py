"""Tools module: agent tool implementations."""

from tom.tools.tools import (
    InvocationState,
    analyze_session,
    create_invocation_state,
    give_suggestions,
    initialize_user_profile,
    read_memory_file,
    search_memory,
)

__all__ = [
    "InvocationState",
    "analyze_session",
    "create_invocation_state",
    "give_suggestions",
    "initialize_user_profile",
    "read_memory_file",
    "search_memory",
]
