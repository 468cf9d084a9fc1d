"""Lifecycle hooks around session consolidation, indexing and recall."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class HookEvent(Enum):
    """Points in the TomEngine lifecycle that callbacks can observe.

    Payload keys per event:

    - ``PRE_ANALYZE``: ``session_id``, ``scope``
    - ``POST_ANALYZE``: ``session_id``, ``result`` (an AnalysisResult)
    - ``POST_INDEX``: ``scope``, ``document_count``
    - ``PRE_SEARCH``: ``query``, ``scope``
    - ``POST_SEARCH``: ``query``, ``results`` (ranked SearchResults)
    - ``POST_FORGET``: ``result`` (a ForgetResult)
    - ``POST_PRUNE``: ``scope``, ``result`` (a PruneResult)
    - ``ON_ERROR``: ``session_id``, ``error`` (the raised exception)
    """

    PRE_ANALYZE = "pre_analyze"
    POST_ANALYZE = "post_analyze"
    POST_INDEX = "post_index"
    PRE_SEARCH = "pre_search"
    POST_SEARCH = "post_search"
    POST_FORGET = "post_forget"
    POST_PRUNE = "post_prune"
    ON_ERROR = "on_error"


@dataclass
class HookContext:
    """What a callback receives when its event fires.

    Attributes:
        event: The lifecycle point that fired.
        data: The event payload; see HookEvent for the keys.
    """

    event: HookEvent
    data: dict[str, Any] = field(default_factory=dict)


HookCallback = Callable[[HookContext], None]


class HookManager:
    """Per-event callback lists owned by one TomEngine.

    Callbacks for an event run in the order they were registered. An
    exception raised by a callback is logged and the remaining callbacks
    still run, so the memory operation that emitted the event completes.
    """

    def __init__(self) -> None:
        self._hooks: dict[HookEvent, list[HookCallback]] = {event: [] for event in HookEvent}

    def register(self, event: HookEvent, callback: HookCallback) -> None:
        """Subscribe *callback* to a lifecycle event.

        Args:
            event: Lifecycle point to observe.
            callback: Called with a HookContext each time the event fires.
                Registering the same callback twice makes it run twice.
        """
        self._hooks[event].append(callback)

    def unregister(self, event: HookEvent, callback: HookCallback) -> None:
        """Drop one subscription of *callback* from *event*.

        Args:
            event: Lifecycle point the callback was registered for.
            callback: The callback to drop.

        Raises:
            ValueError: If *callback* is not subscribed to *event*.
        """
        self._hooks[event].remove(callback)

    def emit(self, event: HookEvent, data: dict[str, Any] | None = None) -> None:
        """Fire *event* and run its callbacks.

        Args:
            event: Lifecycle point that was reached.
            data: Event payload; an empty dict when omitted.
        """
        context = HookContext(event=event, data=data or {})
        for callback in self._hooks[event]:
            try:
                callback(context)
            except Exception:
                logger.exception(
                    "tom hook %s raised during %s",
                    getattr(callback, "__name__", repr(callback)),
                    event.value,
                )

    def clear(self, event: HookEvent | None = None) -> None:
        """Drop subscriptions.

        Args:
            event: Only this event's callbacks are dropped; every event's
                when None. The engine calls this with None on close.
        """
        events = list(HookEvent) if event is None else [event]
        for evt in events:
            self._hooks[evt].clear()

    def get_hooks(self, event: HookEvent) -> list[HookCallback]:
        """List the callbacks subscribed to *event*.

        Args:
            event: Lifecycle point to look up.

        Returns:
            The callbacks in run order. Mutating the list does not change
            the subscriptions.
        """
        return list(self._hooks[event])

    @property
    def hook_count(self) -> int:
        """Subscriptions across all events."""
        return sum(len(callbacks) for callbacks in self._hooks.values())
