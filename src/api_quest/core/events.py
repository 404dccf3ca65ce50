"""
Publish/subscribe bus connecting the engine to its collaborators.

Progress tracking, notifications and the source selector live outside the
engine; they subscribe here instead of being called directly. Handlers are
invoked synchronously in subscription order. A handler that raises is logged
and skipped so a broken collaborator cannot interrupt routing.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from .logging import get_logger

SOLUTION_SAVED = "solution-saved"
ATTEMPT_UPDATED = "attempt-updated"
SOURCE_AVAILABILITY_CHANGED = "source-availability-changed"
SOURCE_CHANGED = "source-changed"
SOURCES_UPDATED = "sources-updated"
HTTP_LOG_ADDED = "http-log-added"
TASK_CHECK_SUCCEEDED = "task-check-succeeded"
TASK_CHECK_FAILED = "task-check-failed"

Handler = Callable[[Any], None]

LOGGER = get_logger(__name__)


class EventBus:
    """Named-event dispatcher with ``on``/``once``/``off``/``emit``."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, name: str, handler: Handler) -> Callable[[], None]:
        """Subscribe ``handler`` and return a callable that unsubscribes it."""

        if handler not in self._handlers[name]:
            self._handlers[name].append(handler)
        return lambda: self.off(name, handler)

    def once(self, name: str, handler: Handler) -> Callable[[], None]:
        """Subscribe ``handler`` for the next emission only."""

        def wrapper(payload: Any) -> None:
            self.off(name, wrapper)
            handler(payload)

        return self.on(name, wrapper)

    def off(self, name: str, handler: Handler) -> None:
        handlers = self._handlers.get(name)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._handlers[name]

    def emit(self, name: str, payload: Any = None) -> None:
        # Copy so handlers may unsubscribe while we iterate.
        for handler in list(self._handlers.get(name, ())):
            try:
                handler(payload)
            except Exception:
                LOGGER.exception("Event handler failed", extra={"event": name})

    def has_handlers(self, name: str) -> bool:
        return bool(self._handlers.get(name))

    def clear(self, name: Optional[str] = None) -> None:
        if name is None:
            self._handlers.clear()
        else:
            self._handlers.pop(name, None)
