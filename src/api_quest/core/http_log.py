"""
Bounded journal of HTTP exchanges routed through the engine.

The journal backs the learner-facing request inspector: newest entries first,
at most :data:`MAX_ENTRIES` kept, each tagged with the source that handled it.
"""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .events import HTTP_LOG_ADDED, EventBus
from .models import Request, Response

MAX_ENTRIES = 100


class LogType(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class HttpLogEntry:
    entry_id: str
    timestamp: str
    type: LogType
    source: str
    data: Dict[str, Any] = field(default_factory=dict)


class HttpLog:
    """Newest-first ring of :class:`HttpLogEntry` records."""

    def __init__(self, *, events: Optional[EventBus] = None, max_entries: int = MAX_ENTRIES) -> None:
        self._entries: List[HttpLogEntry] = []
        self._events = events
        self._counter = itertools.count(1)
        self.max_entries = max_entries
        self.enabled = True

    def _add(self, log_type: LogType, data: Dict[str, Any], source: Optional[str]) -> Optional[HttpLogEntry]:
        if not self.enabled:
            return None
        entry = HttpLogEntry(
            entry_id=f"log-{next(self._counter)}",
            timestamp=datetime.now(UTC).isoformat(timespec="milliseconds"),
            type=log_type,
            source=source or "unknown",
            data=data,
        )
        self._entries.insert(0, entry)
        del self._entries[self.max_entries :]
        if self._events is not None:
            self._events.emit(HTTP_LOG_ADDED, entry)
        return entry

    def record_request(self, request: Request, source: str) -> Optional[HttpLogEntry]:
        return self._add(LogType.REQUEST, request.to_dict(), source)

    def record_response(self, response: Response, source: str, *, request_id: Optional[str] = None) -> Optional[HttpLogEntry]:
        data = response.to_dict()
        data["requestId"] = request_id
        return self._add(LogType.RESPONSE, data, source)

    def record_error(self, error: BaseException, source: str, *, request_id: Optional[str] = None) -> Optional[HttpLogEntry]:
        return self._add(LogType.ERROR, {"message": str(error), "exception": type(error).__name__, "requestId": request_id}, source)

    def entries(
        self,
        *,
        type: Optional[LogType] = None,
        source: Optional[str] = None,
        method: Optional[str] = None,
        status: Optional[int] = None,
    ) -> List[HttpLogEntry]:
        """Return a filtered copy of the journal, newest first."""

        selected = list(self._entries)
        if type is not None:
            selected = [entry for entry in selected if entry.type == type]
        if source is not None:
            selected = [entry for entry in selected if entry.source == source]
        if method is not None:
            selected = [entry for entry in selected if entry.type == LogType.REQUEST and entry.data.get("method") == method]
        if status is not None:
            selected = [entry for entry in selected if entry.type == LogType.RESPONSE and entry.data.get("status") == status]
        return [replace(entry, data=copy.deepcopy(entry.data)) for entry in selected]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
