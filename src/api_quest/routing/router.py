"""
Source registry router: selection, failover and request routing.

One :class:`Router` owns the mutable :class:`RouterState` (current source and
per-source availability). The health monitor and UI collaborators hold a
reference to the router rather than touching the state directly.

Selection rules:

* ``set_source`` honours an explicit choice when the source is known and
  available (the baseline is always acceptable); otherwise it falls back to
  :meth:`Router.auto_select` and reports ``False``.
* ``auto_select`` keeps the current source while it is available; otherwise it
  picks the available source with the lowest priority number, ties broken by
  registration order, and finally forces the baseline.
* A failed dispatch never changes availability. Only the health monitor does,
  so one transient error cannot make the router flap between sources.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..adapters.base import SourceAdapter
from ..core.events import ATTEMPT_UPDATED, SOLUTION_SAVED, SOURCE_AVAILABILITY_CHANGED, SOURCE_CHANGED, EventBus
from ..core.http_log import HttpLog
from ..core.logging import get_logger
from ..core.models import Request, Response, error_response
from ..core.registry import SourceDescriptor, SourceRegistry
from ..core.storage import SOURCE_SELECTION_KEY, MemorySessionStorage, SessionStorage


@dataclass(slots=True)
class RouterState:
    """Mutable selection state; written only through :class:`Router` methods."""

    current: str
    availability: Dict[str, bool]


@dataclass(frozen=True, slots=True)
class SourceInfo:
    key: str
    display_name: str
    description: str
    base_address: str
    priority: int
    available: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "name": self.display_name,
            "description": self.description,
            "baseUrl": self.base_address,
            "priority": self.priority,
            "available": self.available,
        }


class Router:
    """Routes requests through the adapter of the currently selected source."""

    def __init__(
        self,
        registry: SourceRegistry,
        adapters: Mapping[str, SourceAdapter],
        *,
        storage: Optional[SessionStorage] = None,
        events: Optional[EventBus] = None,
        http_log: Optional[HttpLog] = None,
        initial_availability: Optional[Mapping[str, bool]] = None,
    ) -> None:
        missing = [key for key in registry.keys() if key not in adapters]
        if missing:
            raise ValueError(f"No adapter configured for source(s): {', '.join(missing)}.")

        self.registry = registry
        self.adapters: Dict[str, SourceAdapter] = dict(adapters)
        self.storage: SessionStorage = storage if storage is not None else MemorySessionStorage()
        self.events = events if events is not None else EventBus()
        self.http_log = http_log
        self.logger = get_logger(__name__)

        baseline = registry.baseline.key
        availability = {descriptor.key: descriptor.baseline for descriptor in registry}
        for key, available in (initial_availability or {}).items():
            if key in availability:
                availability[key] = bool(available) or key == baseline

        # The restored choice stays current until the first health check settles it.
        saved = self.storage.get(SOURCE_SELECTION_KEY)
        current = saved if saved in registry else baseline
        self.state = RouterState(current=current, availability=availability)

    # -- state accessors ----------------------------------------------------

    @property
    def baseline_key(self) -> str:
        return self.registry.baseline.key

    @property
    def current_key(self) -> str:
        return self.state.current

    def is_available(self, key: str) -> bool:
        return self.state.availability.get(key, False)

    def set_availability(self, key: str, available: bool) -> bool:
        """Record a probe outcome; return ``True`` when the flag changed."""

        if key not in self.registry:
            raise KeyError(f"Source '{key}' is not registered.")
        if key == self.baseline_key:
            if not available:
                self.logger.warning("Ignoring attempt to mark the baseline unavailable", extra={"source": key})
            return False
        previous = self.state.availability.get(key, False)
        if previous == available:
            return False
        self.state.availability[key] = available
        self.logger.info("Source availability changed", extra={"source": key, "available": available})
        self.events.emit(SOURCE_AVAILABILITY_CHANGED, {"key": key, "available": available})
        return True

    # -- selection ----------------------------------------------------------

    def _switch(self, key: str) -> None:
        previous = self.state.current
        self.state.current = key
        self.storage.set(SOURCE_SELECTION_KEY, key)
        if previous != key:
            self.logger.info("Current source changed", extra={"previous": previous, "current": key})
            self.events.emit(SOURCE_CHANGED, {"previous": previous, "current": key})

    def set_source(self, key: str) -> bool:
        """Switch to ``key`` if it is known and usable; otherwise fall back to :meth:`auto_select`."""

        if key not in self.registry:
            self.logger.warning("Unknown source requested", extra={"source": key})
            self.auto_select()
            return False
        if not self.is_available(key) and key != self.baseline_key:
            self.logger.warning("Requested source is unavailable, falling back", extra={"source": key})
            self.auto_select()
            return False
        self._switch(key)
        return True

    def candidates(self) -> List[SourceDescriptor]:
        """Available sources ordered by priority, then registration order."""

        available = [descriptor for descriptor in self.registry if self.is_available(descriptor.key)]
        # sorted() is stable, so equal priorities keep registration order.
        return sorted(available, key=lambda descriptor: descriptor.priority)

    def auto_select(self) -> str:
        """Ensure the current source is available and return its key."""

        if self.is_available(self.state.current):
            return self.state.current
        ranked = self.candidates()
        self._switch(ranked[0].key if ranked else self.baseline_key)
        return self.state.current

    # -- queries ------------------------------------------------------------

    def _info(self, descriptor: SourceDescriptor) -> SourceInfo:
        return SourceInfo(
            key=descriptor.key,
            display_name=descriptor.display_name,
            description=descriptor.description,
            base_address=descriptor.base_address,
            priority=descriptor.priority,
            available=self.is_available(descriptor.key),
        )

    def get_current_source_info(self) -> SourceInfo:
        return self._info(self.registry.require(self.state.current))

    def get_available_sources(self) -> List[SourceInfo]:
        return [self._info(descriptor) for descriptor in self.registry if self.is_available(descriptor.key)]

    def get_all_sources(self) -> List[SourceInfo]:
        return [self._info(descriptor) for descriptor in self.registry]

    def adapter_for(self, key: str) -> SourceAdapter:
        return self.adapters[key]

    # -- routing ------------------------------------------------------------

    async def route(self, request: Request, *, task_id: Optional[str] = None) -> Response:
        """
        Send ``request`` through the current source's adapter.

        Never raises: an adapter failure becomes a ``500`` response tagged with
        the source key. Progress collaborators are notified only when the adapter
        returns a response.
        """

        source = self.state.current
        adapter = self.adapters[source]
        entry = self.http_log.record_request(request, source) if self.http_log else None
        request_id = entry.entry_id if entry else None

        try:
            response = await adapter.dispatch(request)
        except Exception as exc:
            self.logger.warning(
                "Dispatch raised, returning synthesized error",
                extra={"source": source, "method": request.method, "url": request.url, "error": str(exc)},
            )
            if self.http_log:
                self.http_log.record_error(exc, source, request_id=request_id)
            response = error_response("Failed to send the request", str(exc), source=source)
        else:
            if self.http_log:
                self.http_log.record_response(response, source, request_id=request_id)
            self.events.emit(SOLUTION_SAVED, {"task_id": task_id})
            self.events.emit(ATTEMPT_UPDATED, {"task_id": task_id})
        return response
