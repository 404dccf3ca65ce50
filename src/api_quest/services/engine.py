"""
Engine façade wiring registry, adapters, router and health monitor together.

The façade keeps construction logic reusable for both CLI commands and
embedding applications. Collaborators are built lazily on first use and cached
for the lifetime of the façade, so every command in one process shares one
router and one event bus.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Callable, Dict, Mapping, Optional

import httpx

from ..adapters import AdapterError, MockAdapter, ProbeResult, PublicAPIAdapter, SourceAdapter, TrainingAPIAdapter
from ..core import EngineContext, EventBus, HttpLog, Request, Response, SourceDescriptor, get_logger
from ..mock import MockResponseEngine
from ..routing import HealthMonitor, Router
from .workspace import Exercise, TaskCheckOutcome, TaskWorkspace

AdapterFactory = Callable[["EngineServices", SourceDescriptor], SourceAdapter]


def _build_mock(services: "EngineServices", descriptor: SourceDescriptor) -> SourceAdapter:
    return MockAdapter(engine=services.mock_engine(), source_id=descriptor.key)


def _build_public(services: "EngineServices", descriptor: SourceDescriptor) -> SourceAdapter:
    settings = services.context.settings
    return PublicAPIAdapter(
        source_id=descriptor.key,
        base_url=descriptor.base_address,
        timeout=settings.request_timeout,
        retry_attempts=settings.retry_attempts,
        probe_timeout=settings.probe_timeout,
        transport=services.transport,
    )


def _build_training(services: "EngineServices", descriptor: SourceDescriptor) -> SourceAdapter:
    settings = services.context.settings
    return TrainingAPIAdapter(
        storage=services.context.storage,
        source_id=descriptor.key,
        base_url=descriptor.base_address,
        timeout=settings.request_timeout,
        retry_attempts=settings.retry_attempts,
        probe_timeout=settings.probe_timeout,
        transport=services.transport,
    )


ADAPTER_FACTORIES: Mapping[str, AdapterFactory] = {
    "mock": _build_mock,
    "public": _build_public,
    "training": _build_training,
}


@dataclass(slots=True)
class EngineServices:
    """High-level façade used by CLI commands and embedding applications."""

    context: EngineContext
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    logger: LoggerAdapter = field(init=False, repr=False)
    _events: Optional[EventBus] = field(default=None, init=False, repr=False)
    _http_log: Optional[HttpLog] = field(default=None, init=False, repr=False)
    _mock_engine: Optional[MockResponseEngine] = field(default=None, init=False, repr=False)
    _adapters: Optional[Dict[str, SourceAdapter]] = field(default=None, init=False, repr=False)
    _router: Optional[Router] = field(default=None, init=False, repr=False)
    _monitor: Optional[HealthMonitor] = field(default=None, init=False, repr=False)
    _workspace: Optional[TaskWorkspace] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if hasattr(self.context, "get_logger"):
            self.logger = self.context.get_logger(self.__class__.__name__)
        else:
            self.logger = get_logger(self.__class__.__name__)

    # -- Collaborator factories -------------------------------------------------

    def events(self) -> EventBus:
        if self._events is None:
            self._events = EventBus()
        return self._events

    def http_log(self) -> HttpLog:
        if self._http_log is None:
            self._http_log = HttpLog(events=self.events())
        return self._http_log

    def mock_engine(self) -> MockResponseEngine:
        if self._mock_engine is None:
            self._mock_engine = MockResponseEngine(self.context.mock_store, delay=self.context.settings.mock_delay)
        return self._mock_engine

    def adapters(self) -> Dict[str, SourceAdapter]:
        if self._adapters is None:
            built: Dict[str, SourceAdapter] = {}
            for descriptor in self.context.registry:
                factory = ADAPTER_FACTORIES.get(descriptor.kind)
                if factory is None:
                    raise AdapterError(f"No adapter implementation for kind '{descriptor.kind}' (source '{descriptor.key}').")
                built[descriptor.key] = factory(self, descriptor)
            self._adapters = built
        return self._adapters

    def router(self) -> Router:
        if self._router is None:
            self._router = Router(
                self.context.registry,
                self.adapters(),
                storage=self.context.storage,
                events=self.events(),
                http_log=self.http_log(),
            )
        return self._router

    def health_monitor(self) -> HealthMonitor:
        if self._monitor is None:
            settings = self.context.settings
            self._monitor = HealthMonitor(
                self.router(),
                interval=settings.health_interval,
                probe_timeout=settings.probe_timeout,
                development=settings.is_development,
            )
        return self._monitor

    def workspace(self) -> TaskWorkspace:
        if self._workspace is None:
            self._workspace = TaskWorkspace(self.router())
        return self._workspace

    # -- Operations -------------------------------------------------------------

    async def refresh_sources(self) -> Dict[str, ProbeResult]:
        """Run one health-check round so availability reflects reality."""

        return await self.health_monitor().check_now()

    async def verify_source(self, source_id: str) -> ProbeResult:
        """Probe a single source and record its availability."""

        if source_id not in self.context.registry:
            raise AdapterError(f"Source '{source_id}' is not registered.")
        if source_id == self.router().baseline_key:
            return ProbeResult(success=True, message="Baseline source is always available.")
        return await self.health_monitor().probe_source(source_id)

    async def ensure_checked(self) -> None:
        """
        Run the first health round before anything is routed.

        A selection restored from the session may point at a source that is no
        longer reachable; the round re-selects before the first dispatch.
        """

        if self.health_monitor().rounds == 0:
            await self.refresh_sources()

    async def send(self, request: Request, *, task_id: Optional[str] = None) -> Response:
        await self.ensure_checked()
        self.logger.info("Routing request", extra={"method": request.method, "url": request.url, "source": self.router().current_key})
        return await self.router().route(request, task_id=task_id)

    async def check_task(self, exercise: Exercise, request: Request) -> TaskCheckOutcome:
        await self.ensure_checked()
        return await self.workspace().check_task(exercise, request)
