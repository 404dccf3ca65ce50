"""
Periodic availability probing for non-baseline sources.

Each round probes every non-baseline source concurrently, bounded by the probe
timeout. A probe updates availability as soon as it settles, independently of
the others, and never blocks routing. After the round the router re-selects
if the current source went away and ``sources-updated`` is emitted.

In development mode no network probes are sent; availability comes from each
source's ``always_available`` flag.
"""

from __future__ import annotations

from typing import Dict

import anyio
from anyio.abc import TaskStatus

from ..adapters.base import ProbeResult
from ..core.events import SOURCES_UPDATED
from ..core.logging import get_logger
from .router import Router

DEFAULT_INTERVAL = 60.0
DEFAULT_PROBE_TIMEOUT = 3.0


class HealthMonitor:
    """Drives availability updates on a :class:`Router`."""

    def __init__(
        self,
        router: Router,
        *,
        interval: float = DEFAULT_INTERVAL,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        development: bool = False,
    ) -> None:
        self.router = router
        self.interval = interval
        self.probe_timeout = probe_timeout
        self.development = development
        self.rounds = 0
        self.logger = get_logger(__name__)

    async def probe_source(self, key: str) -> ProbeResult:
        """Probe one source and record the outcome on the router."""

        adapter = self.router.adapter_for(key)
        result = ProbeResult(success=False, message=f"Health probe for '{key}' timed out after {self.probe_timeout:g}s.")
        with anyio.move_on_after(self.probe_timeout):
            try:
                result = await adapter.probe()
            except Exception as exc:
                self.logger.warning("Health probe raised", extra={"source": key, "error": str(exc)})
                result = ProbeResult(success=False, message=f"Health probe for '{key}' raised: {exc}")
        self.logger.debug("Health probe settled", extra={"source": key, "available": result.success})
        self.router.set_availability(key, result.success)
        return result

    async def check_now(self) -> Dict[str, ProbeResult]:
        """Run one probing round and return the per-source results."""

        results: Dict[str, ProbeResult] = {}
        baseline = self.router.baseline_key
        results[baseline] = ProbeResult(success=True, message="Baseline source is always available.")
        targets = [descriptor for descriptor in self.router.registry if descriptor.key != baseline]

        if self.development:
            for descriptor in targets:
                self.router.set_availability(descriptor.key, descriptor.always_available)
                results[descriptor.key] = ProbeResult(
                    success=descriptor.always_available,
                    message="Development mode: availability taken from configuration.",
                )
        else:

            async def _probe(key: str) -> None:
                results[key] = await self.probe_source(key)

            async with anyio.create_task_group() as group:
                for descriptor in targets:
                    group.start_soon(_probe, descriptor.key)

        self.router.auto_select()
        self.rounds += 1
        self.router.events.emit(SOURCES_UPDATED, [info.to_dict() for info in self.router.get_available_sources()])
        return results

    async def run(self, *, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
        """Probe forever at :attr:`interval`; stop by cancelling the enclosing scope."""

        await self.check_now()
        task_status.started()
        while True:
            await anyio.sleep(self.interval)
            await self.check_now()
