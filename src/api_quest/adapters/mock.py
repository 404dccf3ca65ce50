"""
Adapter for the local API simulator (the baseline source).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.models import Request, Response
from ..mock.engine import MockResponseEngine
from .base import ProbeResult, RawResult


@dataclass(slots=True)
class MockAdapter:
    """Answers every request from the canned table; no real transport happens."""

    engine: MockResponseEngine
    source_id: str = "mock"

    def process_request(self, request: Request) -> Request:
        return request.clone()

    def process_response(self, raw: RawResult) -> Response:
        return Response(status=raw.status, status_text=raw.status_text, headers=dict(raw.headers), body=raw.data)

    async def dispatch(self, request: Request) -> Response:
        answer = await self.engine.respond(self.process_request(request))
        return self.process_response(RawResult(status=answer.status, status_text=answer.status_text, headers=answer.headers, data=answer.body))

    async def probe(self) -> ProbeResult:
        return ProbeResult(success=True, message="Simulator is always available.", details={"entries": len(self.engine.store)})
