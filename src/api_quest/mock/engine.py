"""
Deterministic simulator that answers requests from the canned response table.

Lookup keys are synthesized from the request exactly as the table is keyed:

1. ``"<METHOD>:<url>"``;
2. for a protected resource carrying its authentication header, ``"/<header value>"``
   is appended so each credential maps to its own entry;
3. for ``POST``/``PUT``/``PATCH`` without a body, ``"/empty"`` is appended so the
   call resolves to the validation-error entry.

Misses resolve to a ``404`` response echoing the computed key.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping as MappingABC
from typing import Any, Callable, Iterable, Optional

import anyio

from ..core.logging import get_logger
from ..core.models import Request, Response
from .store import MockResponseStore, ProtectedResource
from .templating import current_timestamp, substitute_placeholders

SIMULATOR_SERVER = "API Simulator"
EMPTY_BODY_SUFFIX = "empty"


def _is_empty_body(body: Any) -> bool:
    if body is None:
        return True
    if isinstance(body, (MappingABC, list, tuple, str)):
        return len(body) == 0
    return False


def synthesize_key(request: Request, protected: Iterable[ProtectedResource]) -> str:
    """Compute the table key for ``request``; a pure function of the request."""

    key = f"{request.method}:{request.url}"

    for rule in protected:
        if rule.path in request.url:
            credential = request.headers.get(rule.header)
            if credential:
                key += f"/{credential}"
            break

    if request.carries_body and _is_empty_body(request.body):
        key += f"/{EMPTY_BODY_SUFFIX}"
    return key


def not_found_response(request_key: str) -> Response:
    return Response(
        status=404,
        status_text="Not Found",
        headers={"Content-Type": "application/json", "Server": SIMULATOR_SERVER},
        body={
            "error": "Not Found",
            "message": "The requested resource was not found",
            "requestKey": request_key,
        },
    )


class MockResponseEngine:
    """Resolve requests against a :class:`MockResponseStore` with simulated latency."""

    def __init__(
        self,
        store: MockResponseStore,
        *,
        delay: float = 0.8,
        clock: Callable[[], str] = current_timestamp,
    ) -> None:
        self.store = store
        self.delay = delay
        self.clock = clock
        self.logger = get_logger(__name__, extra={"source": "mock"})

    def key_for(self, request: Request) -> str:
        return synthesize_key(request, self.store.protected)

    def resolve(self, request: Request) -> Response:
        """Answer ``request`` immediately. Never raises for a missing entry."""

        request_key = self.key_for(request)
        entry = self.store.get(request_key)
        if entry is None:
            self.logger.debug("Mock entry missing", extra={"request_key": request_key})
            return not_found_response(request_key)

        response = entry.materialise()
        body = response.body
        if request.carries_body and isinstance(request.body, MappingABC) and request.body and isinstance(body, dict):
            substitute_placeholders(body, copy.deepcopy(dict(request.body)), clock=self.clock)
        self.logger.debug("Mock entry matched", extra={"request_key": request_key, "status_code": response.status})
        return response

    async def respond(self, request: Request, *, delay: Optional[float] = None) -> Response:
        """Suspend for the simulated latency, then :meth:`resolve`."""

        pause = self.delay if delay is None else delay
        if pause > 0:
            await anyio.sleep(pause)
        return self.resolve(request)
