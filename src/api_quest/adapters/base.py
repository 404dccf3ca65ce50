"""
Base protocols for source adapters.

An adapter owns the transfer mechanics of one backend: it rewrites a canonical
:class:`~api_quest.core.models.Request` for that backend, performs the transfer,
and maps the native result back into a canonical
:class:`~api_quest.core.models.Response`. ``dispatch`` never raises; failures
come back as synthesized ``500`` responses tagged with the source key.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from ..core.models import Request, Response


class AdapterError(RuntimeError):
    """Raised when an adapter encounters a non-recoverable error."""


class TransportError(AdapterError):
    """Raised inside an adapter when the transfer itself fails."""


@dataclass(slots=True)
class RawResult:
    """Backend-native transfer outcome before normalisation."""

    status: int
    status_text: str
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None


@dataclass(slots=True)
class ProbeResult:
    """
    Outcome of an adapter health probe.

    Attributes
    ----------
    success:
        Whether the backend should be considered available.
    message:
        Human-readable summary.
    details:
        Optional structured metadata such as the probe status code.
    """

    success: bool
    message: str
    details: Optional[Mapping[str, object]] = None


class SourceAdapter(Protocol):
    """Protocol implemented by all source adapters."""

    @property
    def source_id(self) -> str:
        """Identifier matching the source table entry."""

    def process_request(self, request: Request) -> Request:
        """Return a backend-ready copy of ``request``; the original is untouched."""

    def process_response(self, raw: RawResult) -> Response:
        """Map a native transfer result into the canonical response shape."""

    async def dispatch(self, request: Request) -> Response:
        """Transform, transfer and normalise. Never raises."""

    async def probe(self) -> ProbeResult:
        """Perform a lightweight availability check."""
