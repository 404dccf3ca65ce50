"""
Adapter for the platform's own training API.

The training API authenticates with a session credential. It hands the
credential back in the ``X-API-Quest-Auth-Token`` response header; the adapter
keeps the latest value in session storage and attaches it to every subsequent
request as ``X-API-Quest-Auth``.
"""

from __future__ import annotations

from typing import Dict, Mapping, MutableMapping, Optional

import httpx

from ..core.models import Response
from ..core.storage import AUTH_TOKEN_KEY, MemorySessionStorage, SessionStorage
from .base import RawResult
from .http import DEFAULT_PROBE_TIMEOUT, DEFAULT_TIMEOUT, HTTPSourceAdapter

DEFAULT_BASE_URL = "https://api-quest.example.com/api"
AUTH_HEADER = "X-API-Quest-Auth"
TOKEN_HEADER = "x-api-quest-auth-token"


def _header_value(headers: Mapping[str, str], name: str) -> Optional[str]:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


class TrainingAPIAdapter(HTTPSourceAdapter):
    """Injects and captures the session credential around every transfer."""

    def __init__(
        self,
        *,
        storage: Optional[SessionStorage] = None,
        source_id: str = "training",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = 2,
        retry_wait: float = 0.5,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        default_headers: Optional[MutableMapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            source_id=source_id,
            base_url=base_url,
            timeout=timeout,
            retry_attempts=retry_attempts,
            retry_wait=retry_wait,
            probe_timeout=probe_timeout,
            default_headers=dict(default_headers or {}),
            transport=transport,
        )
        self.storage: SessionStorage = storage if storage is not None else MemorySessionStorage()

    def inject_headers(self, headers: Dict[str, str]) -> None:
        headers[AUTH_HEADER] = self.storage.get(AUTH_TOKEN_KEY) or ""

    def process_response(self, raw: RawResult) -> Response:
        token = _header_value(raw.headers, TOKEN_HEADER)
        if token:
            self.storage.set(AUTH_TOKEN_KEY, token)
            self.logger.debug("Captured session credential")
        return super().process_response(raw)
