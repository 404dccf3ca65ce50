"""
Adapter for the free public practice API.
"""

from __future__ import annotations

from typing import MutableMapping, Optional

import httpx

from .http import CLIENT_HEADER, DEFAULT_PROBE_TIMEOUT, DEFAULT_TIMEOUT, HTTPSourceAdapter

DEFAULT_BASE_URL = "https://public-api-quest.example.com"


class PublicAPIAdapter(HTTPSourceAdapter):
    """Prefixes relative URLs and tags requests with the platform client header."""

    def __init__(
        self,
        *,
        source_id: str = "public",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = 2,
        retry_wait: float = 0.5,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        default_headers: Optional[MutableMapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers: MutableMapping[str, str] = {CLIENT_HEADER: "Public"}
        if default_headers:
            headers.update(default_headers)
        super().__init__(
            source_id=source_id,
            base_url=base_url,
            timeout=timeout,
            retry_attempts=retry_attempts,
            retry_wait=retry_wait,
            probe_timeout=probe_timeout,
            default_headers=headers,
            transport=transport,
        )
