"""
Shared HTTP machinery for adapters that talk to a real backend.

The base class wraps :class:`httpx.AsyncClient` with retry logic: transport
failures (connection refused, DNS, timeouts) are retried with exponential
back-off, while HTTP status codes are returned as ordinary responses because a
``4xx`` is exactly what a learner may be trying to provoke.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Dict, MutableMapping, Optional

import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..core.logging import get_logger
from ..core.models import Request, Response, error_response
from .base import ProbeResult, RawResult, TransportError

DEFAULT_TIMEOUT = 15.0
DEFAULT_PROBE_TIMEOUT = 3.0
HEALTH_PATH = "/health"
CLIENT_HEADER = "X-API-Quest-Client"


def is_absolute(url: str) -> bool:
    return url.startswith("http")


@dataclass(slots=True)
class HTTPSourceAdapter:
    """
    Base asynchronous adapter with retry support.

    Parameters
    ----------
    source_id:
        Key of the source this adapter serves.
    base_url:
        Prefix for relative request URLs and the health endpoint.
    timeout:
        Transfer timeout in seconds.
    retry_attempts:
        Total attempts for a transfer failing at transport level.
    retry_wait:
        Back-off multiplier in seconds between attempts.
    probe_timeout:
        Timeout for the health probe in seconds.
    default_headers:
        Headers injected into every outgoing request.
    transport:
        Optional httpx transport, e.g. :class:`httpx.MockTransport` in tests.
    """

    source_id: str
    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    retry_attempts: int = 2
    retry_wait: float = 0.5
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    default_headers: MutableMapping[str, str] = field(default_factory=dict)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"source": self.source_id, "base_url": self.base_url},
        )

    def _build_client(self, *, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout if timeout is None else timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    # -- transforms ---------------------------------------------------------

    def inject_headers(self, headers: Dict[str, str]) -> None:
        """Hook for backend-specific headers; ``headers`` is a private copy."""

    def process_request(self, request: Request) -> Request:
        processed = request.clone()
        if not is_absolute(processed.url):
            processed = processed.clone(url=f"{self.base_url}{processed.url}")
        headers = processed.headers
        headers.update(self.default_headers)
        self.inject_headers(headers)
        return processed

    def process_response(self, raw: RawResult) -> Response:
        return Response(status=raw.status, status_text=raw.status_text, headers=dict(raw.headers), body=raw.data)

    # -- transfer -----------------------------------------------------------

    @staticmethod
    def _encode_body(body: Any) -> Dict[str, Any]:
        if body is None or body == "" or body == {}:
            return {}
        if isinstance(body, (str, bytes)):
            return {"content": body}
        return {"content": json.dumps(body, ensure_ascii=False).encode("utf-8")}

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _transfer(self, request: Request) -> RawResult:
        self.logger.debug("HTTP request", extra={"method": request.method, "url": request.url})
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=self.retry_wait, max=4),
            stop=stop_after_attempt(max(1, self.retry_attempts)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    async with self._build_client() as client:
                        response = await client.request(
                            request.method,
                            request.url,
                            headers=dict(request.headers),
                            **self._encode_body(request.body),
                        )
        except RetryError as exc:
            raise TransportError(f"Failed to call {request.method} {request.url} after multiple attempts: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"HTTP error while calling {request.method} {request.url}: {exc}") from exc
        except (UnicodeEncodeError, TypeError, ValueError) as exc:
            # Headers must be ASCII and bodies JSON-serialisable before anything is sent.
            raise TransportError(f"Could not encode {request.method} {request.url}: {exc}") from exc

        self.logger.debug("HTTP response", extra={"status_code": response.status_code, "url": str(response.url)})
        return RawResult(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            data=self._decode_body(response),
        )

    def failure_response(self, exc: Exception) -> Response:
        return error_response(f"Request to the {self.source_id} API failed", str(exc), source=self.source_id)

    async def dispatch(self, request: Request) -> Response:
        processed = self.process_request(request)
        try:
            raw = await self._transfer(processed)
        except TransportError as exc:
            self.logger.warning("Transfer failed", extra={"method": processed.method, "url": processed.url, "error": str(exc)})
            return self.failure_response(exc)
        return self.process_response(raw)

    async def probe(self) -> ProbeResult:
        if not self.base_url:
            return ProbeResult(success=False, message=f"Source '{self.source_id}' has no base URL.", details={"reason": "missing-base-url"})
        url = f"{self.base_url}{HEALTH_PATH}"
        try:
            async with self._build_client(timeout=self.probe_timeout) as client:
                response = await client.get(url, headers={CLIENT_HEADER: "Health-Check"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return ProbeResult(success=False, message=f"Health probe for '{self.source_id}' failed: {exc}", details={"url": url})
        return ProbeResult(
            success=response.is_success,
            message=f"Health probe for '{self.source_id}' answered {response.status_code}.",
            details={"url": url, "status_code": response.status_code},
        )
