"""
Canonical request and response shapes exchanged by every engine component.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any, Dict, Mapping, Optional

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


@dataclass(frozen=True, slots=True)
class Request:
    """
    A learner-composed HTTP request.

    Instances are never mutated; adapters work on :meth:`clone` copies.
    """

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    @property
    def carries_body(self) -> bool:
        """Whether the method conventionally carries a body."""

        return self.method in BODY_METHODS

    def clone(self, **changes: Any) -> "Request":
        """Return a deep copy, optionally with some fields replaced."""

        duplicate = replace(self, headers=copy.deepcopy(self.headers), body=copy.deepcopy(self.body))
        return replace(duplicate, **changes) if changes else duplicate

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.method, "url": self.url, "headers": dict(self.headers), "body": copy.deepcopy(self.body)}

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Request":
        headers = payload.get("headers") or {}
        return cls(
            method=str(payload["method"]),
            url=str(payload["url"]),
            headers={str(key): str(value) for key, value in headers.items()},
            body=copy.deepcopy(payload.get("body")),
        )


@dataclass(frozen=True, slots=True)
class Response:
    """Normalised response every adapter hands back to the router."""

    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "statusText": self.status_text, "headers": dict(self.headers), "body": copy.deepcopy(self.body)}

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Response":
        status = int(payload["status"])
        headers = payload.get("headers") or {}
        return cls(
            status=status,
            status_text=str(payload.get("statusText") or status_phrase(status)),
            headers={str(key): str(value) for key, value in headers.items()},
            body=copy.deepcopy(payload.get("body")),
        )


def error_response(error: str, message: str, *, source: Optional[str] = None, status: int = 500) -> Response:
    """Build the synthesized failure response used in place of raised errors."""

    body: Dict[str, Any] = {"error": error, "message": message}
    if source is not None:
        body["source"] = source
    return Response(
        status=status,
        status_text="Error" if status == 500 else status_phrase(status),
        headers={"Content-Type": "application/json"},
        body=body,
    )
