"""
Static table of canned simulator responses.

The table is loaded once from YAML and never mutated afterwards; lookups hand
out deep copies so callers can edit the result freely.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from ..core.models import Response, status_phrase


class MockTableError(RuntimeError):
    """Raised when the mock response table cannot be parsed or validated."""


@dataclass(frozen=True, slots=True)
class ProtectedResource:
    """URL fragment whose lookup key is extended with the value of ``header``."""

    path: str
    header: str


@dataclass(frozen=True, slots=True)
class MockEntry:
    key: str
    status: int
    status_text: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None

    def materialise(self) -> Response:
        """Return an independent :class:`Response` built from a deep copy of the entry."""

        return Response(
            status=self.status,
            status_text=self.status_text or status_phrase(self.status),
            headers=dict(self.headers),
            body=copy.deepcopy(self.body),
        )


DEFAULT_PROTECTED: Tuple[ProtectedResource, ...] = (
    ProtectedResource(path="/api/secure-data", header="X-API-Key"),
    ProtectedResource(path="/api/protected-resource", header="Authorization"),
)


class MockResponseStore:
    """Read-only mapping from synthesized request key to :class:`MockEntry`."""

    def __init__(self, entries: Iterable[MockEntry] = (), *, protected: Iterable[ProtectedResource] = DEFAULT_PROTECTED) -> None:
        table: Dict[str, MockEntry] = {}
        for entry in entries:
            if entry.key in table:
                raise MockTableError(f"Mock entry '{entry.key}' is declared twice.")
            table[entry.key] = entry
        self._entries = MappingProxyType(table)
        self.protected: Tuple[ProtectedResource, ...] = tuple(protected)

    def get(self, key: str) -> Optional[MockEntry]:
        return self._entries.get(key)

    def keys(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, origin: str = "<mapping>") -> "MockResponseStore":
        responses = payload.get("responses")
        if not isinstance(responses, Mapping):
            raise MockTableError(f"Mock table '{origin}' must contain a 'responses' mapping.")

        protected_payload = payload.get("protected")
        if protected_payload is None:
            protected: Tuple[ProtectedResource, ...] = DEFAULT_PROTECTED
        elif isinstance(protected_payload, list):
            try:
                protected = tuple(ProtectedResource(path=str(item["path"]), header=str(item["header"])) for item in protected_payload)
            except (KeyError, TypeError) as exc:
                raise MockTableError(f"Invalid protected resource rule in '{origin}': {exc}") from exc
        else:
            raise MockTableError(f"'protected' in '{origin}' must be a list.")

        entries = [_entry_from_payload(str(key), value, origin=origin) for key, value in responses.items()]
        return cls(entries, protected=protected)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "MockResponseStore":
        location = Path(path)
        if not location.exists():
            raise MockTableError(f"Mock table '{location}' does not exist.")
        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise MockTableError(f"Failed to parse '{location}': {exc}") from exc
        if not isinstance(payload, Mapping):
            raise MockTableError(f"Mock table '{location}' must be a mapping.")
        return cls.from_mapping(payload, origin=str(location))


def _entry_from_payload(key: str, value: Any, *, origin: str) -> MockEntry:
    if not isinstance(value, Mapping):
        raise MockTableError(f"Mock entry '{key}' in '{origin}' must be a mapping.")
    if ":" not in key:
        raise MockTableError(f"Mock entry key '{key}' in '{origin}' must look like 'METHOD:/url'.")
    status = value.get("status")
    if isinstance(status, bool) or not isinstance(status, int):
        raise MockTableError(f"Mock entry '{key}' in '{origin}' needs an integer status.")
    headers = value.get("headers") or {}
    if not isinstance(headers, Mapping):
        raise MockTableError(f"Headers of mock entry '{key}' in '{origin}' must be a mapping.")
    status_text = value.get("statusText")
    return MockEntry(
        key=key,
        status=status,
        status_text=str(status_text) if status_text else None,
        headers=MappingProxyType({str(name): str(header) for name, header in headers.items()}),
        body=value.get("body"),
    )
