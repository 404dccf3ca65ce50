"""
Source descriptor declarations and helpers.

The registry is the static table of request-handling backends the router can
choose from. Each entry carries the human-facing label shown to learners, the
base address the adapter prefixes onto relative URLs, and the failover
priority (lower numbers are preferred). Exactly one entry is the baseline: the
local simulator that is always available and never excluded from selection.

Descriptors are loaded from YAML so exercise authors can adjust the table
without touching Python code. Registration order is preserved and used as the
tie-breaker when two sources share a priority.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, MutableMapping, Optional

import yaml

ADAPTER_KINDS = ("mock", "public", "training")


class RegistryLoadError(RuntimeError):
    """Raised when a source table cannot be parsed or validated."""


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """
    Immutable metadata associated with a single source.

    Parameters
    ----------
    key:
        Unique identifier used across the engine (``mock``, ``public`` ...).
    display_name:
        Human-friendly label.
    description:
        Short summary shown next to the label.
    kind:
        Adapter implementation handling this source; one of :data:`ADAPTER_KINDS`.
    base_address:
        Prefix applied to relative request URLs. Empty for the simulator.
    priority:
        Failover rank, lower is preferred. Fixed at registration.
    baseline:
        Marks the fallback of last resort. Its availability is always ``True``.
    always_available:
        Availability assumed in development mode, where no probes are sent.
    needs_auth:
        Whether the backend expects the session bearer credential.
    """

    key: str
    display_name: str
    description: str
    kind: str
    base_address: str = ""
    priority: int = 1
    baseline: bool = False
    always_available: bool = False
    needs_auth: bool = False

    def validate(self) -> None:
        """Validate internal consistency of the descriptor."""

        if not self.key or not self.key.isidentifier():
            raise RegistryLoadError(f"Source '{self.key}' must be a valid identifier (letters, digits, underscore).")
        if self.kind not in ADAPTER_KINDS:
            raise RegistryLoadError(f"Source '{self.key}' has unknown kind '{self.kind}'. Expected one of: {', '.join(ADAPTER_KINDS)}.")
        if self.baseline and self.kind != "mock":
            raise RegistryLoadError(f"Baseline source '{self.key}' must use the mock adapter.")

    def to_json(self) -> str:
        """Return a JSON representation useful for CLI output."""

        payload = {
            "id": self.key,
            "name": self.display_name,
            "description": self.description,
            "kind": self.kind,
            "base_url": self.base_address,
            "priority": self.priority,
            "baseline": self.baseline,
            "always_available": self.always_available,
            "needs_auth": self.needs_auth,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2)


class SourceRegistry:
    """Ordered in-memory catalogue of :class:`SourceDescriptor` entries."""

    def __init__(self) -> None:
        self._entries: MutableMapping[str, SourceDescriptor] = {}

    def register(self, descriptor: SourceDescriptor) -> None:
        """Register a descriptor; duplicate keys and a second baseline are rejected."""

        descriptor.validate()
        if descriptor.key in self._entries:
            raise RegistryLoadError(f"Source '{descriptor.key}' is registered twice.")
        if descriptor.baseline and self.find_baseline() is not None:
            raise RegistryLoadError(f"Source '{descriptor.key}' cannot be a second baseline.")
        self._entries[descriptor.key] = descriptor

    def get(self, key: str) -> Optional[SourceDescriptor]:
        """Retrieve a descriptor if present."""

        return self._entries.get(key)

    def require(self, key: str) -> SourceDescriptor:
        """Retrieve a descriptor or raise an informative error."""

        descriptor = self.get(key)
        if descriptor is None:
            raise KeyError(f"Source '{key}' is not registered.")
        return descriptor

    def find_baseline(self) -> Optional[SourceDescriptor]:
        for descriptor in self._entries.values():
            if descriptor.baseline:
                return descriptor
        return None

    @property
    def baseline(self) -> SourceDescriptor:
        descriptor = self.find_baseline()
        if descriptor is None:
            raise RegistryLoadError("No baseline source is registered.")
        return descriptor

    def keys(self) -> List[str]:
        return list(self._entries)

    def list(self) -> List[SourceDescriptor]:
        """Return descriptors in registration order."""

        return list(self._entries.values())

    def __iter__(self) -> Iterator[SourceDescriptor]:
        return iter(list(self._entries.values()))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def with_base_addresses(self, overrides: Dict[str, str]) -> "SourceRegistry":
        """Return a copy of the registry with per-source base addresses replaced."""

        registry = SourceRegistry()
        for descriptor in self._entries.values():
            address = overrides.get(descriptor.key, descriptor.base_address)
            registry.register(
                SourceDescriptor(
                    key=descriptor.key,
                    display_name=descriptor.display_name,
                    description=descriptor.description,
                    kind=descriptor.kind,
                    base_address=address,
                    priority=descriptor.priority,
                    baseline=descriptor.baseline,
                    always_available=descriptor.always_available,
                    needs_auth=descriptor.needs_auth,
                )
            )
        return registry

    @classmethod
    def from_yaml(cls, path: Path | str) -> "SourceRegistry":
        """Load descriptors from a YAML document."""

        location = Path(path)
        if not location.exists():
            raise RegistryLoadError(f"Source table '{location}' does not exist.")

        try:
            with location.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise RegistryLoadError(f"Failed to parse '{location}': {exc}") from exc

        if not isinstance(payload, list):
            raise RegistryLoadError(f"Source table '{location}' must contain a list of sources.")

        registry = cls()
        for entry in payload:
            registry.register(cls._descriptor_from_payload(entry, origin=location))
        if registry.find_baseline() is None:
            raise RegistryLoadError(f"Source table '{location}' does not declare a baseline source.")
        return registry

    @staticmethod
    def _descriptor_from_payload(entry: object, *, origin: Path) -> SourceDescriptor:
        """Convert a YAML mapping into a descriptor instance."""

        if not isinstance(entry, dict):
            raise RegistryLoadError(f"Invalid entry in '{origin}': expected mapping, got {type(entry)!r}")

        try:
            priority = entry.get("priority", 1)
            if isinstance(priority, bool) or not isinstance(priority, int):
                raise ValueError(f"priority for '{entry['id']}' must be an integer, got {priority!r}")
            return SourceDescriptor(
                key=str(entry["id"]),
                display_name=str(entry.get("name", entry["id"])),
                description=str(entry.get("description", "")),
                kind=str(entry["kind"]),
                base_address=str(entry.get("base_url") or ""),
                priority=priority,
                baseline=bool(entry.get("baseline", False)),
                always_available=bool(entry.get("always_available", False)),
                needs_auth=bool(entry.get("needs_auth", False)),
            )
        except KeyError as exc:
            raise RegistryLoadError(f"Missing required key {exc!s} in '{origin}'.") from exc
        except ValueError as exc:
            raise RegistryLoadError(f"Invalid field in '{origin}': {exc}") from exc
