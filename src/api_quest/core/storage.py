"""
Session-scoped key-value storage.

The router persists the current source selection here and the training API
adapter keeps the bearer credential it captured from the last response. Writes
are last-writer-wins; there is no locking because the engine runs on a single
cooperative scheduler.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Protocol

from .logging import get_logger

SOURCE_SELECTION_KEY = "api-quest-source"
AUTH_TOKEN_KEY = "apiQuestAuthToken"

LOGGER = get_logger(__name__)


class SessionStorage(Protocol):
    """Protocol implemented by session storage backends."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or ``None``."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""

    def remove(self, key: str) -> None:
        """Forget ``key``; missing keys are ignored."""


class MemorySessionStorage:
    """Process-lifetime storage backed by a plain dictionary."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._values)


class JsonFileSessionStorage(MemorySessionStorage):
    """
    Storage that mirrors every write into a JSON file.

    Used by the CLI so the source selection and captured credential survive
    between invocations. A corrupt or unreadable file starts an empty session.
    """

    def __init__(self, path: Path) -> None:
        super().__init__(self._read(path))
        self.path = path

    @staticmethod
    def _read(path: Path) -> Dict[str, str]:
        if not path.is_file():
            return {}
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable session file", extra={"path": str(path), "error": str(exc)})
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items() if value is not None}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.snapshot(), ensure_ascii=False, indent=2), encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        super().set(key, value)
        self._flush()

    def remove(self, key: str) -> None:
        super().remove(key)
        self._flush()
