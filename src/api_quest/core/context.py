"""
Execution context shared by the CLI and embedding applications.

The context bundles everything the engine needs before any adapter exists:
runtime settings, the source registry (with configured base address
overrides applied), the simulator table, session storage and the cache
directory. Service objects are built from a context rather than reaching for
files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..config import EngineSettings, load_settings
from ..mock.store import MockResponseStore
from ..resources import MOCK_RESPONSES_FILE, SOURCES_FILE, resource_path
from .logging import get_logger as _get_logger
from .registry import SourceRegistry
from .storage import JsonFileSessionStorage, MemorySessionStorage, SessionStorage

SESSION_FILE = "session.json"


@dataclass(slots=True)
class EngineContext:
    """
    Shared execution context across CLI commands.

    Attributes
    ----------
    settings:
        Runtime tunables loaded from TOML.
    registry:
        Source table with ``settings.base_urls`` already applied.
    mock_store:
        Canned simulator responses.
    storage:
        Session storage holding the selected source and the captured credential.
    cache_dir:
        Directory for the session file and other artefacts. ``None`` when the
        context lives purely in memory.
    observability_tags:
        Tags attached to every log record emitted through :meth:`get_logger`.
    """

    settings: EngineSettings
    registry: SourceRegistry
    mock_store: MockResponseStore
    storage: SessionStorage
    cache_dir: Optional[Path] = None
    observability_tags: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def build_default(
        cls,
        *,
        settings: Optional[EngineSettings] = None,
        sources_file: Optional[Path] = None,
        mock_table_file: Optional[Path] = None,
        cache_dir: Optional[Path] = None,
        persist_session: bool = True,
        observability_tags: Sequence[str] = (),
    ) -> "EngineContext":
        """
        Construct a context using packaged defaults.

        Parameters
        ----------
        settings:
            Preloaded settings. When omitted :func:`load_settings` is called.
        sources_file / mock_table_file:
            Override the bundled YAML tables.
        cache_dir:
            Base directory for the session file. Defaults to ``.cache/api_quest``
            relative to the current working directory.
        persist_session:
            When ``False`` session values live in memory only.
        """

        resolved_settings = settings or load_settings()
        registry = SourceRegistry.from_yaml(sources_file or resource_path(SOURCES_FILE))
        if resolved_settings.base_urls:
            registry = registry.with_base_addresses(resolved_settings.base_urls)
        mock_store = MockResponseStore.from_yaml(mock_table_file or resource_path(MOCK_RESPONSES_FILE))

        resolved_cache: Optional[Path] = None
        storage: SessionStorage
        if persist_session:
            resolved_cache = cache_dir or Path.cwd() / ".cache" / "api_quest"
            resolved_cache.mkdir(parents=True, exist_ok=True)
            storage = JsonFileSessionStorage(resolved_cache / SESSION_FILE)
        else:
            resolved_cache = cache_dir
            storage = MemorySessionStorage()

        return cls(
            settings=resolved_settings,
            registry=registry,
            mock_store=mock_store,
            storage=storage,
            cache_dir=resolved_cache,
            observability_tags=tuple(observability_tags),
        )

    def get_logger(self, name: str, *, extra: Optional[Mapping[str, object]] = None) -> LoggerAdapter:
        """Return a logger adapter enriched with the context's observability tags."""

        tags = tuple(self.observability_tags)
        return _get_logger(name, tags=tags if tags else None, extra=extra)
