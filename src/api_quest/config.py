"""
Runtime settings for the routing engine.

Settings are loaded from a TOML document. The lookup order is:

1. Explicit ``API_QUEST_CONFIG_PATH`` environment variable.
2. ``.api_quest/config.toml`` relative to the current working directory.
3. ``.api_quest/config.toml`` relative to the project root (the directory
   holding ``pyproject.toml``).

When no file is found the defaults below apply. ``API_QUEST_APP_MODE`` overrides
the ``app_mode`` value from the file.

Example::

    [engine]
    app_mode = "production"
    mock_delay = 0.8
    health_interval = 60
    probe_timeout = 3

    [sources.base_urls]
    public = "https://public-api-quest.example.com"
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

APP_MODES = ("development", "staging", "production")
DEFAULT_APP_MODE = "production"
DEFAULT_MOCK_DELAY = 0.8
DEFAULT_HEALTH_INTERVAL = 60.0
DEFAULT_PROBE_TIMEOUT = 3.0
DEFAULT_REQUEST_TIMEOUT = 15.0
DEFAULT_RETRY_ATTEMPTS = 2

_ENV_PATH = "API_QUEST_CONFIG_PATH"
_ENV_MODE = "API_QUEST_APP_MODE"


class SettingsError(ValueError):
    """Raised when a settings document holds invalid values."""


@dataclass(slots=True)
class EngineSettings:
    """
    Tunables for routing, probing and the simulator.

    Attributes
    ----------
    app_mode:
        ``development`` skips network probes and trusts each source's
        ``always_available`` flag.
    mock_delay:
        Artificial latency (seconds) applied by the simulator on every dispatch.
    health_interval:
        Seconds between health-check rounds.
    probe_timeout:
        Upper bound (seconds) for a single health probe.
    request_timeout:
        Timeout (seconds) for routed HTTP transfers.
    retry_attempts:
        Total attempts for a transfer that fails at transport level.
    base_urls:
        Per-source overrides of the base address from the source table.
    """

    app_mode: str = DEFAULT_APP_MODE
    mock_delay: float = DEFAULT_MOCK_DELAY
    health_interval: float = DEFAULT_HEALTH_INTERVAL
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    base_urls: Dict[str, str] = field(default_factory=dict)
    source_path: Optional[Path] = None

    @property
    def is_development(self) -> bool:
        return self.app_mode == "development"

    def validate(self) -> None:
        if self.app_mode not in APP_MODES:
            raise SettingsError(f"Unknown app mode '{self.app_mode}'. Expected one of: {', '.join(APP_MODES)}.")
        if self.mock_delay < 0:
            raise SettingsError("mock_delay must not be negative.")
        if self.health_interval <= 0 or self.probe_timeout <= 0 or self.request_timeout <= 0:
            raise SettingsError("health_interval, probe_timeout and request_timeout must be positive.")
        if self.retry_attempts < 1:
            raise SettingsError("retry_attempts must be at least 1.")


def _discover_project_root() -> Optional[Path]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").is_file():
            return parent
    return None


def _candidate_paths() -> Iterable[Path]:
    env_override = os.getenv(_ENV_PATH)
    if env_override:
        yield Path(env_override).expanduser()

    yield Path.cwd() / ".api_quest" / "config.toml"
    project_root = _discover_project_root()
    if project_root:
        yield project_root / ".api_quest" / "config.toml"


def _number(section: Mapping[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"Setting '{key}' must be a number, got {value!r}.")
    return float(value)


def settings_from_mapping(raw: Mapping[str, Any], *, source_path: Optional[Path] = None) -> EngineSettings:
    """Build validated settings from a parsed TOML mapping."""

    engine = raw.get("engine", {})
    if not isinstance(engine, Mapping):
        engine = {}
    sources = raw.get("sources", {})
    base_urls = sources.get("base_urls", {}) if isinstance(sources, Mapping) else {}
    if not isinstance(base_urls, Mapping):
        base_urls = {}

    retry_attempts = engine.get("retry_attempts", DEFAULT_RETRY_ATTEMPTS)
    if isinstance(retry_attempts, bool) or not isinstance(retry_attempts, int):
        raise SettingsError(f"Setting 'retry_attempts' must be an integer, got {retry_attempts!r}.")

    settings = EngineSettings(
        app_mode=str(os.getenv(_ENV_MODE) or engine.get("app_mode", DEFAULT_APP_MODE)),
        mock_delay=_number(engine, "mock_delay", DEFAULT_MOCK_DELAY),
        health_interval=_number(engine, "health_interval", DEFAULT_HEALTH_INTERVAL),
        probe_timeout=_number(engine, "probe_timeout", DEFAULT_PROBE_TIMEOUT),
        request_timeout=_number(engine, "request_timeout", DEFAULT_REQUEST_TIMEOUT),
        retry_attempts=retry_attempts,
        base_urls={str(key): str(value) for key, value in base_urls.items() if isinstance(value, str)},
        source_path=source_path,
    )
    settings.validate()
    return settings


def load_settings(path: Optional[Path] = None, *, strict: bool = False) -> EngineSettings:
    """
    Load settings from ``path`` or the first discovered config file.

    Parameters
    ----------
    path:
        Explicit settings file. Must exist when given.
    strict:
        When ``True`` a missing config file raises ``FileNotFoundError`` instead
        of falling back to defaults.
    """

    candidates = [path] if path is not None else list(_candidate_paths())
    for candidate in candidates:
        if candidate.is_file():
            with candidate.open("rb") as handle:
                try:
                    raw = tomllib.load(handle)
                except tomllib.TOMLDecodeError as exc:
                    raise SettingsError(f"Failed to parse '{candidate}': {exc}") from exc
            return settings_from_mapping(raw, source_path=candidate)

    if path is not None or strict:
        raise FileNotFoundError("No settings file found. Configure API_QUEST_CONFIG_PATH or .api_quest/config.toml.")
    return settings_from_mapping({})
