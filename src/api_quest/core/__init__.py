"""
Core infrastructure shared across the API Quest engine.

Exposes the source registry, canonical request/response shapes, session
storage, the event bus, the HTTP exchange log and the execution context used
by higher level services.
"""

from .context import EngineContext
from .events import EventBus
from .http_log import HttpLog, HttpLogEntry, LogType
from .logging import bind_extra, configure_logging, get_logger
from .models import Request, Response, error_response
from .registry import RegistryLoadError, SourceDescriptor, SourceRegistry
from .storage import JsonFileSessionStorage, MemorySessionStorage, SessionStorage

__all__ = [
    "EngineContext",
    "EventBus",
    "HttpLog",
    "HttpLogEntry",
    "JsonFileSessionStorage",
    "LogType",
    "MemorySessionStorage",
    "RegistryLoadError",
    "Request",
    "Response",
    "SessionStorage",
    "SourceDescriptor",
    "SourceRegistry",
    "bind_extra",
    "configure_logging",
    "error_response",
    "get_logger",
]
