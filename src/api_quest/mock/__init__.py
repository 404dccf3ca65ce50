"""
Local API simulator: canned response table, key synthesis and templating.
"""

from .engine import MockResponseEngine, not_found_response, synthesize_key
from .store import MockEntry, MockResponseStore, MockTableError, ProtectedResource
from .templating import current_timestamp, parse_placeholder, substitute_placeholders

__all__ = [
    "MockEntry",
    "MockResponseEngine",
    "MockResponseStore",
    "MockTableError",
    "ProtectedResource",
    "current_timestamp",
    "not_found_response",
    "parse_placeholder",
    "substitute_placeholders",
    "synthesize_key",
]
