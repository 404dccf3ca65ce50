"""
Adapter implementations, one per backend capability.

* :class:`MockAdapter` answers from the canned simulator table.
* :class:`PublicAPIAdapter` forwards to the public practice API.
* :class:`TrainingAPIAdapter` forwards to the platform API and manages the
  session credential.
"""

from .base import AdapterError, ProbeResult, RawResult, SourceAdapter, TransportError
from .http import HTTPSourceAdapter
from .mock import MockAdapter
from .public import PublicAPIAdapter
from .training import TrainingAPIAdapter

__all__ = [
    "AdapterError",
    "HTTPSourceAdapter",
    "MockAdapter",
    "ProbeResult",
    "PublicAPIAdapter",
    "RawResult",
    "SourceAdapter",
    "TrainingAPIAdapter",
    "TransportError",
]
