"""
Request routing and verification engine for API Quest exercises.

The engine routes learner-composed HTTP requests to one of several backends
(a local simulator, a public practice API, the platform's training API) with
priority-based failover and periodic health probing, and checks requests and
responses against exercise descriptors. Import :class:`EngineServices` for the
main developer-facing surface.
"""

from .core import EngineContext, Request, Response
from .routing import HealthMonitor, Router
from .services import EngineServices, Exercise, TaskWorkspace
from .verification import check_request, check_response

__all__ = [
    "EngineContext",
    "EngineServices",
    "Exercise",
    "HealthMonitor",
    "Request",
    "Response",
    "Router",
    "TaskWorkspace",
    "check_request",
    "check_response",
]
