"""
Source selection, failover and health probing.
"""

from .health import HealthMonitor
from .router import Router, RouterState, SourceInfo

__all__ = ["HealthMonitor", "Router", "RouterState", "SourceInfo"]
