"""
Service-layer helpers orchestrating adapters, the router and the execution context.
"""

from .engine import ADAPTER_FACTORIES, EngineServices
from .workspace import CheckStage, Exercise, TaskCheckOutcome, TaskWorkspace

__all__ = ["ADAPTER_FACTORIES", "CheckStage", "EngineServices", "Exercise", "TaskCheckOutcome", "TaskWorkspace"]
