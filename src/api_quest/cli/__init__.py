"""
Command-line entry points for the API Quest engine.
"""

from .main import app

__all__ = ["app"]
