"""
Packaged YAML tables: the source registry and the simulator response table.
"""

from __future__ import annotations

from pathlib import Path

SOURCES_FILE = "sources.yaml"
MOCK_RESPONSES_FILE = "mock_responses.yaml"


def resource_path(name: str) -> Path:
    """Absolute path of a bundled resource file."""

    return Path(__file__).resolve().parent / name
