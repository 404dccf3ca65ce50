"""
Placeholder syntax used by canned simulator responses.

A top-level string value written exactly as ``"{name}"`` is a placeholder.
``{currentDate}`` resolves to the current instant; any other name copies the
same-named field from the request body. Names with no matching request field
are left untouched so learners can see which input they forgot.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Mapping, Optional

CURRENT_DATE = "currentDate"

_PLACEHOLDER = re.compile(r"\{(?P<name>[^{}]+)\}")


def parse_placeholder(value: Any) -> Optional[str]:
    """Return the placeholder name if ``value`` is a whole-string placeholder."""

    if not isinstance(value, str):
        return None
    match = _PLACEHOLDER.fullmatch(value)
    return match.group("name") if match else None


def current_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""

    instant = now or datetime.now(UTC)
    return instant.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def substitute_placeholders(
    template: Dict[str, Any],
    values: Mapping[str, Any],
    *,
    clock: Callable[[], str] = current_timestamp,
) -> Dict[str, Any]:
    """
    Resolve placeholders in the top-level fields of ``template`` in place.

    Nested objects are not scanned. ``template`` must already be a private copy.
    """

    for key, value in template.items():
        name = parse_placeholder(value)
        if name is None:
            continue
        if name == CURRENT_DATE:
            template[key] = clock()
        elif name in values:
            template[key] = values[name]
    return template
