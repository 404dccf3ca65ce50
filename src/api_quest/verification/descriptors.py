"""
Exercise descriptors parsed into typed expectations.

Exercise documents use the value ``true`` to mean "must be present, any value
accepted" and any other value to mean "must equal exactly". That convention is
kept on the wire, but it is resolved here, once, into :data:`REQUIRED` or a
:class:`Literal` so comparison code never inspects raw sentinels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple, Union


class DescriptorError(ValueError):
    """Raised when an exercise descriptor has the wrong shape."""


class Required:
    """Expectation satisfied by any present value."""

    _instance: Optional["Required"] = None

    def __new__(cls) -> "Required":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED = Required()


@dataclass(frozen=True, slots=True)
class Literal:
    """Expectation satisfied only by an equal value."""

    value: Any


Expectation = Union[Required, Literal]


def parse_expectation(value: Any, *, empty_is_required: bool = False) -> Expectation:
    if value is True:
        return REQUIRED
    if empty_is_required and value == "":
        return REQUIRED
    return Literal(value)


def _parse_fields(payload: Any, *, label: str, empty_is_required: bool = False) -> Mapping[str, Expectation]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise DescriptorError(f"'{label}' must be a mapping, got {type(payload).__name__}.")
    return {str(key): parse_expectation(value, empty_is_required=empty_is_required) for key, value in payload.items()}


def _optional_text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise DescriptorError(f"'{key}' must be a string, got {type(value).__name__}.")
    return value


@dataclass(frozen=True, slots=True)
class SolutionDescriptor:
    """
    What a correct learner request looks like.

    Attributes
    ----------
    method / url:
        Exact values the request must carry when set.
    headers:
        Required headers. ``true`` and the empty string both mean "present
        with a non-empty value".
    body:
        Required body fields, enforced only for ``POST``/``PUT``/``PATCH``.
    steps:
        Ordered partial requests of a multi-step exercise. Recorded for
        collaborators; no per-step comparison is performed.
    """

    method: Optional[str] = None
    url: Optional[str] = None
    headers: Mapping[str, Expectation] = field(default_factory=dict)
    body: Mapping[str, Expectation] = field(default_factory=dict)
    steps: Tuple["SolutionDescriptor", ...] = ()

    @property
    def is_multi_step(self) -> bool:
        return bool(self.steps)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, allow_steps: bool = True) -> "SolutionDescriptor":
        if not isinstance(payload, Mapping):
            raise DescriptorError(f"Solution descriptor must be a mapping, got {type(payload).__name__}.")

        raw_body = payload.get("body")
        # Non-object bodies carry no field requirements.
        body = _parse_fields(raw_body, label="body") if isinstance(raw_body, Mapping) else {}

        steps: Tuple[SolutionDescriptor, ...] = ()
        raw_steps = payload.get("steps")
        if raw_steps is not None:
            if not allow_steps:
                raise DescriptorError("Nested 'steps' are not supported.")
            if not isinstance(raw_steps, list):
                raise DescriptorError("'steps' must be a list of partial requests.")
            steps = tuple(cls.from_mapping(step, allow_steps=False) for step in raw_steps)

        return cls(
            method=_optional_text(payload, "method"),
            url=_optional_text(payload, "url"),
            headers=_parse_fields(payload.get("headers"), label="headers", empty_is_required=True),
            body=body,
            steps=steps,
        )


@dataclass(frozen=True, slots=True)
class ExpectedResponseDescriptor:
    """
    What the server must answer for a correct solution.

    ``body`` keeps the raw document for ``exact_match`` comparison;
    ``body_fields`` holds the dotted-path expectations used otherwise.
    """

    status: Optional[int] = None
    headers: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    body_fields: Mapping[str, Expectation] = field(default_factory=dict)
    exact_match: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ExpectedResponseDescriptor":
        if not isinstance(payload, Mapping):
            raise DescriptorError(f"Expected-response descriptor must be a mapping, got {type(payload).__name__}.")

        status = payload.get("status")
        if status is not None and (isinstance(status, bool) or not isinstance(status, int)):
            raise DescriptorError(f"'status' must be an integer, got {status!r}.")

        headers = payload.get("headers") or {}
        if not isinstance(headers, Mapping):
            raise DescriptorError("'headers' must be a mapping.")

        body = payload.get("body")
        return cls(
            status=status or None,
            headers={str(key): value for key, value in headers.items()},
            body=body,
            body_fields=_parse_fields(body, label="body") if isinstance(body, Mapping) else {},
            exact_match=bool(payload.get("exactMatch", False)),
        )
