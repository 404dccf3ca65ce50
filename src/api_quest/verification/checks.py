"""
Pure correctness checks for learner requests and server responses.

``check_request`` / ``check_response`` answer yes or no. The ``explain_*``
variants return a :class:`VerificationReport` listing every failed sub-check so
the caller can render targeted feedback. None of these functions mutate their
inputs.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.models import BODY_METHODS, Request, Response
from .descriptors import REQUIRED, Expectation, ExpectedResponseDescriptor, SolutionDescriptor

_BRACKET_INDEX = re.compile(r"\[(\d+)\]")
_MISSING = object()

SolutionLike = Union[SolutionDescriptor, Mapping[str, Any]]
ExpectedLike = Union[ExpectedResponseDescriptor, Mapping[str, Any], None]


@dataclass(frozen=True, slots=True)
class Mismatch:
    """One failed sub-check."""

    check: str
    field: Optional[str]
    expected: Any
    actual: Any

    def describe(self) -> str:
        target = f"{self.check} '{self.field}'" if self.field else self.check
        expected = "<present>" if self.expected is REQUIRED else repr(self.expected)
        actual = "<missing>" if self.actual is _MISSING else repr(self.actual)
        return f"{target}: expected {expected}, got {actual}"


@dataclass(frozen=True, slots=True)
class VerificationReport:
    mismatches: Tuple[Mismatch, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.mismatches

    def __bool__(self) -> bool:
        return self.passed

    def describe(self) -> List[str]:
        return [mismatch.describe() for mismatch in self.mismatches]


def values_equal(actual: Any, expected: Any) -> bool:
    """Equality that, unlike ``==``, keeps booleans distinct from numbers."""

    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


def _satisfies(expectation: Expectation, value: Any) -> bool:
    if expectation is REQUIRED:
        return value is not _MISSING
    return value is not _MISSING and values_equal(value, expectation.value)


def _coerce_solution(descriptor: SolutionLike) -> SolutionDescriptor:
    if isinstance(descriptor, SolutionDescriptor):
        return descriptor
    return SolutionDescriptor.from_mapping(descriptor)


def _coerce_expected(descriptor: ExpectedLike) -> Optional[ExpectedResponseDescriptor]:
    if descriptor is None or isinstance(descriptor, ExpectedResponseDescriptor):
        return descriptor
    return ExpectedResponseDescriptor.from_mapping(descriptor)


# -- request ------------------------------------------------------------------


def explain_request(descriptor: SolutionLike, request: Request) -> VerificationReport:
    """Compare ``request`` against a solution descriptor."""

    solution = _coerce_solution(descriptor)
    mismatches: List[Mismatch] = []

    if solution.method and request.method != solution.method:
        mismatches.append(Mismatch("method", None, solution.method, request.method))
    if solution.url and request.url != solution.url:
        mismatches.append(Mismatch("url", None, solution.url, request.url))

    for name, expectation in solution.headers.items():
        value = request.headers.get(name)
        if not value:
            mismatches.append(Mismatch("header", name, expectation if expectation is REQUIRED else expectation.value, _MISSING if value is None else value))
        elif expectation is not REQUIRED and value != expectation.value:
            mismatches.append(Mismatch("header", name, expectation.value, value))

    if solution.body and request.method in BODY_METHODS:
        body = request.body if isinstance(request.body, Mapping) else {}
        for name, expectation in solution.body.items():
            value = body.get(name, _MISSING)
            if not _satisfies(expectation, value):
                mismatches.append(Mismatch("body", name, expectation if expectation is REQUIRED else expectation.value, value))

    return VerificationReport(tuple(mismatches))


def check_request(descriptor: SolutionLike, request: Request) -> bool:
    return explain_request(descriptor, request).passed


# -- response -----------------------------------------------------------------


def _index_of(segment: str) -> Optional[int]:
    match = _BRACKET_INDEX.fullmatch(segment)
    if match:
        return int(match.group(1))
    if segment.isdigit():
        return int(segment)
    return None


def _step(current: Any, segment: str) -> Any:
    index = _index_of(segment)
    if isinstance(current, Mapping):
        # Literal keys win, so a key spelled "[0]" is still addressable.
        if segment in current:
            return current[segment]
        if index is not None:
            for candidate in (str(index), index):
                if candidate in current:
                    return current[candidate]
        return _MISSING
    if isinstance(current, (list, tuple)) and index is not None and index < len(current):
        return current[index]
    return _MISSING


def resolve_path(body: Any, path: str) -> Any:
    """
    Walk ``body`` along a dotted ``path`` such as ``user.name`` or ``[0].id``.

    Returns the sentinel ``_MISSING`` when any segment is absent; never raises.
    """

    current = body
    for segment in path.split("."):
        current = _step(current, segment)
        if current is _MISSING:
            return _MISSING
    return current


def path_exists(body: Any, path: str) -> bool:
    return resolve_path(body, path) is not _MISSING


def _serialise(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def explain_response(descriptor: ExpectedLike, response: Response) -> VerificationReport:
    """Compare ``response`` against an expected-response descriptor; ``None`` always passes."""

    expected = _coerce_expected(descriptor)
    if expected is None:
        return VerificationReport()

    mismatches: List[Mismatch] = []
    if expected.status and response.status != expected.status:
        mismatches.append(Mismatch("status", None, expected.status, response.status))

    for name, value in expected.headers.items():
        actual = response.headers.get(name, _MISSING)
        if actual is _MISSING or not actual or actual != value:
            mismatches.append(Mismatch("response_header", name, value, actual))

    if expected.body is not None:
        if expected.exact_match:
            if _serialise(response.body) != _serialise(expected.body):
                mismatches.append(Mismatch("response_body", None, expected.body, response.body))
        else:
            for path, expectation in expected.body_fields.items():
                value = resolve_path(response.body, path)
                if not _satisfies(expectation, value):
                    mismatches.append(Mismatch("response_body", path, expectation if expectation is REQUIRED else expectation.value, value))

    return VerificationReport(tuple(mismatches))


def check_response(descriptor: ExpectedLike, response: Response) -> bool:
    return explain_response(descriptor, response).passed


# -- source restrictions ----------------------------------------------------------


def check_source_restriction(restrictions: Sequence[str], source_key: str) -> bool:
    """An exercise restricted to some sources only accepts attempts made through them."""

    return not restrictions or source_key in restrictions
