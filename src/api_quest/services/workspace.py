"""
Exercise checking on top of the router and the verification engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from ..core.events import TASK_CHECK_FAILED, TASK_CHECK_SUCCEEDED
from ..core.logging import get_logger
from ..core.models import Request, Response
from ..routing.router import Router
from ..verification import (
    DescriptorError,
    ExpectedResponseDescriptor,
    SolutionDescriptor,
    VerificationReport,
    check_source_restriction,
    explain_request,
    explain_response,
)


class CheckStage(str, Enum):
    SOURCE = "source"
    REQUEST = "request"
    RESPONSE = "response"
    PASSED = "passed"


@dataclass(frozen=True, slots=True)
class Exercise:
    """
    A task document reduced to what checking needs.

    ``source_restrictions`` lists the source keys an attempt must be made
    through; empty means any source is acceptable.
    """

    task_id: str
    solution: SolutionDescriptor
    expected_response: Optional[ExpectedResponseDescriptor] = None
    requires_server_response: bool = False
    source_restrictions: Tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Exercise":
        if not isinstance(payload, Mapping):
            raise DescriptorError(f"Exercise must be a mapping, got {type(payload).__name__}.")
        if "id" not in payload:
            raise DescriptorError("Exercise is missing its 'id'.")
        solution = payload.get("solution")
        if solution is None:
            raise DescriptorError(f"Exercise '{payload['id']}' has no 'solution'.")

        expected = payload.get("expectedResponse")
        restrictions = payload.get("apiSourceRestrictions") or ()
        if isinstance(restrictions, str) or not isinstance(restrictions, (list, tuple)):
            raise DescriptorError("'apiSourceRestrictions' must be a list of source keys.")

        return cls(
            task_id=str(payload["id"]),
            solution=SolutionDescriptor.from_mapping(solution),
            expected_response=ExpectedResponseDescriptor.from_mapping(expected) if expected is not None else None,
            requires_server_response=bool(payload.get("requiresServerResponse", False)),
            source_restrictions=tuple(str(key) for key in restrictions),
        )


@dataclass(frozen=True, slots=True)
class TaskCheckOutcome:
    task_id: str
    passed: bool
    stage: CheckStage
    source: str
    request_report: Optional[VerificationReport] = None
    response_report: Optional[VerificationReport] = None
    response: Optional[Response] = None
    messages: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "passed": self.passed,
            "stage": self.stage.value,
            "source": self.source,
            "messages": list(self.messages),
            "response": self.response.to_dict() if self.response else None,
        }


class TaskWorkspace:
    """Runs the full check for one attempt: source restriction, request, then response."""

    def __init__(self, router: Router) -> None:
        self.router = router
        self.logger = get_logger(__name__)

    def prepare(self, exercise: Exercise) -> str:
        """
        Select a source acceptable to ``exercise`` before the learner starts.

        Keeps the current source when allowed, otherwise switches to the first
        allowed source that is available, otherwise to the baseline.
        """

        current = self.router.current_key
        if check_source_restriction(exercise.source_restrictions, current):
            return current
        for key in exercise.source_restrictions:
            if key in self.router.registry and self.router.is_available(key):
                self.router.set_source(key)
                return self.router.current_key
        self.logger.warning("No allowed source is available, using the baseline", extra={"task_id": exercise.task_id})
        self.router.set_source(self.router.baseline_key)
        return self.router.current_key

    def _finish(self, outcome: TaskCheckOutcome) -> TaskCheckOutcome:
        event = TASK_CHECK_SUCCEEDED if outcome.passed else TASK_CHECK_FAILED
        self.logger.info(
            "Task check finished",
            extra={"task_id": outcome.task_id, "source": outcome.source, "passed": outcome.passed, "stage": outcome.stage.value},
        )
        self.router.events.emit(event, outcome)
        return outcome

    async def check_task(self, exercise: Exercise, request: Request) -> TaskCheckOutcome:
        source = self.router.current_key

        if not check_source_restriction(exercise.source_restrictions, source):
            allowed = " or ".join(exercise.source_restrictions)
            return self._finish(
                TaskCheckOutcome(
                    task_id=exercise.task_id,
                    passed=False,
                    stage=CheckStage.SOURCE,
                    source=source,
                    messages=(f"This task must be completed through: {allowed}",),
                )
            )

        request_report = explain_request(exercise.solution, request)
        if not request_report.passed:
            return self._finish(
                TaskCheckOutcome(
                    task_id=exercise.task_id,
                    passed=False,
                    stage=CheckStage.REQUEST,
                    source=source,
                    request_report=request_report,
                    messages=tuple(request_report.describe()),
                )
            )

        if not exercise.requires_server_response:
            return self._finish(
                TaskCheckOutcome(task_id=exercise.task_id, passed=True, stage=CheckStage.PASSED, source=source, request_report=request_report)
            )

        response = await self.router.route(request, task_id=exercise.task_id)
        response_report = explain_response(exercise.expected_response, response)
        messages: List[str] = response_report.describe()
        return self._finish(
            TaskCheckOutcome(
                task_id=exercise.task_id,
                passed=response_report.passed,
                stage=CheckStage.PASSED if response_report.passed else CheckStage.RESPONSE,
                source=source,
                request_report=request_report,
                response_report=response_report,
                response=response,
                messages=tuple(messages),
            )
        )
