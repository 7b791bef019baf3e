"""Mapping from executor outcomes to report statuses."""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel

from .models import Status, StatusDetails

# Highest first; used to aggregate a scenario status from its steps.
STATUS_PRECEDENCE: tuple[Status, ...] = (
    Status.BROKEN,
    Status.FAILED,
    Status.SKIPPED,
    Status.PASSED,
)


class OutcomeStatus(str, Enum):
    """Outcome vocabulary reported by the executor."""

    PASSED = "passed"
    FAILED = "failed"
    UNDEFINED = "undefined"
    AMBIGUOUS = "ambiguous"
    PENDING = "pending"
    SKIPPED = "skipped"


class ErrorInfo(BaseModel):
    """Failure cause captured from a step or hook implementation."""

    type_name: str
    message: Optional[str] = None
    trace: Optional[str] = None
    assertion: bool = False

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        message = str(exc) or None
        trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return cls(
            type_name=type(exc).__name__,
            message=message,
            trace=trace,
            assertion=isinstance(exc, AssertionError),
        )


@dataclass(frozen=True)
class StatusResolution:
    status: Optional[Status]
    details: Optional[StatusDetails] = None
    forces_skip: bool = False
    scenario_override: Optional[Status] = None


def _details(error: Optional[ErrorInfo]) -> Optional[StatusDetails]:
    if error is None:
        return None
    return StatusDetails(message=error.message or error.type_name, trace=error.trace)


def map_outcome(outcome: OutcomeStatus, error: Optional[ErrorInfo] = None) -> StatusResolution:
    """Translate one executor outcome into a report status resolution.

    Undefined, pending and ambiguous outcomes leave the step without a status
    and force every following step to skipped. The first two make the
    scenario skipped, ambiguity makes it broken.
    """

    if outcome is OutcomeStatus.PASSED:
        return StatusResolution(Status.PASSED)
    if outcome is OutcomeStatus.SKIPPED:
        return StatusResolution(Status.SKIPPED, _details(error))
    if outcome is OutcomeStatus.FAILED:
        if error is not None and not error.assertion:
            return StatusResolution(Status.BROKEN, _details(error))
        return StatusResolution(Status.FAILED, _details(error))
    if outcome in (OutcomeStatus.UNDEFINED, OutcomeStatus.PENDING):
        return StatusResolution(
            None,
            _details(error),
            forces_skip=True,
            scenario_override=Status.SKIPPED,
        )
    if outcome is OutcomeStatus.AMBIGUOUS:
        return StatusResolution(
            None,
            _details(error),
            forces_skip=True,
            scenario_override=Status.BROKEN,
        )
    raise ValueError(f"Unsupported outcome: {outcome!r}")


def worst_status(statuses: Iterable[Optional[Status]]) -> Optional[Status]:
    present = {status for status in statuses if status is not None}
    for candidate in STATUS_PRECEDENCE:
        if candidate in present:
            return candidate
    return None


def is_problem(status: Optional[Status]) -> bool:
    return status in (Status.FAILED, Status.BROKEN)
