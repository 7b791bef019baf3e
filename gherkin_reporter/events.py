"""Lifecycle events emitted by the Gherkin executor."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .gherkin import Feature
from .status import ErrorInfo, OutcomeStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HookPhase(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class PickleStep(BaseModel):
    """Executable Gherkin step; ``line`` points at the step in the feature source."""

    type: Literal["pickle"] = "pickle"
    id: str
    text: str
    line: int
    keyword: Optional[str] = None
    data_table: list[list[str]] = Field(default_factory=list)
    doc_string: Optional[str] = None


class HookStep(BaseModel):
    type: Literal["hook"] = "hook"
    id: str
    phase: HookPhase
    code_location: str


TestStep = Annotated[Union[PickleStep, HookStep], Field(discriminator="type")]


class TestCase(BaseModel):
    """Executable scenario instance; ``line`` is the scenario or example row line."""

    id: str
    uri: str
    line: int
    name: str
    tags: list[str] = Field(default_factory=list)
    steps: list[PickleStep] = Field(default_factory=list)


class StepOutcome(BaseModel):
    status: OutcomeStatus
    duration_ms: Optional[float] = None
    error: Optional[ErrorInfo] = None


class _Event(BaseModel):
    timestamp: datetime = Field(default_factory=_now)


class SourceRead(_Event):
    kind: Literal["source_read"] = "source_read"
    uri: str
    source: str = ""
    feature: Feature


class TestCaseStarted(_Event):
    kind: Literal["test_case_started"] = "test_case_started"
    worker: str
    test_case: TestCase


class TestStepStarted(_Event):
    kind: Literal["test_step_started"] = "test_step_started"
    worker: str
    step: TestStep


class TestStepFinished(_Event):
    kind: Literal["test_step_finished"] = "test_step_finished"
    worker: str
    step: TestStep
    result: StepOutcome


class TestCaseFinished(_Event):
    kind: Literal["test_case_finished"] = "test_case_finished"
    worker: str
    test_case_id: str
    result: Optional[StepOutcome] = None


class Embed(_Event):
    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    kind: Literal["embed"] = "embed"
    worker: str
    name: Optional[str] = None
    mime_type: str
    data: bytes


class Write(_Event):
    kind: Literal["write"] = "write"
    worker: str
    text: str


Event = Annotated[
    Union[SourceRead, TestCaseStarted, TestStepStarted, TestStepFinished, TestCaseFinished, Embed, Write],
    Field(discriminator="kind"),
]

EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)


def parse_event(line: str) -> Event:
    """Validate one JSON document into the matching event model."""

    return EVENT_ADAPTER.validate_json(line)
