"""Report models materialized from executor events."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Status(str, Enum):
    """Report status vocabulary."""

    PASSED = "passed"
    FAILED = "failed"
    BROKEN = "broken"
    SKIPPED = "skipped"


class Stage(str, Enum):
    """Lifecycle phase of a record, independent of its status."""

    SCHEDULED = "scheduled"
    RUNNING = "running"
    FINISHED = "finished"


class StatusDetails(BaseModel):
    message: Optional[str] = None
    trace: Optional[str] = None


class Label(BaseModel):
    name: str
    value: str


class Link(BaseModel):
    name: str
    type: str
    url: Optional[str] = None


class Parameter(BaseModel):
    name: str
    value: str
    order: int = 0


class Attachment(BaseModel):
    """Reference to attachment content stored by the sink under ``source``."""

    name: str
    type: str
    source: str


class StepRecord(BaseModel):
    """One Gherkin step inside a scenario."""

    uuid: str = Field(default_factory=_new_uuid)
    name: str
    status: Optional[Status] = None
    status_details: Optional[StatusDetails] = None
    stage: Stage = Stage.SCHEDULED
    start: Optional[datetime] = None
    stop: Optional[datetime] = None
    attachments: list[Attachment] = Field(default_factory=list)


class FixtureRecord(BaseModel):
    """A before/after hook execution."""

    uuid: str = Field(default_factory=_new_uuid)
    name: str
    status: Optional[Status] = None
    status_details: Optional[StatusDetails] = None
    stage: Stage = Stage.SCHEDULED
    start: Optional[datetime] = None
    stop: Optional[datetime] = None
    attachments: list[Attachment] = Field(default_factory=list)


class FixtureContainer(BaseModel):
    """Groups the hooks that ran around one scenario."""

    uuid: str = Field(default_factory=_new_uuid)
    name: Optional[str] = None
    children: list[str] = Field(default_factory=list)
    befores: list[FixtureRecord] = Field(default_factory=list)
    afters: list[FixtureRecord] = Field(default_factory=list)
    start: Optional[datetime] = None
    stop: Optional[datetime] = None


class ScenarioRecord(BaseModel):
    """Report record for one executed scenario or example row."""

    uuid: str = Field(default_factory=_new_uuid)
    history_id: Optional[str] = None
    test_case_id: Optional[str] = None
    name: str
    full_name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[Status] = None
    status_details: Optional[StatusDetails] = None
    stage: Stage = Stage.SCHEDULED
    start: Optional[datetime] = None
    stop: Optional[datetime] = None
    steps: list[StepRecord] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    links: list[Link] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)

    def label_values(self, name: str) -> list[str]:
        return [label.value for label in self.labels if label.name == name]
