"""Per-worker scenario contexts."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import AlreadyActive, ContextNotFound, NoOpenStep, ProtocolViolation, UnknownStep
from .models import FixtureContainer, FixtureRecord, ScenarioRecord, Status, StepRecord

OpenRecord = Union[StepRecord, FixtureRecord]


@dataclass
class ScenarioContext:
    """In-flight state of the scenario running on one worker.

    Only the owning worker mutates a context, so it carries no lock. ``stack``
    holds at most one open step or hook on top of the scenario itself.
    """

    worker: str
    test_case_id: str
    location: str
    result: ScenarioRecord
    container: FixtureContainer
    scheduled: dict[str, StepRecord] = field(default_factory=dict)
    stack: list[tuple[str, OpenRecord]] = field(default_factory=list)
    forced_skip: bool = False
    scenario_override: Optional[Status] = None
    before_hook_failed: bool = False
    after_hook_failed: bool = False
    aborted: bool = False

    @property
    def open_record(self) -> Optional[OpenRecord]:
        return self.stack[-1][1] if self.stack else None

    def push(self, step_id: str, record: OpenRecord) -> None:
        if self.stack:
            open_id = self.stack[-1][0]
            raise ProtocolViolation(self.worker, f"step {step_id} started while step {open_id} is open")
        self.stack.append((step_id, record))

    def pop(self, step_id: str) -> OpenRecord:
        if not self.stack:
            raise NoOpenStep(self.worker, step_id)
        open_id, record = self.stack[-1]
        if open_id != step_id:
            raise UnknownStep(self.worker, step_id, open_id)
        self.stack.pop()
        return record


class ContextRegistry:
    """Maps worker ids to their active scenario context.

    The lock guards the dictionary only; work on a context happens outside it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._contexts: dict[str, ScenarioContext] = {}

    def begin(
        self,
        worker: str,
        location: str,
        *,
        test_case_id: str,
        result: ScenarioRecord,
        container: FixtureContainer,
    ) -> ScenarioContext:
        context = ScenarioContext(
            worker=worker,
            test_case_id=test_case_id,
            location=location,
            result=result,
            container=container,
        )
        with self._lock:
            if worker in self._contexts:
                raise AlreadyActive(worker, location)
            self._contexts[worker] = context
        return context

    def current(self, worker: str) -> ScenarioContext:
        with self._lock:
            context = self._contexts.get(worker)
        if context is None:
            raise ContextNotFound(worker)
        return context

    def end(self, worker: str) -> ScenarioContext:
        with self._lock:
            context = self._contexts.pop(worker, None)
        if context is None:
            raise ContextNotFound(worker)
        return context

    def discard(self, worker: str) -> Optional[ScenarioContext]:
        with self._lock:
            return self._contexts.pop(worker, None)

    def active_workers(self) -> list[str]:
        with self._lock:
            return sorted(self._contexts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)
