"""Minimal Gherkin runner that drives the reporter the way a real executor does.

Features are parsed with behave's parser, converted into the reporter's AST,
compiled into test cases and executed on a thread pool. Every lifecycle event
is handed to the translator from the worker thread that produced it.
"""

from __future__ import annotations

import re
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from behave.parser import parse_feature

from gherkin_reporter import events
from gherkin_reporter.gherkin import Background, Examples, Feature, Scenario, Step, TableRow
from gherkin_reporter.status import ErrorInfo, OutcomeStatus


class PendingStep(Exception):
    """Raised by a step that is not implemented yet."""


def _tags(tags: Any) -> list[str]:
    return [f"@{tag}" for tag in tags or []]


def _description(lines: Any) -> Optional[str]:
    text = "\n".join(lines or [])
    return text or None


def _step(step: Any) -> Step:
    rows: list[TableRow] = []
    if step.table is not None:
        rows.append(TableRow(line=step.table.line or step.line + 1, cells=list(step.table.headings)))
        rows.extend(TableRow(line=row.line or 0, cells=list(row.cells)) for row in step.table.rows)
    # Gherkin keywords carry their trailing space.
    return Step(keyword=f"{step.keyword} ", text=step.name, line=step.line, data_table=rows, doc_string=step.text)


def _scenario(scenario: Any) -> Scenario:
    examples: list[Examples] = []
    for block in getattr(scenario, "examples", None) or []:
        table = block.table
        examples.append(
            Examples(
                keyword=block.keyword,
                name=block.name or "",
                line=block.line,
                tags=_tags(getattr(block, "tags", [])),
                header=TableRow(line=table.line or block.line + 1, cells=list(table.headings)),
                rows=[TableRow(line=row.line, cells=list(row.cells)) for row in table.rows],
            )
        )
    return Scenario(
        keyword=scenario.keyword,
        name=scenario.name,
        description=_description(scenario.description),
        line=scenario.line,
        tags=_tags(scenario.tags),
        steps=[_step(step) for step in scenario.steps],
        examples=examples,
    )


def parse(text: str, filename: str) -> Feature:
    parsed = parse_feature(text, filename=filename)
    background = None
    if parsed.background is not None:
        background = Background(
            keyword=parsed.background.keyword,
            name=parsed.background.name or "",
            line=parsed.background.line,
            steps=[_step(step) for step in parsed.background.steps],
        )
    return Feature(
        keyword=parsed.keyword,
        name=parsed.name,
        description=_description(parsed.description),
        line=parsed.line,
        tags=_tags(parsed.tags),
        background=background,
        scenarios=[_scenario(scenario) for scenario in parsed.scenarios],
    )


def _substitute(text: str, values: dict[str, str]) -> str:
    for name, value in values.items():
        text = text.replace(f"<{name}>", value)
    return text


def _pickle_step(step: Step, values: dict[str, str]) -> events.PickleStep:
    table = [[_substitute(cell, values) for cell in row.cells] for row in step.data_table]
    return events.PickleStep(
        id=str(uuid.uuid4()),
        text=_substitute(step.text, values),
        line=step.line,
        data_table=table,
        doc_string=step.doc_string,
    )


def compile_test_cases(uri: str, feature: Feature) -> list[events.TestCase]:
    """Expand scenarios and example rows into executable test cases."""

    background = feature.background.steps if feature.background else []
    cases: list[events.TestCase] = []
    for scenario in feature.scenarios:
        base_tags = feature.tags + scenario.tags
        if not scenario.examples:
            cases.append(
                events.TestCase(
                    id=str(uuid.uuid4()),
                    uri=uri,
                    line=scenario.line,
                    name=scenario.name,
                    tags=list(base_tags),
                    steps=[_pickle_step(step, {}) for step in [*background, *scenario.steps]],
                )
            )
            continue
        for block in scenario.examples:
            headings = block.header.cells if block.header else []
            for row in block.rows:
                values = dict(zip(headings, row.cells))
                cases.append(
                    events.TestCase(
                        id=str(uuid.uuid4()),
                        uri=uri,
                        line=row.line,
                        name=_substitute(scenario.name, values),
                        tags=base_tags + block.tags,
                        steps=[_pickle_step(step, values) for step in [*background, *scenario.steps]],
                    )
                )
    return cases


@dataclass
class StepDefinition:
    pattern: re.Pattern
    func: Callable[..., None]


@dataclass
class HookDefinition:
    phase: events.HookPhase
    func: Callable[..., None]
    tags: frozenset[str] = frozenset()

    @property
    def code_location(self) -> str:
        return f"{self.func.__module__}.{self.func.__qualname__}()"

    def applies_to(self, case: events.TestCase) -> bool:
        return not self.tags or bool(self.tags & set(case.tags))


class Glue:
    """Step definitions and hooks."""

    def __init__(self) -> None:
        self.steps: list[StepDefinition] = []
        self.hooks: list[HookDefinition] = []

    def step(self, pattern: str) -> Callable:
        def register(func: Callable) -> Callable:
            self.steps.append(StepDefinition(re.compile(f"^{pattern}$"), func))
            return func

        return register

    def before(self, *tags: str) -> Callable:
        return self._hook(events.HookPhase.BEFORE, tags)

    def after(self, *tags: str) -> Callable:
        return self._hook(events.HookPhase.AFTER, tags)

    def _hook(self, phase: events.HookPhase, tags: tuple[str, ...]) -> Callable:
        def register(func: Callable) -> Callable:
            self.hooks.append(HookDefinition(phase, func, frozenset(tags)))
            return func

        return register

    def match(self, text: str) -> list[tuple[StepDefinition, tuple[str, ...]]]:
        found = []
        for definition in self.steps:
            matched = definition.pattern.match(text)
            if matched:
                found.append((definition, matched.groups()))
        return found


class World:
    """Per-scenario state handed to steps and hooks."""

    def __init__(self, emit: Callable[[Any], None], worker: str) -> None:
        self._emit = emit
        self._worker = worker
        self.values: dict[str, Any] = {}
        self.table: list[list[str]] = []

    def attach(self, name: str, mime_type: str, data: bytes | str) -> None:
        payload = data.encode("utf-8") if isinstance(data, str) else data
        self._emit(events.Embed(worker=self._worker, name=name, mime_type=mime_type, data=payload))

    def log(self, text: str) -> None:
        self._emit(events.Write(worker=self._worker, text=text))


@dataclass
class StubExecutor:
    glue: Glue
    handle: Callable[[Any], None]
    threads: int = 1
    tags: Optional[set[str]] = None
    dry_run: bool = False
    executed: list[str] = field(default_factory=list)

    def run(self, uri: str, text: str) -> Feature:
        feature = parse(text, uri)
        self.handle(events.SourceRead(uri=uri, source=text, feature=feature))
        cases = [case for case in compile_test_cases(uri, feature) if self._selected(case)]
        with ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="worker") as pool:
            for future in [pool.submit(self._run_case, case) for case in cases]:
                future.result()
        return feature

    def _selected(self, case: events.TestCase) -> bool:
        return not self.tags or bool(self.tags & set(case.tags))

    def _run_case(self, case: events.TestCase) -> None:
        worker = threading.current_thread().name
        world = World(self.handle, worker)
        self.handle(events.TestCaseStarted(worker=worker, test_case=case))

        blocked = False
        for hook in self._hooks(case, events.HookPhase.BEFORE):
            if not self._run_hook(worker, world, hook):
                blocked = True

        for step in case.steps:
            self.handle(events.TestStepStarted(worker=worker, step=step))
            outcome = events.StepOutcome(status=OutcomeStatus.SKIPPED) if blocked else self._run_step(world, step)
            if outcome.status is not OutcomeStatus.PASSED:
                blocked = True
            self.handle(events.TestStepFinished(worker=worker, step=step, result=outcome))

        for hook in self._hooks(case, events.HookPhase.AFTER):
            self._run_hook(worker, world, hook)

        self.executed.append(case.name)
        self.handle(events.TestCaseFinished(worker=worker, test_case_id=case.id))

    def _hooks(self, case: events.TestCase, phase: events.HookPhase) -> list[HookDefinition]:
        return [hook for hook in self.glue.hooks if hook.phase is phase and hook.applies_to(case)]

    def _run_hook(self, worker: str, world: World, hook: HookDefinition) -> bool:
        step = events.HookStep(id=str(uuid.uuid4()), phase=hook.phase, code_location=hook.code_location)
        self.handle(events.TestStepStarted(worker=worker, step=step))
        outcome = events.StepOutcome(status=OutcomeStatus.PASSED)
        if not self.dry_run:
            outcome = _invoke(hook.func, world)
        self.handle(events.TestStepFinished(worker=worker, step=step, result=outcome))
        return outcome.status is OutcomeStatus.PASSED

    def _run_step(self, world: World, step: events.PickleStep) -> events.StepOutcome:
        matches = self.glue.match(step.text)
        if not matches:
            return events.StepOutcome(status=OutcomeStatus.UNDEFINED)
        if len(matches) > 1:
            error = ErrorInfo(
                type_name="AmbiguousStepError",
                message=f"'{step.text}' matches {len(matches)} step definitions",
            )
            return events.StepOutcome(status=OutcomeStatus.AMBIGUOUS, error=error)
        if self.dry_run:
            return events.StepOutcome(status=OutcomeStatus.PASSED)
        definition, args = matches[0]
        world.table = step.data_table
        return _invoke(definition.func, world, *args)


def _invoke(func: Callable[..., None], world: World, *args: str) -> events.StepOutcome:
    try:
        func(world, *args)
    except PendingStep as exc:
        return events.StepOutcome(status=OutcomeStatus.PENDING, error=ErrorInfo.from_exception(exc))
    except Exception as exc:
        return events.StepOutcome(status=OutcomeStatus.FAILED, error=ErrorInfo.from_exception(exc))
    return events.StepOutcome(status=OutcomeStatus.PASSED)
