"""Event translation engine: executor events in, report records out."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import structlog

from .attachments import AttachmentCollector
from .config import NamingStrategy, ReporterSettings
from .errors import ContextNotFound, ProtocolViolation, ScenarioAborted
from .events import (
    Embed,
    Event,
    HookPhase,
    HookStep,
    PickleStep,
    SourceRead,
    TestCase,
    TestCaseFinished,
    TestCaseStarted,
    TestStepFinished,
    TestStepStarted,
    Write,
)
from .hashing import case_id, history_id, normalize_uri
from .labels import LabelExtractor
from .models import (
    FixtureContainer,
    FixtureRecord,
    ScenarioRecord,
    Stage,
    Status,
    StatusDetails,
    StepRecord,
)
from .parameters import extract_parameters
from .registry import ContextRegistry, ScenarioContext
from .sink import ResultSink
from .sources import FeatureSourceCache, ScenarioLocation
from .status import StatusResolution, is_problem, map_outcome, worst_status

LOGGER = structlog.get_logger("gherkin_reporter")

DATA_TABLE_ATTACHMENT = "Data table"
DATA_TABLE_MIME = "text/tab-separated-values"
DOC_STRING_ATTACHMENT = "Doc string"
TEXT_OUTPUT_ATTACHMENT = "Text output"
DEFAULT_EMBED_NAME = "Attachment"


def _merge_tags(*groups: list[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for tag in group:
            if tag not in merged:
                merged.append(tag)
    return merged


def _description(location: Optional[ScenarioLocation]) -> Optional[str]:
    if location is None:
        return None
    parts = [
        text
        for text in (location.feature.description, location.scenario.description)
        if text and text.strip()
    ]
    return "\n".join(parts) or None


def _data_table_text(rows: list[list[str]]) -> str:
    return "".join("\t".join(cells) + "\n" for cells in rows)


class EventTranslator:
    """Consumes executor lifecycle events and hands finished scenarios to a sink.

    Safe to call from several worker threads at once: each worker only ever
    touches its own context, and the registry serializes map access.
    """

    def __init__(
        self,
        sink: ResultSink,
        settings: Optional[ReporterSettings] = None,
        *,
        registry: Optional[ContextRegistry] = None,
        sources: Optional[FeatureSourceCache] = None,
        collector: Optional[AttachmentCollector] = None,
    ) -> None:
        self._sink = sink
        self._settings = settings or ReporterSettings()
        self._registry = registry or ContextRegistry()
        self._sources = sources or FeatureSourceCache()
        self._collector = collector or AttachmentCollector(sink)
        self._labels = LabelExtractor(self._settings.link_patterns, self._settings.labels)
        self._handlers: dict[type, Callable] = {
            SourceRead: self._on_source_read,
            TestCaseStarted: self._on_test_case_started,
            TestStepStarted: self._on_test_step_started,
            TestStepFinished: self._on_test_step_finished,
            TestCaseFinished: self._on_test_case_finished,
            Embed: self._on_embed,
            Write: self._on_write,
        }

    @property
    def registry(self) -> ContextRegistry:
        return self._registry

    @property
    def sources(self) -> FeatureSourceCache:
        return self._sources

    def handle(self, event: Event) -> None:
        """Apply one event.

        Protocol violations abort the offending worker's scenario and are
        re-raised. Attachment or hashing failures abort that scenario only and
        are logged; later events for it are ignored until it finishes.
        """

        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event type: {type(event).__name__}")
        try:
            handler(event)
        except ProtocolViolation as exc:
            self._abort(exc.worker)
            LOGGER.error("protocol_violation", worker=exc.worker, event_kind=event.kind, error=str(exc))
            raise
        except ScenarioAborted as exc:
            worker = getattr(event, "worker", None)
            if worker is not None:
                self._abort(worker)
            LOGGER.error("scenario_aborted", worker=worker, event_kind=event.kind, error=str(exc))

    def close(self) -> list[str]:
        """Drop scenarios that never finished and return their worker ids."""

        workers = self._registry.active_workers()
        for worker in workers:
            context = self._registry.discard(worker)
            if context is not None:
                LOGGER.warning("scenario_unfinished", worker=worker, location=context.location)
        return workers

    def _abort(self, worker: str) -> None:
        try:
            self._registry.current(worker).aborted = True
        except ContextNotFound:
            pass

    def _active(self, worker: str) -> Optional[ScenarioContext]:
        context = self._registry.current(worker)
        return None if context.aborted else context

    # -- handlers -----------------------------------------------------------

    def _on_source_read(self, event: SourceRead) -> None:
        self._sources.add(event.uri, event.feature, event.source)
        LOGGER.debug("source_read", uri=normalize_uri(event.uri), feature=event.feature.name)

    def _on_test_case_started(self, event: TestCaseStarted) -> None:
        test_case = event.test_case
        uri = normalize_uri(test_case.uri)
        location = f"{uri}:{test_case.line}"
        result = ScenarioRecord(
            name=test_case.name,
            full_name=location,
            stage=Stage.RUNNING,
            start=event.timestamp,
        )
        container = FixtureContainer(name=test_case.name, children=[result.uuid], start=event.timestamp)
        context = self._registry.begin(
            event.worker,
            location,
            test_case_id=test_case.id,
            result=result,
            container=container,
        )
        self._populate(context, test_case, uri)
        LOGGER.debug("scenario_started", worker=event.worker, scenario=result.name, location=location)

    def _populate(self, context: ScenarioContext, test_case: TestCase, uri: str) -> None:
        result = context.result
        source = self._sources.locate(uri, test_case.line)
        feature = source.feature if source else self._sources.feature(uri)
        feature_name = feature.name if feature else uri.rsplit("/", 1)[-1]

        instance = extract_parameters(source)
        if instance.name:
            result.name = instance.name
            context.container.name = instance.name
        result.parameters = instance.parameters
        result.description = _description(source)

        tags = _merge_tags(test_case.tags, source.tags if source else [], instance.tags)
        extracted = self._labels.extract(
            tags=tags,
            feature_name=feature_name,
            scenario_name=result.name,
            uri=uri,
            worker=context.worker,
        )
        result.labels = extracted.labels
        result.links = extracted.links

        # Example rows are told apart by their own line; the case id groups them by outline.
        outline_line = source.scenario.line if source is not None else test_case.line
        try:
            result.history_id = history_id(uri, str(test_case.line), result.parameters)
            result.test_case_id = case_id(uri, str(outline_line))
        except UnicodeError as exc:
            raise ScenarioAborted(f"Cannot fingerprint {context.location}: {exc}") from exc

        for step in test_case.steps:
            record = StepRecord(name=self._step_name(uri, step))
            context.scheduled[step.id] = record
            result.steps.append(record)

    def _on_test_step_started(self, event: TestStepStarted) -> None:
        context = self._active(event.worker)
        if context is None:
            return
        if isinstance(event.step, HookStep):
            self._start_hook(context, event.step, event.timestamp)
        else:
            self._start_step(context, event.step, event.timestamp)

    def _start_step(self, context: ScenarioContext, step: PickleStep, started: datetime) -> None:
        record = context.scheduled.get(step.id)
        if record is None:
            uri = context.location.rsplit(":", 1)[0]
            record = StepRecord(name=self._step_name(uri, step))
            context.scheduled[step.id] = record
            context.result.steps.append(record)
        elif record.stage is not Stage.SCHEDULED:
            raise ProtocolViolation(context.worker, f"step {step.id} started twice")

        context.push(step.id, record)
        record.stage = Stage.RUNNING
        record.start = started
        if step.data_table:
            self._collector.attach(record, DATA_TABLE_ATTACHMENT, DATA_TABLE_MIME, _data_table_text(step.data_table))
        if step.doc_string is not None:
            self._collector.attach(record, DOC_STRING_ATTACHMENT, "text/plain", step.doc_string)

    def _start_hook(self, context: ScenarioContext, hook: HookStep, started: datetime) -> None:
        record = FixtureRecord(name=hook.code_location, stage=Stage.RUNNING, start=started)
        context.push(hook.id, record)
        if hook.phase is HookPhase.BEFORE:
            context.container.befores.append(record)
        else:
            context.container.afters.append(record)

    def _on_test_step_finished(self, event: TestStepFinished) -> None:
        context = self._active(event.worker)
        if context is None:
            return
        record = context.pop(event.step.id)
        record.stop = event.timestamp
        record.stage = Stage.FINISHED
        resolution = map_outcome(event.result.status, event.result.error)
        if isinstance(event.step, HookStep):
            self._finish_hook(context, event.step, record, resolution)
        else:
            self._finish_step(context, record, resolution)

    def _finish_step(self, context: ScenarioContext, record: StepRecord, resolution: StatusResolution) -> None:
        if context.forced_skip:
            record.status = Status.SKIPPED
            return
        record.status = resolution.status
        record.status_details = resolution.details
        if resolution.forces_skip:
            context.forced_skip = True
            context.scenario_override = resolution.scenario_override

    def _finish_hook(
        self,
        context: ScenarioContext,
        hook: HookStep,
        record: FixtureRecord,
        resolution: StatusResolution,
    ) -> None:
        record.status = resolution.status
        record.status_details = resolution.details
        if not is_problem(resolution.status):
            return
        if hook.phase is HookPhase.BEFORE:
            context.before_hook_failed = True
            context.forced_skip = True
        else:
            context.after_hook_failed = True

    def _on_embed(self, event: Embed) -> None:
        context = self._active(event.worker)
        if context is None:
            return
        target = context.open_record or context.result
        self._collector.attach(target, event.name or DEFAULT_EMBED_NAME, event.mime_type, event.data)

    def _on_write(self, event: Write) -> None:
        context = self._active(event.worker)
        if context is None:
            return
        target = context.open_record or context.result
        self._collector.attach(target, TEXT_OUTPUT_ATTACHMENT, "text/plain", event.text)

    def _on_test_case_finished(self, event: TestCaseFinished) -> None:
        context = self._registry.end(event.worker)
        if context.aborted:
            LOGGER.warning("scenario_dropped", worker=event.worker, location=context.location)
            return
        if context.test_case_id != event.test_case_id:
            raise ProtocolViolation(
                event.worker,
                f"test case {event.test_case_id} finished while {context.test_case_id} is active",
            )
        if context.stack:
            raise ProtocolViolation(
                event.worker,
                f"test case finished while step {context.stack[-1][0]} is open",
            )

        self._finalize(context, event)
        self._sink.write_result(context.result)
        self._sink.write_container(context.container)
        LOGGER.info(
            "scenario_finished",
            worker=event.worker,
            scenario=context.result.name,
            status=context.result.status.value if context.result.status else None,
        )

    # -- finalization -------------------------------------------------------

    def _finalize(self, context: ScenarioContext, event: TestCaseFinished) -> None:
        result = context.result
        for record in result.steps:
            if record.stage is Stage.SCHEDULED:
                record.status = Status.SKIPPED
                record.stage = Stage.FINISHED

        result.status = self._scenario_status(context)
        if result.status is not Status.PASSED:
            result.status_details = self._first_details(context)
            if result.status_details is None and event.result is not None and event.result.error is not None:
                result.status_details = map_outcome(event.result.status, event.result.error).details

        result.stop = event.timestamp
        result.stage = Stage.FINISHED
        context.container.stop = event.timestamp

    @staticmethod
    def _scenario_status(context: ScenarioContext) -> Status:
        if context.before_hook_failed:
            return Status.SKIPPED
        if context.scenario_override is Status.BROKEN or context.after_hook_failed:
            return Status.BROKEN
        if context.scenario_override is not None:
            return context.scenario_override
        return worst_status(step.status for step in context.result.steps) or Status.SKIPPED

    @staticmethod
    def _first_details(context: ScenarioContext) -> Optional[StatusDetails]:
        records = [*context.container.befores, *context.result.steps, *context.container.afters]
        for record in records:
            if record.status_details is not None:
                return record.status_details
        return None

    def _step_name(self, uri: str, step: PickleStep) -> str:
        keyword = step.keyword
        if keyword is None:
            source_step = self._sources.step(uri, step.line)
            keyword = source_step.keyword if source_step else ""
        if not keyword:
            return step.text
        if self._settings.naming_strategy is NamingStrategy.SHORT:
            return f"{keyword.strip()} {step.text}"
        return f"{keyword} {step.text}"
