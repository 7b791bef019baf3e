"""Build hierarchical scenario reports from Gherkin executor lifecycle events."""

from .config import NamingStrategy, ReporterSettings, load_settings
from .errors import AlreadyActive, ContextNotFound, ProtocolViolation, ScenarioAborted
from .models import FixtureContainer, ScenarioRecord, Stage, Status, StepRecord
from .sink import InMemoryResultSink, ResultSink
from .translator import EventTranslator

__all__ = [
    "AlreadyActive",
    "ContextNotFound",
    "EventTranslator",
    "FixtureContainer",
    "InMemoryResultSink",
    "NamingStrategy",
    "ProtocolViolation",
    "ReporterSettings",
    "ResultSink",
    "ScenarioAborted",
    "ScenarioRecord",
    "Stage",
    "Status",
    "StepRecord",
    "load_settings",
]
