"""Test bootstrap for gherkin-reporter."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for path in (PROJECT_ROOT, TESTS_DIR):
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from gherkin_reporter.config import ReporterSettings  # noqa: E402
from gherkin_reporter.sink import InMemoryResultSink  # noqa: E402
from gherkin_reporter.translator import EventTranslator  # noqa: E402


@pytest.fixture
def sink() -> InMemoryResultSink:
    return InMemoryResultSink()


@pytest.fixture
def translator(sink: InMemoryResultSink) -> EventTranslator:
    return EventTranslator(sink, ReporterSettings())
