"""Hand-off points for finalized records."""

from __future__ import annotations

import threading
from typing import Protocol

from .models import FixtureContainer, ScenarioRecord


class ResultSink(Protocol):
    """Receives finalized records; persistence lives behind this interface."""

    def write_result(self, result: ScenarioRecord) -> None: ...

    def write_container(self, container: FixtureContainer) -> None: ...

    def write_attachment(self, source: str, data: bytes) -> None: ...


class InMemoryResultSink:
    """Collects everything in memory; records may arrive in any order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.results: list[ScenarioRecord] = []
        self.containers: list[FixtureContainer] = []
        self.attachments: dict[str, bytes] = {}

    def write_result(self, result: ScenarioRecord) -> None:
        with self._lock:
            self.results.append(result)

    def write_container(self, container: FixtureContainer) -> None:
        with self._lock:
            self.containers.append(container)

    def write_attachment(self, source: str, data: bytes) -> None:
        with self._lock:
            if source in self.attachments:
                raise ValueError(f"Attachment source {source} already written")
            self.attachments[source] = data

    def container_for(self, result: ScenarioRecord) -> FixtureContainer | None:
        with self._lock:
            for container in self.containers:
                if result.uuid in container.children:
                    return container
        return None

    def result_named(self, name: str) -> ScenarioRecord:
        with self._lock:
            for result in self.results:
                if result.name == name:
                    return result
        raise KeyError(name)
