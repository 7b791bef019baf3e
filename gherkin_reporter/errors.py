"""Errors raised while translating executor events."""

from __future__ import annotations


class ReporterError(Exception):
    """Base class for reporter failures."""


class ProtocolViolation(ReporterError):
    """The executor sent an event that does not fit the worker's current state."""

    def __init__(self, worker: str, message: str) -> None:
        super().__init__(f"[{worker}] {message}")
        self.worker = worker


class AlreadyActive(ProtocolViolation):
    def __init__(self, worker: str, location: str) -> None:
        super().__init__(worker, f"scenario {location} started while another scenario is active")
        self.location = location


class ContextNotFound(ProtocolViolation):
    def __init__(self, worker: str) -> None:
        super().__init__(worker, "no active scenario")


class NoOpenStep(ProtocolViolation):
    def __init__(self, worker: str, step_id: str) -> None:
        super().__init__(worker, f"step {step_id} finished but no step is open")
        self.step_id = step_id


class UnknownStep(ProtocolViolation):
    def __init__(self, worker: str, step_id: str, open_id: str) -> None:
        super().__init__(worker, f"step {step_id} finished while step {open_id} is open")
        self.step_id = step_id


class ScenarioAborted(ReporterError):
    """Processing of one scenario cannot continue; other workers are unaffected."""
