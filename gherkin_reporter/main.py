"""CLI entrypoint: replay a recorded executor event log through the reporter."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator, Optional

import typer
from pydantic import ValidationError

if __package__ in {None, ""}:
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    __package__ = "gherkin_reporter"

from .config import load_settings
from .console_reporter import ConsoleReporter
from .errors import ProtocolViolation
from .events import Event, parse_event
from .logging_utils import configure_logging
from .output_config import get_log_format, get_output_format
from .sink import InMemoryResultSink
from .status import is_problem
from .translator import EventTranslator

app = typer.Typer(help="Replay Gherkin executor events and summarize the resulting scenario reports.")

EXIT_PROBLEMS = 1
EXIT_PROTOCOL = 2


def _read_events(path: Path) -> Iterator[Event]:
    with path.open("rb") as handle:
        for number, raw in enumerate(handle, start=1):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise typer.BadParameter(f"{path}:{number} is not valid UTF-8: {exc}") from exc
            if not line.strip():
                continue
            try:
                yield parse_event(line)
            except ValidationError as exc:
                raise typer.BadParameter(f"{path}:{number} is not a valid event: {exc}") from exc


@app.command()
def replay(
    events: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON-lines event log."),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Reporter settings YAML."),
    output_format: Optional[str] = typer.Option(
        None,
        "--output-format",
        help="Summary format: auto, rich, plain or json (default: $CONSOLE_OUTPUT_FORMAT or auto).",
    ),
    log_level: str = typer.Option("warning", help="Log level for reporter diagnostics."),
    log_format: Optional[str] = typer.Option(None, help="Log format: console, plain or json."),
) -> None:
    """Translate the event log into scenario records and print a summary."""

    logger = configure_logging(log_level, get_log_format(log_format))
    settings = load_settings(config)
    reporter = ConsoleReporter(output_format=get_output_format(output_format))

    sink = InMemoryResultSink()
    translator = EventTranslator(sink, settings)
    violations = 0
    for event in _read_events(events):
        try:
            translator.handle(event)
        except ProtocolViolation as exc:
            violations += 1
            reporter.print_error(str(exc))
    unfinished = translator.close()
    logger.info("replay_finished", scenarios=len(sink.results), unfinished=len(unfinished))

    reporter.report(sink.results)
    if violations:
        raise typer.Exit(code=EXIT_PROTOCOL)
    if any(is_problem(result.status) for result in sink.results):
        raise typer.Exit(code=EXIT_PROBLEMS)


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
