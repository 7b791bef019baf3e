"""Console summary of finalized scenario records."""

import json
import os
import sys
from typing import Optional

from .models import ScenarioRecord, Status
from .output_config import OutputFormat

try:
    from rich.console import Console
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text
    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False

STATUS_STYLES = {
    Status.PASSED: ("✓", "green"),
    Status.FAILED: ("✗", "red"),
    Status.BROKEN: ("!", "yellow"),
    Status.SKIPPED: ("-", "dim"),
}


class ConsoleReporter:
    """
    Prints scenario results, adapting to the environment.

    Uses a rich table on interactive terminals, plain text in CI or when
    piped, and one JSON document when asked for json.
    """

    def __init__(self, output_format: OutputFormat = OutputFormat.AUTO):
        self.output_format = output_format
        self._detect_environment()
        self.console = Console() if self.use_rich else None

    def _detect_environment(self) -> None:
        """Decide between rich and plain output."""
        if self.output_format == OutputFormat.RICH:
            self.use_rich = RICH_AVAILABLE
        elif self.output_format in (OutputFormat.PLAIN, OutputFormat.JSON):
            self.use_rich = False
        else:  # AUTO
            is_terminal = sys.stdout.isatty()
            is_ci = any([
                'CI' in os.environ,
                'JENKINS_HOME' in os.environ,
                'GITLAB_CI' in os.environ,
                'GITHUB_ACTIONS' in os.environ,
            ])
            self.use_rich = RICH_AVAILABLE and is_terminal and not is_ci

    def report(self, results: list[ScenarioRecord]) -> None:
        """Print every scenario followed by the status totals."""
        ordered = sorted(results, key=lambda result: result.full_name or result.name)
        totals = count_statuses(ordered)
        if self.output_format == OutputFormat.JSON:
            print(json.dumps({
                "totals": totals,
                "scenarios": [_summary_row(result) for result in ordered],
            }, indent=2))
            return
        if self.use_rich:
            self._report_rich(ordered, totals)
        else:
            self._report_plain(ordered, totals)

    def _report_rich(self, results: list[ScenarioRecord], totals: dict[str, int]) -> None:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Scenario", width=48)
        table.add_column("Location", style="dim", width=40)
        table.add_column("Steps", justify="right", width=6)
        table.add_column("Status", width=10)
        for result in results:
            icon, color = STATUS_STYLES.get(result.status, ("?", "white"))
            status_name = result.status.value if result.status else "unknown"
            table.add_row(
                result.name,
                result.full_name or "",
                str(len(result.steps)),
                Text(f"{icon} {status_name.upper()}", style=color),
            )
            message = _failure_message(result)
            if message:
                table.add_row(Text(f"  {message}", style=color), "", "", "")
        self.console.print(table)

        has_problems = totals["failed"] or totals["broken"]
        summary = Text()
        summary.append(f"Total: {totals['total']}  ", style="bold")
        for name, style in (("passed", "bold green"), ("failed", "bold red"), ("broken", "bold yellow"), ("skipped", "dim")):
            summary.append(f"{name.capitalize()}: {totals[name]}  ", style=style)
        title = "✗ SOME SCENARIOS FAILED" if has_problems else "✓ NO FAILURES"
        self.console.print(Panel(
            summary,
            title=Text(title, style="bold red" if has_problems else "bold green"),
            border_style="red" if has_problems else "green",
        ))

    def _report_plain(self, results: list[ScenarioRecord], totals: dict[str, int]) -> None:
        for result in results:
            icon, _ = STATUS_STYLES.get(result.status, ("?", "white"))
            status_name = result.status.value.upper() if result.status else "UNKNOWN"
            print(f"{icon} {status_name:<8} {result.name} ({result.full_name})")
            message = _failure_message(result)
            if message:
                print(f"  Error: {message}")
        print("-" * 80)
        print(
            f"Total: {totals['total']} | Passed: {totals['passed']} | Failed: {totals['failed']} | "
            f"Broken: {totals['broken']} | Skipped: {totals['skipped']}"
        )

    def print_error(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[bold red]Error:[/] {message}")
        else:
            print(f"Error: {message}", file=sys.stderr)


def count_statuses(results: list[ScenarioRecord]) -> dict[str, int]:
    totals = {"total": len(results)}
    for status in Status:
        totals[status.value] = sum(1 for result in results if result.status is status)
    return totals


def _failure_message(result: ScenarioRecord) -> Optional[str]:
    if result.status in (Status.FAILED, Status.BROKEN) and result.status_details:
        return result.status_details.message
    return None


def _summary_row(result: ScenarioRecord) -> dict[str, object]:
    return {
        "name": result.name,
        "full_name": result.full_name,
        "status": result.status.value if result.status else None,
        "history_id": result.history_id,
        "steps": [
            {"name": step.name, "status": step.status.value if step.status else None}
            for step in result.steps
        ],
        "message": _failure_message(result),
    }
