"""Console output and log format selection."""

import os
from enum import Enum
from typing import Literal

LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "CONSOLE_OUTPUT_FORMAT"


class OutputFormat(str, Enum):
    """Summary rendering modes for the replay CLI."""
    AUTO = "auto"
    RICH = "rich"
    PLAIN = "plain"
    JSON = "json"


def get_output_format(cli_override: str | None = None) -> OutputFormat:
    """
    Resolve the output format with priority: CLI parameter > environment variable > auto.

    Unknown values fall through to the next source.
    """
    if cli_override:
        try:
            return OutputFormat(cli_override.lower())
        except ValueError:
            pass

    env_value = os.environ.get(ENV_VAR_NAME)
    if env_value:
        try:
            return OutputFormat(env_value.lower())
        except ValueError:
            pass

    return OutputFormat.AUTO


def get_log_format(cli_override: str | None = None) -> LogFormat:
    """
    Resolve the log format with the same priority as :func:`get_output_format`.

    Output formats map onto log formats:
    - auto/rich -> console (with colors)
    - plain -> plain
    - json -> json
    """
    if cli_override:
        format_lower = cli_override.lower()
        if format_lower in ("json", "console", "plain"):
            return format_lower  # type: ignore

    env_value = os.environ.get(ENV_VAR_NAME)
    if env_value:
        format_lower = env_value.lower()
        if format_lower == "json":
            return "json"
        elif format_lower == "plain":
            return "plain"
        elif format_lower in ("auto", "rich"):
            return "console"

    return "console"
