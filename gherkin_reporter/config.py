"""Reporter settings: link templates, provided labels and step naming."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field

ENV_PREFIX = "GHERKIN_REPORT_"


class NamingStrategy(str, Enum):
    """How step display names are rendered.

    ``long`` keeps the keyword exactly as written (including its trailing
    space) followed by a space and the step text; ``short`` strips the keyword.
    """

    LONG = "long"
    SHORT = "short"


class ReporterSettings(BaseModel):
    link_patterns: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)
    naming_strategy: NamingStrategy = NamingStrategy.LONG

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "ReporterSettings":
        """Build settings from dotted keys.

        Recognized keys: ``link.<category>.pattern``, ``label.<name>`` and
        ``naming.strategy``. Anything else is ignored.
        """

        return cls.model_validate(_properties_payload(properties))

    def merged(self, override: "ReporterSettings") -> "ReporterSettings":
        fields_set = override.model_fields_set
        return ReporterSettings(
            link_patterns={**self.link_patterns, **override.link_patterns},
            labels={**self.labels, **override.labels},
            naming_strategy=(
                override.naming_strategy if "naming_strategy" in fields_set else self.naming_strategy
            ),
        )


def _properties_payload(properties: Mapping[str, str]) -> dict[str, Any]:
    links: dict[str, str] = {}
    labels: dict[str, str] = {}
    payload: dict[str, Any] = {}
    for key, value in properties.items():
        parts = key.split(".")
        if len(parts) == 3 and parts[0] == "link" and parts[2] == "pattern" and parts[1]:
            links[parts[1]] = value
        elif len(parts) >= 2 and parts[0] == "label":
            name = ".".join(parts[1:])
            if name:
                labels[name] = value
        elif key == "naming.strategy":
            payload["naming_strategy"] = value.strip().lower()
    if links:
        payload["link_patterns"] = links
    if labels:
        payload["labels"] = labels
    return payload


def properties_from_env(environ: Mapping[str, str]) -> dict[str, str]:
    """Translate ``GHERKIN_REPORT_*`` variables into dotted property keys.

    ``GHERKIN_REPORT_LINK_ISSUE_PATTERN`` -> ``link.issue.pattern``,
    ``GHERKIN_REPORT_LABEL_X_PROVIDED`` -> ``label.x-provided``.
    """

    properties: dict[str, str] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name.startswith("link_") and name.endswith("_pattern"):
            category = name[len("link_"):-len("_pattern")]
            if category:
                properties[f"link.{category}.pattern"] = value
        elif name.startswith("label_"):
            label = name[len("label_"):].replace("_", "-")
            if label:
                properties[f"label.{label}"] = value
        elif name == "naming_strategy":
            properties["naming.strategy"] = value
    return properties


def _load_file(path: Path) -> ReporterSettings:
    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return ReporterSettings.model_validate(payload)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ReporterSettings:
    """Resolve settings with priority: environment > settings file > defaults."""

    settings = ReporterSettings()
    if config_path is not None:
        settings = settings.merged(_load_file(config_path))
    env = os.environ if environ is None else environ
    env_properties = properties_from_env(env)
    if env_properties:
        settings = settings.merged(ReporterSettings.from_properties(env_properties))
    return settings
