from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from gherkin_reporter.config import NamingStrategy, ReporterSettings, load_settings, properties_from_env


def _write_settings(tmp_path: Path, payload: object) -> Path:
    path = tmp_path / "reporter.yaml"
    path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_defaults() -> None:
    settings = load_settings(environ={})

    assert settings.link_patterns == {}
    assert settings.labels == {}
    assert settings.naming_strategy is NamingStrategy.LONG


def test_from_properties() -> None:
    settings = ReporterSettings.from_properties(
        {
            "link.issue.pattern": "https://tracker/{}",
            "link.tms.pattern": "https://tms/{}",
            "label.x-provided": "ci",
            "naming.strategy": "SHORT",
            "unrelated.key": "ignored",
        }
    )

    assert settings.link_patterns == {"issue": "https://tracker/{}", "tms": "https://tms/{}"}
    assert settings.labels == {"x-provided": "ci"}
    assert settings.naming_strategy is NamingStrategy.SHORT


def test_properties_from_env() -> None:
    properties = properties_from_env(
        {
            "GHERKIN_REPORT_LINK_ISSUE_PATTERN": "https://tracker/{}",
            "GHERKIN_REPORT_LABEL_X_PROVIDED": "ci",
            "GHERKIN_REPORT_NAMING_STRATEGY": "short",
            "HOME": "/root",
        }
    )

    assert properties == {
        "link.issue.pattern": "https://tracker/{}",
        "label.x-provided": "ci",
        "naming.strategy": "short",
    }


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = _write_settings(
        tmp_path,
        {
            "link_patterns": {"issue": "https://file/{}", "tms": "https://tms/{}"},
            "labels": {"team": "payments"},
            "naming_strategy": "short",
        },
    )

    settings = load_settings(path, environ={"GHERKIN_REPORT_LINK_ISSUE_PATTERN": "https://env/{}"})

    assert settings.link_patterns == {"issue": "https://env/{}", "tms": "https://tms/{}"}
    assert settings.labels == {"team": "payments"}
    assert settings.naming_strategy is NamingStrategy.SHORT


def test_environment_naming_strategy_wins(tmp_path: Path) -> None:
    path = _write_settings(tmp_path, {"naming_strategy": "short"})

    settings = load_settings(path, environ={"GHERKIN_REPORT_NAMING_STRATEGY": "long"})

    assert settings.naming_strategy is NamingStrategy.LONG


def test_file_must_hold_a_mapping(tmp_path: Path) -> None:
    path = _write_settings(tmp_path, ["not", "a", "mapping"])

    with pytest.raises(ValueError):
        load_settings(path, environ={})


def test_unknown_naming_strategy_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ReporterSettings.from_properties({"naming.strategy": "medium"})
