"""Label and link extraction from scenario tags and settings."""

from __future__ import annotations

import socket
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, Mapping, Optional

import structlog

from .hashing import normalize_uri
from .models import Label, Link

LOGGER = structlog.get_logger("gherkin_reporter")

TAG_DELIMITER = "="
LINK_PLACEHOLDER = "{}"
FRAMEWORK = "gherkin"
LANGUAGE = "python"

SEVERITY_LEVELS = frozenset({"blocker", "critical", "normal", "minor", "trivial"})

# Tag key (lower-cased) -> link category.
LINK_TAG_KEYS: dict[str, str] = {
    "issue": "issue",
    "tms": "tms",
    "tmslink": "tms",
    "link": "link",
}


@lru_cache(maxsize=1)
def host_name() -> str:
    try:
        return socket.gethostname()
    except OSError:  # pragma: no cover - depends on host configuration
        return "default"


def strip_tag(tag: str) -> str:
    return tag[1:] if tag.startswith("@") else tag


def package_name(uri: str, feature_name: str) -> str:
    """Dotted package label: ``a/b/c.feature`` -> ``a.b.c_feature.<feature>``."""

    path = normalize_uri(uri)
    if path.endswith(".feature"):
        path = path[: -len(".feature")] + "_feature"
    path = path.strip("/").replace("/", ".")
    return f"{path}.{feature_name}" if path else feature_name


def link_url(patterns: Mapping[str, str], category: str, value: str) -> Optional[str]:
    pattern = patterns.get(category)
    if not pattern:
        LOGGER.debug("link_pattern_missing", category=category, value=value)
        return None
    return pattern.replace(LINK_PLACEHOLDER, value)


@dataclass
class ScenarioLabels:
    labels: list[Label] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def add_label(self, name: str, value: str) -> None:
        label = Label(name=name, value=value)
        if label not in self.labels:
            self.labels.append(label)

    def add_link(self, name: str, category: str, url: Optional[str]) -> None:
        link = Link(name=name, type=category, url=url)
        if link not in self.links:
            self.links.append(link)


class LabelExtractor:
    """Derives labels and links for a scenario from its tags and location."""

    def __init__(
        self,
        link_patterns: Mapping[str, str] | None = None,
        extra_labels: Mapping[str, str] | None = None,
    ) -> None:
        self._patterns = {key.lower(): value for key, value in (link_patterns or {}).items()}
        self._extra = dict(extra_labels or {})

    def extract(
        self,
        *,
        tags: Iterable[str],
        feature_name: str,
        scenario_name: str,
        uri: str,
        worker: str,
    ) -> ScenarioLabels:
        result = ScenarioLabels()
        stories: list[str] = []

        for raw in tags:
            tag = strip_tag(raw.strip())
            if not tag:
                continue
            result.add_label("tag", tag)
            self._apply_tag(result, tag, stories)

        result.add_label("feature", feature_name)
        for story in stories or [scenario_name]:
            result.add_label("story", story)

        result.add_label("suite", feature_name)
        result.add_label("package", package_name(uri, feature_name))
        result.add_label("testClass", scenario_name)
        result.add_label("testMethod", scenario_name)
        result.add_label("host", host_name())
        result.add_label("thread", worker)
        result.add_label("framework", FRAMEWORK)
        result.add_label("language", LANGUAGE)

        for name, value in self._extra.items():
            result.add_label(name, value)
        return result

    def _apply_tag(self, result: ScenarioLabels, tag: str, stories: list[str]) -> None:
        if tag.lower() in SEVERITY_LEVELS:
            result.add_label("severity", tag.lower())
            return
        if TAG_DELIMITER not in tag:
            return

        key, value = (part.strip() for part in tag.split(TAG_DELIMITER, 1))
        lowered = key.lower()
        if not value:
            return
        if lowered in LINK_TAG_KEYS:
            category = LINK_TAG_KEYS[lowered]
            result.add_link(value, category, link_url(self._patterns, category, value))
        elif lowered == "story":
            stories.append(value)
        elif lowered == "severity":
            result.add_label("severity", value.lower())
        elif lowered.startswith("label.") and len(key) > len("label."):
            result.add_label(key[len("label."):], value)
        else:
            LOGGER.debug("composite_tag_unsupported", tag=tag)
