"""Cache of parsed feature sources, indexed by line for test case lookups."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from .gherkin import Background, Examples, Feature, Rule, Scenario, Step, TableRow
from .hashing import normalize_uri


@dataclass(frozen=True)
class ScenarioLocation:
    """Where a test case comes from inside a feature."""

    feature: Feature
    scenario: Scenario
    rule: Optional[Rule] = None
    examples: Optional[Examples] = None
    row: Optional[TableRow] = None

    @property
    def background(self) -> Optional[Background]:
        if self.rule is not None and self.rule.background is not None:
            return self.rule.background
        return self.feature.background

    @property
    def tags(self) -> list[str]:
        tags = list(self.feature.tags)
        if self.rule is not None:
            tags.extend(self.rule.tags)
        tags.extend(self.scenario.tags)
        if self.examples is not None:
            tags.extend(self.examples.tags)
        return tags


@dataclass
class _FeatureIndex:
    feature: Feature
    source: str
    locations: dict[int, ScenarioLocation] = field(default_factory=dict)
    steps: dict[int, Step] = field(default_factory=dict)


def _index_feature(feature: Feature, source: str) -> _FeatureIndex:
    index = _FeatureIndex(feature=feature, source=source)

    def add_background(background: Optional[Background]) -> None:
        if background is None:
            return
        for step in background.steps:
            index.steps[step.line] = step

    def add_scenario(scenario: Scenario, rule: Optional[Rule]) -> None:
        index.locations[scenario.line] = ScenarioLocation(feature, scenario, rule)
        for step in scenario.steps:
            index.steps[step.line] = step
        for examples in scenario.examples:
            for row in examples.rows:
                index.locations[row.line] = ScenarioLocation(feature, scenario, rule, examples, row)

    add_background(feature.background)
    for scenario in feature.scenarios:
        add_scenario(scenario, None)
    for rule in feature.rules:
        add_background(rule.background)
        for scenario in rule.scenarios:
            add_scenario(scenario, rule)
    return index


class FeatureSourceCache:
    """Keeps every feature read by the executor, keyed by normalized uri."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._features: dict[str, _FeatureIndex] = {}

    def add(self, uri: str, feature: Feature, source: str = "") -> None:
        index = _index_feature(feature, source)
        with self._lock:
            self._features[normalize_uri(uri)] = index

    def _get(self, uri: str) -> Optional[_FeatureIndex]:
        with self._lock:
            return self._features.get(normalize_uri(uri))

    def feature(self, uri: str) -> Optional[Feature]:
        index = self._get(uri)
        return index.feature if index else None

    def source(self, uri: str) -> Optional[str]:
        index = self._get(uri)
        return index.source if index else None

    def locate(self, uri: str, line: int) -> Optional[ScenarioLocation]:
        index = self._get(uri)
        if index is None:
            return None
        return index.locations.get(line)

    def step(self, uri: str, line: int) -> Optional[Step]:
        index = self._get(uri)
        if index is None:
            return None
        return index.steps.get(line)

    def __len__(self) -> int:
        with self._lock:
            return len(self._features)
