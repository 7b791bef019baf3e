"""Parameters for scenario outline instances."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .models import Parameter
from .sources import ScenarioLocation


@dataclass(frozen=True)
class OutlineInstance:
    parameters: list[Parameter] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    name: Optional[str] = None


def substitute_placeholders(template: str, parameters: list[Parameter]) -> str:
    rendered = template
    for parameter in parameters:
        rendered = rendered.replace(f"<{parameter.name}>", parameter.value)
    return rendered


def extract_parameters(location: Optional[ScenarioLocation]) -> OutlineInstance:
    """Map the example row behind ``location`` to ordered parameters.

    Returns an empty instance for plain scenarios or rows without a header.
    """

    if location is None or location.examples is None or location.row is None:
        return OutlineInstance()
    header = location.examples.header
    if header is None:
        return OutlineInstance(tags=list(location.examples.tags))

    parameters = [
        Parameter(name=name, value=value, order=order)
        for order, (name, value) in enumerate(zip(header.cells, location.row.cells))
    ]
    return OutlineInstance(
        parameters=parameters,
        tags=list(location.examples.tags),
        name=substitute_placeholders(location.scenario.name, parameters),
    )
