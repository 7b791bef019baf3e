"""Parsed Gherkin document consumed by the reporter.

The executor's parser produces these; the reporter only reads them to recover
feature names, descriptions, step keywords and example tables by line.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TableRow(BaseModel):
    line: int
    cells: list[str] = Field(default_factory=list)


class Step(BaseModel):
    keyword: str
    text: str
    line: int
    data_table: list[TableRow] = Field(default_factory=list)
    doc_string: Optional[str] = None


class Examples(BaseModel):
    keyword: str = "Examples"
    name: str = ""
    line: int
    tags: list[str] = Field(default_factory=list)
    header: Optional[TableRow] = None
    rows: list[TableRow] = Field(default_factory=list)


class Background(BaseModel):
    keyword: str = "Background"
    name: str = ""
    line: int
    steps: list[Step] = Field(default_factory=list)


class Scenario(BaseModel):
    keyword: str = "Scenario"
    name: str
    description: Optional[str] = None
    line: int
    tags: list[str] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    examples: list[Examples] = Field(default_factory=list)


class Rule(BaseModel):
    keyword: str = "Rule"
    name: str
    description: Optional[str] = None
    line: int
    tags: list[str] = Field(default_factory=list)
    background: Optional[Background] = None
    scenarios: list[Scenario] = Field(default_factory=list)


class Feature(BaseModel):
    keyword: str = "Feature"
    name: str
    description: Optional[str] = None
    line: int = 1
    language: str = "en"
    tags: list[str] = Field(default_factory=list)
    background: Optional[Background] = None
    scenarios: list[Scenario] = Field(default_factory=list)
    rules: list[Rule] = Field(default_factory=list)
