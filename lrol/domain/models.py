"""
Typed document tree for LROL rule models.

Instances are produced by the document parser (or built programmatically in
tests and tooling) and are only read by the analyzer. Field presence is
deliberately loose here: completeness is enforced by the analyzer's schema
pass, not by model validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lrol.domain.enums import AggregationKind, EvaluationType

# A grammar value: str | bool | float | list[Value] | dict[str, Value]
Value = str | bool | float | list[Any] | dict[str, Any]


class Evaluation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    evaluation_type: EvaluationType = Field(alias="type")
    left: str | None = None
    operator: str | None = None
    right: Value | None = None
    operands: list[str] | None = None
    weight: int | None = None
    aggregation: AggregationKind | None = None

    def string_fields(self) -> list[tuple[str, str]]:
        """Return ``(field_name, text)`` for ``left`` and a string-typed ``right``."""
        fields = []
        if self.left is not None:
            fields.append(("left", self.left))
        if isinstance(self.right, str):
            fields.append(("right", self.right))
        return fields


class Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action_type: str = Field(alias="type")
    reason: str


class Metadata(BaseModel):
    created_by: str | None = None
    created_at: str | None = None
    last_updated: str | None = None
    notes: str | None = None


class RuleModel(BaseModel):
    """A parsed LROL document."""

    model_id: str = ""
    name: str = ""
    description: str | None = None
    threshold: float = 0.0
    evaluations: list[Evaluation] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    metadata: Metadata | None = None
