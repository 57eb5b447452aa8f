"""Query parameter models."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Condition(BaseModel):
    """A single ``field <op> value`` filter."""

    field: str = Field(min_length=1, description="Document field to filter on")
    op: str = Field(description="Comparison operator, e.g. '==', '<', 'in'")
    value: Any = Field(default=None, description="Right-hand operand")

    @classmethod
    def from_triple(cls, triple: Sequence[Any]) -> Condition:
        field, op, value = triple
        return cls(field=field, op=op, value=value)

    def as_tuple(self) -> tuple[str, str, Any]:
        return (self.field, self.op, self.value)


class FindQuery(BaseModel):
    """Parameters of a ``find`` call."""

    conditions: list[Condition] = Field(default_factory=list, description="Filters applied in order")
    limit: int | None = Field(default=None, ge=1, description="Maximum number of documents")
    order_by: list[str] = Field(default_factory=list, description="Ascending sort fields, applied in order")

    @field_validator("conditions", mode="before")
    @classmethod
    def _parse_conditions(cls, v: Any) -> list[Any]:
        """Accept ``[field, op, value]`` triples as well as Condition objects."""
        if v is None:
            return []
        return [Condition.from_triple(c) if isinstance(c, list | tuple) else c for c in v]

    @field_validator("order_by", mode="before")
    @classmethod
    def _parse_order_by(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return list(v)
