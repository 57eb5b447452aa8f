"""Owning-service descriptors.

A service owns one adapter and tells it which collection to work on
through its schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field


class ServiceSchema(BaseModel):
    """Static schema of a service."""

    name: str = Field(description="Service name")
    collection: str | None = Field(default=None, description="Collection (table) the service stores its documents in")
    settings: dict[str, Any] = Field(default_factory=dict, description="Service-specific settings")


@dataclass
class Service:
    """A running service instance as seen by its adapter."""

    schema: ServiceSchema

    @property
    def name(self) -> str:
        return self.schema.name

    @classmethod
    def from_schema(cls, name: str, collection: str | None = None, **settings: Any) -> Service:
        return cls(schema=ServiceSchema(name=name, collection=collection, settings=settings))
