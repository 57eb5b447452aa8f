"""Result models for multi-document reads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from docbridge.models.cursor import Cursor

Document = dict[str, Any]
DocumentMap = dict[str, Document]


class Page(BaseModel):
    """One page of an ordered or continued listing."""

    kind: Literal["page"] = "page"
    docs: DocumentMap = Field(default_factory=dict, description="Documents of this page keyed by _id")
    next: Cursor | None = Field(default=None, description="Cursor for the following page (None = exhausted)")

    @property
    def exhausted(self) -> bool:
        return self.next is None


class Listing(BaseModel):
    """An unpaginated listing of a whole collection."""

    kind: Literal["all"] = "all"
    docs: DocumentMap = Field(default_factory=dict, description="All documents keyed by _id")


ListResult = Page | Listing
