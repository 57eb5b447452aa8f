"""Data models shared by adapters, the registry and the CLI."""

from docbridge.models.cursor import Cursor, DocumentPath
from docbridge.models.query import Condition, FindQuery
from docbridge.models.result import Document, DocumentMap, ListResult, Listing, Page
from docbridge.models.service import Service, ServiceSchema

__all__ = [
    "Condition",
    "Cursor",
    "Document",
    "DocumentMap",
    "DocumentPath",
    "FindQuery",
    "ListResult",
    "Listing",
    "Page",
    "Service",
    "ServiceSchema",
]
