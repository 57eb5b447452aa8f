"""Base adapter interface — Abstract classes for document-store connectors."""

from docbridge.adapters.base.adapter import CollectionAdapter
from docbridge.adapters.base.registry import AdapterRegistry, ClientRegistry

__all__ = ["AdapterRegistry", "ClientRegistry", "CollectionAdapter"]
