"""docbridge — Collection CRUD and pagination adapters for document stores."""

__version__ = "0.1.0"
