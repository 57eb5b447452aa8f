"""Registries — Process-wide backend clients and per-service adapter instances.

``ClientRegistry`` holds one backend client per configuration key so that
every adapter of a process shares it. ``AdapterRegistry`` maps adapter
names to classes and services to their connected adapters.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from docbridge.adapters.base.adapter import AdapterHealth, CollectionAdapter
from docbridge.models.service import Service

logger = logging.getLogger(__name__)


class AdapterNotFoundError(Exception):
    """Raised when a requested adapter is not registered."""


class ClientRegistry:
    """Process-wide store of backend clients, one per configuration key.

    Creation is guarded by a lock, so concurrent initializations with the
    same key produce a single client. Clients live until ``teardown`` or
    ``teardown_all`` is called (process exit or test teardown).

    Example:
        >>> clients = ClientRegistry(closer=firebase_admin.delete_app)
        >>> app = clients.get_or_create("[DEFAULT]", lambda: firebase_admin.initialize_app())
    """

    def __init__(self, closer: Callable[[Any], None] | None = None) -> None:
        self._clients: dict[str, Any] = {}
        self._closer = closer
        self._lock = threading.Lock()

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the client for ``key``, creating it with ``factory`` if absent."""
        with self._lock:
            client = self._clients.get(key)
            if client is not None:
                logger.debug("Reusing backend client: %s", key)
                return client
            client = factory()
            self._clients[key] = client
            logger.info("Created backend client: %s", key)
            return client

    def get(self, key: str) -> Any:
        """Return the client for ``key``.

        Raises:
            KeyError: If no client exists for ``key``.
        """
        with self._lock:
            return self._clients[key]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def teardown(self, key: str) -> None:
        """Release the client for ``key``. No error if absent."""
        with self._lock:
            client = self._clients.pop(key, None)
        if client is not None:
            self._close(key, client)

    def teardown_all(self) -> None:
        """Release every client."""
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()
        for key, client in clients:
            self._close(key, client)

    def _close(self, key: str, client: Any) -> None:
        if self._closer is not None:
            try:
                self._closer(client)
            except Exception:
                logger.warning("Error releasing backend client: %s", key, exc_info=True)
        logger.info("Released backend client: %s", key)


class AdapterRegistry:
    """Registry for collection adapter classes and per-service instances.

    The registry maintains both adapter class registrations and the
    connected adapter of each service. It supports:
      - Registering adapter classes by name
      - Creating, initializing and connecting an adapter for a service
      - Retrieving the adapter of a service
      - Health checking and disconnecting all adapters

    Example:
        >>> registry = AdapterRegistry()
        >>> registry.register("firestore", FirestoreAdapter)
        >>> await registry.connect_adapter("firestore", broker, service, project_id="demo")
        >>> adapter = registry.get(service.name)
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[CollectionAdapter]] = {}
        self._instances: dict[str, CollectionAdapter] = {}

    def register(self, name: str, adapter_class: type[CollectionAdapter]) -> None:
        """Register an adapter class.

        Args:
            name: Unique name for this adapter type.
            adapter_class: The adapter class to register.
        """
        if name in self._classes:
            logger.warning("Overwriting existing adapter registration: %s", name)
        self._classes[name] = adapter_class
        logger.info("Registered adapter: %s", name)

    async def connect_adapter(self, name: str, broker: Any, service: Service, **kwargs: Any) -> CollectionAdapter:
        """Create, initialize and connect an adapter for ``service``.

        Args:
            name: The registered adapter name.
            broker: The broker the service runs in.
            service: The owning service.
            **kwargs: Configuration parameters passed to the adapter constructor.

        Returns:
            The connected adapter instance.

        Raises:
            AdapterNotFoundError: If no adapter is registered under this name.
        """
        if name not in self._classes:
            raise AdapterNotFoundError(
                f"No adapter registered with name '{name}'. "
                f"Available adapters: {list(self._classes.keys())}"
            )

        adapter = self._classes[name](**kwargs)
        adapter.init(broker, service)
        await adapter.connect()
        previous = self._instances.get(service.name)
        if previous is not None:
            await previous.disconnect()
        self._instances[service.name] = adapter
        logger.info("Connected %s adapter for service: %s", name, service.name)
        return adapter

    def get(self, service_name: str) -> CollectionAdapter:
        """Get the connected adapter of a service.

        Raises:
            AdapterNotFoundError: If the service has no adapter.
        """
        if service_name not in self._instances:
            raise AdapterNotFoundError(
                f"No adapter connected for service '{service_name}'. "
                f"Call connect_adapter() first."
            )
        return self._instances[service_name]

    async def health_check_all(self) -> dict[str, AdapterHealth]:
        """Run health checks on all connected adapters.

        Returns:
            Dictionary mapping service names to their adapter's health status.
        """
        results: dict[str, AdapterHealth] = {}
        for service_name, adapter in list(self._instances.items()):
            try:
                results[service_name] = await adapter.health_check()
            except Exception as e:
                results[service_name] = AdapterHealth(
                    status="unhealthy",
                    message=str(e),
                )
        return results

    async def disconnect_all(self) -> None:
        """Disconnect all adapters."""
        for service_name, adapter in list(self._instances.items()):
            try:
                await adapter.disconnect()
                logger.info("Disconnected adapter of service: %s", service_name)
            except Exception:
                logger.warning("Error disconnecting adapter of service: %s", service_name, exc_info=True)
            # Adapters connected while this loop awaited stay registered.
            if self._instances.get(service_name) is adapter:
                del self._instances[service_name]

    @property
    def registered_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._classes.keys())

    @property
    def active_adapters(self) -> list[str]:
        """List the services with a connected adapter."""
        return list(self._instances.keys())


def create_default_registry() -> AdapterRegistry:
    """Build a registry with the built-in adapters registered."""
    from docbridge.adapters.firestore.adapter import FirestoreAdapter

    registry = AdapterRegistry()
    registry.register("firestore", FirestoreAdapter)
    return registry
