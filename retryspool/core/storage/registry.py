"""Backend registry for named data storage backends."""

from __future__ import annotations

import logging
from typing import Any

from retryspool.core.storage.backends.postgres_factory import (
    PostgresDataConfig,
    PostgresDataFactory,
)
from retryspool.core.storage.data import (
    BackendConfigError,
    BackendNotFoundError,
    DataStorageBackend,
)
from retryspool.core.utils.config import load_and_resolve_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_MODULE = "configs.data_backends"

# Entry types served by the SQL backend; the DSN picks the dialect
SQL_BACKEND_TYPES = {"postgres", "postgresql", "sqlite"}


class DataBackendRegistry:
    """Registry for managing named data storage backends.

    Each configured name maps to one backend, created on first use and
    reused afterwards. Backends share nothing, so two names pointing at the
    same database still get their own connection pools.

    Examples:
        >>> registry = DataBackendRegistry()
        >>> backend = registry.get_backend("spool")
        >>> registry.close_all()
    """

    def __init__(self, configuration: dict[str, dict[str, Any]] | None = None):
        """Initialize the registry.

        Args:
            configuration: Backend configuration dict. If None, loads and resolves
                          configuration from configs/data_backends.py
        """
        if configuration is None:
            configuration = load_and_resolve_config(
                DEFAULT_CONFIG_MODULE,
                config_name="CONFIGURATION",
                default={},
            )

        self._config = configuration
        self._backend_cache: dict[str, DataStorageBackend] = {}

    def create_backend(self, config: dict[str, Any]) -> DataStorageBackend:
        """Create a backend instance from configuration.

        Args:
            config: Backend configuration dict with "type" and backend-specific params

        Returns:
            Connected backend with its table in place

        Raises:
            BackendConfigError: If configuration is invalid
            BackendConstructionError: If the backend cannot be connected or initialized
        """
        backend_type = config.get("type")

        if not backend_type:
            raise BackendConfigError("Backend configuration must specify 'type'")

        if backend_type in SQL_BACKEND_TYPES:
            return PostgresDataFactory(PostgresDataConfig.from_dict(config)).create()

        raise BackendConfigError(f"Unknown backend type: {backend_type}")

    def get_backend(self, name: str, use_cache: bool = True) -> DataStorageBackend:
        """Get a backend instance by name.

        Args:
            name: Backend name from the configuration
            use_cache: Whether to reuse a backend created earlier

        Raises:
            BackendNotFoundError: If the name is not configured
            BackendConfigError: If the entry is invalid
            BackendConstructionError: If the backend cannot be created
        """
        if use_cache and name in self._backend_cache:
            return self._backend_cache[name]

        if name not in self._config:
            available = ", ".join(self._config.keys())
            raise BackendNotFoundError(
                f"Backend '{name}' not found in configuration. "
                f"Available backends: {available or 'none'}"
            )

        backend = self.create_backend(self._config[name])
        if use_cache:
            self._backend_cache[name] = backend

        logger.info(f"Created backend for '{name}'")
        return backend

    def list_backends(self) -> list[str]:
        """List all configured backend names."""
        return list(self._config.keys())

    def register(self, name: str, config: dict[str, Any]) -> None:
        """Register a backend configuration, closing any backend cached under that name."""
        self._config[name] = config
        cached = self._backend_cache.pop(name, None)
        if cached is not None:
            cached.close()

    def close_all(self) -> None:
        """Close and forget every cached backend."""
        backends = list(self._backend_cache.items())
        self._backend_cache.clear()
        for name, backend in backends:
            backend.close()
            logger.debug(f"Closed backend '{name}'")


# Global registry instance
_default_registry: DataBackendRegistry | None = None


def get_default_registry() -> DataBackendRegistry:
    """Get the default global registry instance."""
    global _default_registry
    if _default_registry is None:
        _default_registry = DataBackendRegistry()
    return _default_registry


def get_data_backend(name: str) -> DataStorageBackend:
    """Get a data backend by name from the default registry.

    Examples:
        >>> from retryspool.core.storage import get_data_backend
        >>> backend = get_data_backend("spool")
    """
    return get_default_registry().get_backend(name)
