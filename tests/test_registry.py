"""Tests for the named data backend registry."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from retryspool.core.storage import (
    BackendConfigError,
    BackendNotFoundError,
    DataBackendRegistry,
    PostgresDataBackend,
)
from retryspool.core.storage.data import BackendConstructionError


@pytest.fixture
def configuration(tmp_path):
    """Two SQLite-backed entries sharing one database file."""
    dsn = f"sqlite:///{tmp_path / 'registry.db'}"
    return {
        "spool": {"type": "sqlite", "dsn": dsn, "max_open_conns": 2, "max_idle_conns": 1},
        "archive": {"type": "postgres", "dsn": dsn, "table_name": "archive_data"},
    }


@pytest.fixture
def registry(configuration):
    data_registry = DataBackendRegistry(configuration)
    yield data_registry
    data_registry.close_all()


class TestDataBackendRegistry:
    """Test suite for DataBackendRegistry."""

    def test_get_backend(self, registry):
        backend = registry.get_backend("spool")

        assert isinstance(backend, PostgresDataBackend)
        assert backend.table_name == "retryspool_data"

    def test_backends_are_independent(self, registry):
        """Test that two names on one database use their own tables."""
        spool = registry.get_backend("spool")
        archive = registry.get_backend("archive")

        spool.store_data("m1", b"live")
        archive.store_data("m1", b"archived")

        assert spool.get_data("m1") == b"live"
        assert archive.get_data("m1") == b"archived"
        assert archive.table_name == "archive_data"

    def test_cache(self, registry):
        assert registry.get_backend("spool") is registry.get_backend("spool")

    def test_no_cache(self, registry):
        cached = registry.get_backend("spool")
        fresh = registry.get_backend("spool", use_cache=False)

        assert fresh is not cached
        fresh.close()

    def test_backend_not_found(self, registry):
        with pytest.raises(BackendNotFoundError, match="spool, archive"):
            registry.get_backend("missing")

    def test_backend_not_found_empty(self):
        with pytest.raises(BackendNotFoundError, match="none"):
            DataBackendRegistry({}).get_backend("spool")

    def test_list_backends(self, registry):
        assert registry.list_backends() == ["spool", "archive"]

    def test_missing_type(self, registry):
        with pytest.raises(BackendConfigError, match="type"):
            registry.create_backend({"dsn": "sqlite:///x.db"})

    def test_unknown_type(self, registry):
        with pytest.raises(BackendConfigError, match="Unknown backend type: s3"):
            registry.create_backend({"type": "s3", "bucket": "spool"})

    def test_invalid_entry(self, registry):
        with pytest.raises(BackendConfigError):
            registry.create_backend({"type": "postgres", "dsn": "sqlite:///x.db", "pool": 3})

    def test_construction_error_propagates(self, registry):
        registry.register("broken", {"type": "postgres", "dsn": "mysql://localhost/spool"})

        with pytest.raises(BackendConstructionError):
            registry.get_backend("broken")

    def test_register_replaces_cached(self, registry, tmp_path):
        """Test that re-registering a name closes the old backend."""
        old = registry.get_backend("spool")

        registry.register("spool", {"type": "sqlite", "dsn": f"sqlite:///{tmp_path / 'new.db'}"})
        new = registry.get_backend("spool")

        assert old.closed
        assert new is not old

    def test_register_new_name(self, registry, tmp_path):
        registry.register("extra", {"type": "sqlite", "dsn": f"sqlite:///{tmp_path / 'x.db'}"})

        assert "extra" in registry.list_backends()
        assert registry.get_backend("extra").table_name == "retryspool_data"

    def test_close_all(self, registry):
        spool = registry.get_backend("spool")
        archive = registry.get_backend("archive")

        registry.close_all()

        assert spool.closed
        assert archive.closed
        assert registry.get_backend("spool") is not spool


class TestDefaultConfiguration:
    """Test loading the registry from configs/data_backends.py."""

    def test_default_module(self):
        registry = DataBackendRegistry()

        assert {"spool", "spool-archive", "local"} <= set(registry.list_backends())

    def test_default_inheritance(self):
        """Test that the archive entry inherits the spool database."""
        config = DataBackendRegistry()._config

        assert config["spool-archive"]["dsn"] == config["spool"]["dsn"]
        assert config["spool-archive"]["table_name"] == "retryspool_archive_data"
        assert "__inherits__" not in config["spool-archive"]

    @patch("retryspool.core.storage.registry.load_and_resolve_config")
    def test_loads_named_module(self, mock_load):
        mock_load.return_value = {"spool": {"type": "postgres", "dsn": "postgresql://db/spool"}}

        registry = DataBackendRegistry()

        mock_load.assert_called_once_with(
            "configs.data_backends", config_name="CONFIGURATION", default={}
        )
        assert registry.list_backends() == ["spool"]

    def test_get_data_backend_uses_default_registry(self):
        fake_registry = Mock()
        with patch(
            "retryspool.core.storage.registry.get_default_registry", return_value=fake_registry
        ):
            from retryspool.core.storage.registry import get_data_backend

            get_data_backend("spool")

        fake_registry.get_backend.assert_called_once_with("spool")
