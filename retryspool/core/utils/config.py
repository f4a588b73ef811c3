"""Configuration loading from Python modules.

Backend configuration lives in plain Python modules (``configs/data_backends.py``
by default) as a ``CONFIGURATION`` dict of named entries. Entries can extend
another entry with the ``"__inherits__"`` key, so a second spool table only
has to name what differs from the first:

    CONFIGURATION = {
        "spool": {"type": "postgres", "dsn": "postgresql://localhost/spool"},
        "spool-bounces": {"__inherits__": "spool", "table_name": "bounce_data"},
    }
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

logger = logging.getLogger(__name__)

INHERITS_KEY = "__inherits__"


class ConfigError(Exception):
    """Raised when configuration loading or resolution fails."""

    pass


def load_config_from_module(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: Any | None = None,
) -> Any:
    """Import a module and return one of its attributes.

    Args:
        module_path: Dotted module path (e.g., "configs.data_backends")
        config_name: Attribute holding the configuration
        default: Returned when the module or the attribute is missing

    Returns:
        The attribute value, or ``default``
    """
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.warning(f"Could not import module '{module_path}': {e}")
        return default

    if not hasattr(module, config_name):
        logger.warning(f"Module '{module_path}' does not have attribute '{config_name}'")
        return default

    logger.debug(f"Loaded configuration from {module_path}.{config_name}")
    return getattr(module, config_name)


def resolve_config_inheritance(config_dict: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Expand ``__inherits__`` references into complete entries.

    A child entry starts from its fully resolved parent and overrides the keys
    it sets itself. The input is not modified.

    Args:
        config_dict: Named configuration entries

    Returns:
        Entries with inheritance applied and the ``__inherits__`` keys removed

    Raises:
        ConfigError: On a missing parent or an inheritance cycle

    Examples:
        >>> resolved = resolve_config_inheritance({
        ...     "spool": {"type": "postgres", "dsn": "postgresql://localhost/spool"},
        ...     "bounces": {"__inherits__": "spool", "table_name": "bounce_data"},
        ... })
        >>> resolved["bounces"]["dsn"]
        'postgresql://localhost/spool'
    """
    resolved: dict[str, dict[str, Any]] = {}

    def _resolve(name: str, chain: tuple[str, ...]) -> dict[str, Any]:
        if name in chain:
            cycle = " -> ".join((*chain, name))
            raise ConfigError(f"Circular inheritance detected: {cycle}")

        if name in resolved:
            return resolved[name]

        entry = config_dict[name]
        parent_name = entry.get(INHERITS_KEY)

        if parent_name is None:
            merged = dict(entry)
        else:
            if parent_name not in config_dict:
                raise ConfigError(
                    f"Configuration '{name}' inherits from '{parent_name}', "
                    f"but '{parent_name}' not found"
                )
            merged = dict(_resolve(parent_name, (*chain, name)))
            merged.update({k: v for k, v in entry.items() if k != INHERITS_KEY})
            logger.debug(f"Resolved inheritance for '{name}' from '{parent_name}'")

        resolved[name] = merged
        return merged

    for name in config_dict:
        _resolve(name, ())

    return resolved


def load_and_resolve_config(
    module_path: str,
    config_name: str = "CONFIGURATION",
    default: dict[str, dict[str, Any]] | None = None,
) -> dict[str, dict[str, Any]]:
    """Load a configuration dict from a module and resolve its inheritance.

    Args:
        module_path: Dotted module path (e.g., "configs.data_backends")
        config_name: Attribute holding the configuration
        default: Used when the module cannot be loaded or holds no dict

    Returns:
        Fully resolved configuration

    Raises:
        ConfigError: If inheritance cannot be resolved
    """
    raw_config = load_config_from_module(module_path, config_name, default)

    if not isinstance(raw_config, dict):
        logger.warning(f"Invalid configuration loaded from {module_path}, using default")
        return dict(default or {})

    try:
        resolved = resolve_config_inheritance(raw_config)
    except ConfigError as e:
        logger.error(f"Failed to resolve configuration inheritance: {e}")
        raise

    logger.info(f"Loaded and resolved {len(resolved)} configurations from {module_path}")
    return resolved
