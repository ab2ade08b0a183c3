"""Configuration models and loaders for smlmail.

Interfaces:
  ``RuntimeConfig`` and its sections, ``load_runtime_config``,
  ``get_runtime_config``, ``reset_runtime_config``, ``ConfigLoadError``,
  ``ConfigNotFoundError``, ``RuntimeConfigError``.
"""

from .loader import (
    ConfigLoadError,
    ConfigNotFoundError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from .schema import (
    CardsConfig,
    ComposeConfig,
    HttpConfig,
    PathsConfig,
    RuntimeConfig,
    ValidationError,
    ViewConfig,
)

__all__ = [
    "CardsConfig",
    "ComposeConfig",
    "ConfigLoadError",
    "ConfigNotFoundError",
    "HttpConfig",
    "PathsConfig",
    "RuntimeConfig",
    "RuntimeConfigError",
    "ValidationError",
    "ViewConfig",
    "get_runtime_config",
    "load_runtime_config",
    "reset_runtime_config",
]
