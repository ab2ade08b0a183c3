"""Strict loader for the smlmail runtime configuration.

What:
  Locate, parse, validate, and cache ``config.yaml`` so every component reads
  the same compose, card, path, HTTP, and view settings.

Why:
  The composer and dispatcher take their defaults (hide-timezone flag, SML
  variant, card cap, temp directory) from configuration instead of ambient
  globals. A single validated, cached model keeps those defaults consistent.

How:
  Resolve candidate file locations from an explicit argument, the
  ``SMLMAIL_CONFIG_PATH`` environment variable, and well-known defaults. Parse
  YAML with :func:`yaml.safe_load`, validate through
  :class:`~smlmail.config.schema.RuntimeConfig`, and cache the result.

Interfaces:
  :func:`load_runtime_config`, :func:`get_runtime_config`,
  :func:`reset_runtime_config`, :class:`ConfigLoadError`, :class:`ConfigNotFoundError`,
  :class:`RuntimeConfigError`.

Invariants:
  - Only validated models are returned to callers.
  - Explicit reloads bypass the cache; the precedence order of candidate paths
    never changes.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional, Tuple

import yaml
from pydantic import ValidationError as _PydanticValidationError

from .schema import RuntimeConfig


class ConfigLoadError(Exception):
    """Base error for configuration parsing or validation failures."""


class RuntimeConfigError(ConfigLoadError):
    """Error raised when ``config.yaml`` cannot be located, read, or validated."""


class ConfigNotFoundError(RuntimeConfigError):
    """No candidate ``config.yaml`` exists."""


_CONFIG_ENV = "SMLMAIL_CONFIG_PATH"
_DEFAULT_LOCATIONS: Tuple[Path, ...] = (
    Path("config.yaml"),
    Path("/etc/smlmail/config.yaml"),
)
_RUNTIME_CACHE: Optional[Tuple[Optional[Path], RuntimeConfig]] = None


def _candidate_paths(path: Optional[Path]) -> Iterable[Path]:
    """Yield configuration file locations in priority order.

    The explicit ``path`` wins over ``SMLMAIL_CONFIG_PATH`` which wins over the
    default locations. Duplicates are dropped while keeping that order.
    """

    seen: set[Path] = set()
    candidates = []
    if path is not None:
        candidates.append(path)
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        candidates.append(Path(env_path))
    candidates.extend(_DEFAULT_LOCATIONS)
    for candidate in candidates:
        candidate = candidate.expanduser()
        if candidate not in seen:
            seen.add(candidate)
            yield candidate


def _parse_config_payload(text: str, source: Path) -> dict[str, Any]:
    """Parse ``config.yaml`` text into a mapping ready for validation.

    Raises:
      RuntimeConfigError: If the YAML is invalid or not a mapping.
    """

    try:
        payload = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"Invalid YAML in {source}: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeConfigError("config.yaml must contain a mapping at the top-level")
    return payload


def _load_runtime_from_path(path: Path) -> RuntimeConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise RuntimeConfigError(f"Configuration file missing: {path}") from exc
    except OSError as exc:  # pragma: no cover - filesystem surface
        raise RuntimeConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    payload = _parse_config_payload(text, path)
    try:
        return RuntimeConfig.model_validate(payload)
    except _PydanticValidationError as exc:
        raise RuntimeConfigError(f"Invalid config.yaml: {exc}") from exc


def load_runtime_config(
    path: Optional[Path | str] = None,
    *,
    reload: bool = False,
) -> RuntimeConfig:
    """Resolve, parse, and cache the runtime configuration.

    Args:
      path: Optional explicit location of ``config.yaml``.
      reload: When ``True`` forces a fresh load bypassing the cache.

    Returns:
      The validated runtime configuration.

    Raises:
      RuntimeConfigError: If no candidate file exists or validation fails.
    """

    global _RUNTIME_CACHE

    requested_path = Path(path).expanduser() if isinstance(path, (str, Path)) else None
    if not reload and _RUNTIME_CACHE is not None:
        cached_path, cached_config = _RUNTIME_CACHE
        if requested_path is None or cached_path == requested_path:
            return cached_config

    searched: list[str] = []
    for candidate in _candidate_paths(requested_path):
        if not candidate.exists():
            searched.append(str(candidate))
            continue
        config = _load_runtime_from_path(candidate)
        _RUNTIME_CACHE = (candidate, config)
        return config

    raise ConfigNotFoundError(
        f"Unable to locate config.yaml (searched: {', '.join(searched) or '<none>'})"
    )


def get_runtime_config(*, allow_default: bool = False) -> RuntimeConfig:
    """Return the cached runtime configuration, loading it on demand.

    Args:
      allow_default: When ``True`` and no file can be found, cache and return
        :meth:`RuntimeConfig.default` rooted in the system temp directory.
    """

    global _RUNTIME_CACHE

    if _RUNTIME_CACHE is not None:
        return _RUNTIME_CACHE[1]
    try:
        return load_runtime_config()
    except ConfigNotFoundError:
        if not allow_default:
            raise
    config = RuntimeConfig.default(str(Path(tempfile.gettempdir()) / "smlmail"))
    _RUNTIME_CACHE = (None, config)
    return config


def reset_runtime_config() -> None:
    """Forget the cached configuration so the next access reloads it."""

    global _RUNTIME_CACHE
    _RUNTIME_CACHE = None
