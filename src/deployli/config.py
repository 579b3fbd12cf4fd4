"""Configuration management with XDG paths and precedence resolution.

This module handles all configuration for deployli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.deployli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~deployli.models.GlobalConfig`
  JSON file with the plugin allow/deny lists.
* **Service config** -- The ``deployli.yml`` descriptor in the working
  directory, deserialised into :class:`~deployli.models.ServiceConfig`.
* **Stage/region resolution** -- :func:`resolve_stage_region` merges CLI
  options, environment variables, and the service file.
"""

from __future__ import annotations

import json
import os
import platform
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from deployli.exceptions import ConfigError
from deployli.models import GlobalConfig, ServiceConfig

_APP_NAME = "deployli"
_CONFIG_FILENAME = "config.json"
SERVICE_FILENAMES = ("deployli.yml", "deployli.yaml", "deployli.json")

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/deployli/`` (default ``~/.config/deployli/``).
    On macOS/Windows: ``~/.deployli/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/deployli/`` (default ``~/.local/share/deployli/``).
    On macOS/Windows: ``~/.deployli/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Global config ---


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~deployli.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


# --- Service config ---


def find_service_file(directory: Optional[Path] = None) -> Optional[Path]:
    """Return the first service descriptor found in *directory* (default: cwd)."""
    base = directory or Path.cwd()
    for filename in SERVICE_FILENAMES:
        candidate = base / filename
        if candidate.is_file():
            return candidate
    return None


def load_service_config(path: Optional[Path] = None) -> ServiceConfig:
    """Load the service descriptor.

    YAML and JSON are both parsed with :func:`yaml.safe_load` (JSON is a
    subset of YAML). Variables are not interpolated.

    Args:
        path: Explicit descriptor path. When ``None`` the working directory
            is searched for one of :data:`SERVICE_FILENAMES`.

    Returns:
        The parsed :class:`~deployli.models.ServiceConfig`, or an empty one
        when no descriptor exists (help and version still work outside a
        service directory).

    Raises:
        ConfigError: If the file cannot be parsed or fails validation.
    """
    if path is None:
        path = find_service_file()
        if path is None:
            return ServiceConfig()
    if not path.is_file():
        raise ConfigError(f"Service file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse service file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Service file {path} must contain a mapping at the top level")
    try:
        return ServiceConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid service file {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_stage_region(
    options: Mapping[str, str],
    service: ServiceConfig,
) -> tuple[str, str]:
    """Resolve the target stage and region.

    Precedence (high to low):
        1. CLI options (``--stage``/``-s``, ``--region``/``-r``)
        2. Environment variables (``DEPLOYLI_STAGE``, ``DEPLOYLI_REGION``)
        3. The service file's ``provider`` section
        4. Defaults (``dev``, ``us-east-1``)

    Returns:
        A ``(stage, region)`` tuple.
    """
    stage = (
        options.get("stage")
        or options.get("s")
        or os.environ.get("DEPLOYLI_STAGE")
        or service.provider.stage
        or DEFAULT_STAGE
    )
    region = (
        options.get("region")
        or options.get("r")
        or os.environ.get("DEPLOYLI_REGION")
        or service.provider.region
        or DEFAULT_REGION
    )
    return stage, region
