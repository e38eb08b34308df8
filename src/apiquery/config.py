"""Configuration loading with XDG paths, atomic writes, and precedence resolution.

An :class:`~apiquery.models.ApiConfig` holds the construction parameters
of an :class:`~apiquery.api.Api`: base URL, default fetch policy, default
headers, and transport settings.  This module finds and merges it:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.apiquery/`` on macOS and Windows.  See :func:`get_config_dir`.
* **User config** -- ``<config_dir>/config.json``.
* **Project config** -- ``./apiquery.json`` in the working directory.
* **Precedence resolution** -- :func:`resolve_config` layers explicit
  arguments, environment variables, project config and user config.

Writes use a temp-file-then-rename strategy (:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from apiquery.exceptions import ConfigError
from apiquery.models import ApiConfig, FetchPolicy

_APP_NAME = "apiquery"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "apiquery.json"

ENV_CONFIG = "APIQUERY_CONFIG"
ENV_BASE_URL = "APIQUERY_BASE_URL"
ENV_FETCH_POLICY = "APIQUERY_FETCH_POLICY"
ENV_TIMEOUT = "APIQUERY_TIMEOUT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True everywhere except macOS and Windows."""
    return sys.platform not in ("darwin", "win32", "cygwin")


def get_config_dir() -> Path:
    """Return the configuration directory.

    On Linux/BSD: ``$XDG_CONFIG_HOME/apiquery/`` (default ``~/.config/apiquery/``).
    On macOS/Windows: ``~/.apiquery/``.

    The directory is not created; only :func:`save_config` writes to it.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def user_config_path() -> Path:
    """Path to the user config file."""
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, text: str) -> None:
    """Replace *path* with *text* via a sibling temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


# --- Load / save ---


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    if not isinstance(data.get("default_headers", {}), dict):
        raise ConfigError(f"Invalid config at {path}: default_headers must be a JSON object")
    return data


def load_config(path: Union[str, Path]) -> ApiConfig:
    """Load an :class:`~apiquery.models.ApiConfig` from a JSON file.

    Returns:
        The validated config.  A missing file yields the defaults.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = Path(path)
    if not path.is_file():
        return ApiConfig()
    data = _read_json(path)
    try:
        return ApiConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ApiConfig, path: Optional[Union[str, Path]] = None) -> Path:
    """Persist *config* atomically.

    Args:
        config: The configuration to save.
        path: Destination file; defaults to :func:`user_config_path`.

    Returns:
        The path written to.
    """
    target = Path(path) if path is not None else user_config_path()
    data = config.model_dump(mode="json")
    _atomic_write(target, json.dumps(data, indent=2) + "\n")
    return target


# --- Precedence resolution ---


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    base_url = os.environ.get(ENV_BASE_URL)
    if base_url:
        overrides["base_url"] = base_url
    policy = os.environ.get(ENV_FETCH_POLICY)
    if policy:
        overrides["default_fetch_policy"] = policy
    timeout = os.environ.get(ENV_TIMEOUT)
    if timeout:
        overrides["timeout"] = timeout
    return overrides


def resolve_config(
    config_path: Optional[Union[str, Path]] = None,
    base_url: Optional[str] = None,
    fetch_policy: Optional[Union[str, FetchPolicy]] = None,
    default_headers: Optional[dict[str, str]] = None,
) -> ApiConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. Explicit arguments (``base_url``, ``fetch_policy``, ``default_headers``)
        2. Environment variables (``APIQUERY_BASE_URL``,
           ``APIQUERY_FETCH_POLICY``, ``APIQUERY_TIMEOUT``)
        3. Project config (``./apiquery.json``)
        4. User config -- ``config_path``, else ``$APIQUERY_CONFIG``, else
           ``~/.config/apiquery/config.json``
        5. Defaults

    ``default_headers`` from every layer are merged, higher layers winning
    per header.

    Raises:
        ConfigError: If any layer is malformed.
    """
    # 5 + 4. Defaults and user config
    user_path = config_path or os.environ.get(ENV_CONFIG) or user_config_path()
    merged: dict[str, Any] = {}
    user_file = Path(user_path)
    if user_file.is_file():
        merged.update(_read_json(user_file))

    # 3. Project-local config
    project_file = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if project_file.is_file():
        project = _read_json(project_file)
        headers = {**merged.get("default_headers", {}), **project.get("default_headers", {})}
        merged.update(project)
        merged["default_headers"] = headers

    # 2. Environment
    merged.update(_env_overrides())

    # 1. Explicit arguments
    if base_url is not None:
        merged["base_url"] = base_url
    if fetch_policy is not None:
        merged["default_fetch_policy"] = fetch_policy
    if default_headers:
        merged["default_headers"] = {**merged.get("default_headers", {}), **default_headers}

    try:
        return ApiConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
