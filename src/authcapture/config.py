"""Configuration management with XDG paths and precedence resolution.

This module handles all configuration for authcapture:

* **Directory layout** -- crash logs live under the XDG data directory on
  Linux/BSD and ``~/.authcapture/`` elsewhere. See :func:`get_data_dir`.
* **Project config** -- an optional ``authcapture.yaml`` (or ``.yml`` /
  ``.json``) in the working directory. YAML is a superset of JSON, so all
  three are read with :func:`yaml.safe_load`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the project file, and defaults into a
  :class:`~authcapture.models.CaptureConfig`.

The environment variable names defined here double as the invocation context
the supervisor hands to the capture process.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from authcapture.exceptions import ConfigError
from authcapture.models import CaptureConfig

_APP_NAME = "authcapture"
_PROJECT_CONFIG_FILENAMES = ("authcapture.yaml", "authcapture.yml", "authcapture.json")

ENV_AUTH_DIR = "AUTHCAPTURE_AUTH_DIR"
ENV_LANG = "AUTHCAPTURE_LANG"
ENV_MODE = "AUTHCAPTURE_MODE"
ENV_TARGET_INDEX = "AUTHCAPTURE_TARGET_INDEX"
ENV_BROWSER_PATH = "AUTHCAPTURE_BROWSER_PATH"
ENV_TARGET_URL = "AUTHCAPTURE_TARGET_URL"
ENV_RELOAD_URL = "AUTHCAPTURE_RELOAD_URL"
ENV_HEADLESS = "AUTHCAPTURE_HEADLESS"

# Config field <- environment variable
_ENV_FIELDS = {
    "auth_dir": ENV_AUTH_DIR,
    "lang": ENV_LANG,
    "browser_path": ENV_BROWSER_PATH,
    "target_url": ENV_TARGET_URL,
    "reload_url": ENV_RELOAD_URL,
    "headless": ENV_HEADLESS,
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/authcapture/`` (default
    ``~/.local/share/authcapture/``). On macOS/Windows: ``~/.authcapture/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Project-local config ---


def find_project_config(directory: Optional[Path] = None) -> Optional[Path]:
    """Return the first project config file present in *directory* (default cwd)."""
    base = directory or Path.cwd()
    for name in _PROJECT_CONFIG_FILENAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_project_config(directory: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load the project-local configuration file.

    Returns:
        The parsed mapping, or ``None`` if no project config file exists.

    Raises:
        ConfigError: If the file cannot be parsed or is not a mapping.
    """
    path = find_project_config(directory)
    if path is None:
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a mapping")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_auth_dir: Optional[str] = None,
    cli_lang: Optional[str] = None,
) -> CaptureConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags (``cli_auth_dir``, ``cli_lang``)
        2. Environment variables (``AUTHCAPTURE_*``)
        3. Project config (``./authcapture.yaml``)
        4. Defaults

    Returns:
        A validated :class:`~authcapture.models.CaptureConfig` whose
        ``auth_dir`` is absolute.

    Raises:
        ConfigError: If the project file or any resolved value is invalid.
    """
    merged: dict[str, Any] = {}

    project = load_project_config()
    if project:
        merged.update(project)

    for field, env_var in _ENV_FIELDS.items():
        value = os.environ.get(env_var)
        if value:
            merged[field] = value

    if cli_auth_dir is not None:
        merged["auth_dir"] = cli_auth_dir
    if cli_lang is not None:
        merged["lang"] = cli_lang

    try:
        config = CaptureConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

    config.project_root = config.project_root.expanduser().resolve()
    auth_dir = config.auth_dir.expanduser()
    if not auth_dir.is_absolute():
        auth_dir = config.project_root / auth_dir
    config.auth_dir = auth_dir
    config.lang = config.lang.strip().lower() or "zh"
    return config
