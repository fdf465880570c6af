"""
Settings loader for repo-to-text.

Supports loading settings from:
- repo-to-text.toml / .repo-to-text.toml / r2t.toml / .r2t.toml
- r2t.yml / .r2t.yml / r2t.yaml / .r2t.yaml

Environment variables override config file values, and CLI flags override both.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .config import (
    DEFAULT_API_BASE,
    DEFAULT_FRONTEND_URL,
    DEFAULT_SERVICE_PORT,
    DEFAULT_WEB_HOST,
    DEFAULT_WIKI_SERVICE_URL,
)

# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "repo-to-text.toml",
    ".repo-to-text.toml",
    "r2t.toml",
    ".r2t.toml",
    "r2t.yml",
    ".r2t.yml",
    "r2t.yaml",
    ".r2t.yaml",
]

# Environment variable -> settings field
ENV_VARS = {
    "REPO_TO_TEXT_API_BASE": "api_base",
    "REPO_TO_TEXT_WIKI_URL": "wiki_service_url",
    "REPO_TO_TEXT_REPOS_DIR": "repos_dir",
    "FRONTEND_URL": "frontend_url",
    "PORT": "port",
}


class ConfigError(ValueError):
    """A config file or environment value could not be interpreted."""

    pass


@dataclass
class Settings:
    """Runtime settings shared by the client pipeline and the wiki service.

    Attributes:
        api_base: Base URL of the hosting REST API.
        web_host: Host accepted in repository URLs.
        wiki_service_url: Base URL of the companion wiki service.
        hidden_extensions: Extensions hidden by default (comma-separated form).
        max_concurrency: Optional cap on concurrent content requests (None = no cap).
        timeout: Optional HTTP timeout in seconds (None keeps the transport default).
        frontend_url: Origin allowed to call the wiki service (CORS).
        port: Port the wiki service listens on.
        repos_dir: Directory holding wiki mirrors.
        clone_base: Base URL wiki mirrors are cloned from.
    """

    api_base: str = DEFAULT_API_BASE
    web_host: str = DEFAULT_WEB_HOST
    wiki_service_url: str = DEFAULT_WIKI_SERVICE_URL
    hidden_extensions: str = ""
    max_concurrency: int | None = None
    timeout: float | None = None
    frontend_url: str = DEFAULT_FRONTEND_URL
    port: int = DEFAULT_SERVICE_PORT
    repos_dir: Path = field(default_factory=lambda: Path("repos"))
    clone_base: str = "https://github.com"

    # Source file path (for debugging)
    _config_file: Path | None = field(default=None, repr=False)

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with non-None overrides applied (CLI flags)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return _coerce(replace(self, **values))


def find_config_file(start_dir: Path) -> Path | None:
    """
    Find a configuration file in a directory.

    Args:
        start_dir: Directory to search

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = start_dir / name
        if config_path.exists() and config_path.is_file():
            return config_path
    return None


def _parse_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML config file into a dict, unwrapping a `[repo-to-text]` section."""
    with open(path, "rb") as f:
        data: dict[str, Any] = tomllib.load(f)
    return _unwrap_section(data)


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML config file into a dict, unwrapping a `repo-to-text` section."""
    with open(path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f)

    if not isinstance(raw_data, dict):
        return {}
    return _unwrap_section(dict(raw_data))


def _unwrap_section(data: dict[str, Any]) -> dict[str, Any]:
    # Support both flat and nested section
    for section in ("repo-to-text", "r2t"):
        if section in data and isinstance(data[section], dict):
            return dict(data[section])
    return data


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Accept kebab-case keys and drop unknown ones for forwards compatibility."""
    known = {f.name for f in fields(Settings) if not f.name.startswith("_")}
    result = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name in known:
            result[name] = value
    return result


def _coerce(settings: Settings) -> Settings:
    """Coerce loosely typed values (from files or env) to the declared types."""
    try:
        if isinstance(settings.hidden_extensions, (list, tuple, set)):
            settings.hidden_extensions = ",".join(str(e) for e in settings.hidden_extensions)
        settings.port = int(settings.port)
        if settings.max_concurrency is not None:
            settings.max_concurrency = int(settings.max_concurrency) or None
        if settings.timeout is not None:
            settings.timeout = float(settings.timeout)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid setting value: {e}") from e
    settings.repos_dir = Path(settings.repos_dir)
    settings.api_base = settings.api_base.rstrip("/")
    settings.wiki_service_url = settings.wiki_service_url.rstrip("/")
    settings.clone_base = settings.clone_base.rstrip("/")
    return settings


def load_config_file(path: Path) -> dict[str, Any]:
    """
    Load a settings file.

    Args:
        path: Path to a TOML or YAML file

    Returns:
        Known settings keys found in the file

    Raises:
        ConfigError: If the file cannot be parsed
    """
    try:
        if path.suffix == ".toml":
            data = _parse_toml(path)
        else:
            data = _parse_yaml(path)
    except (tomllib.TOMLDecodeError, yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to load config file {path}: {e}") from e
    return _normalize_keys(data)


def load_settings(
    start_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build settings from defaults, the first config file found, and the environment.

    Args:
        start_dir: Directory searched for a config file (defaults to the CWD).
        environ: Environment mapping (defaults to `os.environ`).

    Returns:
        The merged settings.
    """
    environ = os.environ if environ is None else environ
    start_dir = Path.cwd() if start_dir is None else start_dir

    values: dict[str, Any] = {}
    config_file = find_config_file(start_dir)
    if config_file is not None:
        values.update(load_config_file(config_file))

    for var, name in ENV_VARS.items():
        if environ.get(var):
            values[name] = environ[var]

    settings = Settings(**values)
    settings._config_file = config_file
    return _coerce(settings)
