"""
Hierarchical configuration management.

Loads configuration from multiple sources with this precedence (highest wins):
    1. Environment variables (PREFIX_SECTION__KEY)
    2. Config file (YAML or JSON)
    3. Built-in defaults

There is no module-level singleton: build one Config at the edge (CLI,
service entry point) and hand the derived objects to the store and search.

Usage:
    config = Config(config_file="~/.reqlog/config.yaml")

    store = FileDocStore(config.store_config())
    options = config.search_options()

    config.get("paths.docs_dir")     # dot-notation access
    config.project_dir("my-app")     # per-project document directory
"""

from __future__ import annotations

import json
import os
from typing import Any

import yaml
from pydantic import ValidationError

from reqlog.core.config_schema import ReqlogConfig
from reqlog.core.exceptions import ConfigurationError, describe_validation_error
from reqlog.core.types import ConfigDict
from reqlog.core.utils.file_io import expand_path
from reqlog.docs.config import SearchOptions, StoreConfig
from reqlog.docs.ids import generate_default_project_path

_DEFAULT_ENV_PREFIX = "REQLOG_"
_DEFAULT_APP_DIR = os.path.join("~", ".reqlog")


class Config:
    """
    Central configuration manager.

    Loads and merges configuration from defaults, a config file, and
    environment variables. Env vars use double-underscore to denote nesting:
    REQLOG_SEARCH__LIMIT=20 -> config["search"]["limit"] = "20"
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        base_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to YAML or JSON configuration file.
            env_prefix: Prefix for environment variable overrides.
            base_dir: Directory that a leading ``~`` in document paths expands
                to. Defaults to the user's home directory.
            defaults: Additional default values to merge (consumer-specific).
        """
        self.config_file = config_file
        self.env_prefix = env_prefix or ""
        self._base_dir = base_dir
        self._extra_defaults = defaults or {}
        self.config_data: ConfigDict = {}

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from all sources."""
        self.config_data = self._get_default_config()

        if self._extra_defaults:
            self._update_dict(self.config_data, self._extra_defaults)

        if self.config_file:
            path = os.path.expanduser(self.config_file)
            if os.path.exists(path):
                file_config = self._load_file(path)
                self._update_dict(self.config_data, file_config)

        # Env vars override everything
        self._load_from_env()

    def _get_default_config(self) -> ConfigDict:
        return {
            "paths": {
                "base_dir": self._base_dir or "",
                "docs_dir": os.path.join(_DEFAULT_APP_DIR, "docs"),
                "log_dir": os.path.join(_DEFAULT_APP_DIR, "logs"),
            },
            "store": {
                "extension": ".md",
                "backup_suffix": ".bak",
                "encoding": "utf-8",
            },
            "search": {
                "match_mode": "contains",
                "limit": 0,
                "context_radius": 30,
            },
            "logging": {
                "level": "WARNING",
                "file": "",
            },
            "projects": {},
        }

    @staticmethod
    def _load_file(path: str) -> ConfigDict:
        """Load a YAML or JSON config file."""
        ext = os.path.splitext(path)[1].lower()
        try:
            with open(path, encoding="utf-8") as f:
                if ext in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                elif ext == ".json":
                    data = json.load(f)
                else:
                    return {}
        # ValueError covers JSONDecodeError and impossible YAML dates
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return data

    def _update_dict(self, target: dict, source: dict) -> None:
        """Recursively merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _load_from_env(self) -> None:
        """Override config values from environment variables."""
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if not env_key.startswith(self.env_prefix):
                continue
            config_key = env_key[len(self.env_prefix) :].lower()
            key_parts = config_key.split("__")

            current = self.config_data
            for part in key_parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]
            current[key_parts[-1]] = env_value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "paths.docs_dir", "search.limit"
            default: Returned when key is not found.
        """
        parts = key_path.split(".")
        current = self.config_data
        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate dicts."""
        parts = key_path.split(".")
        current = self.config_data
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def validated(self) -> ReqlogConfig:
        """Validate ``config_data`` and return it as a typed ``ReqlogConfig``.

        Raises:
            ConfigurationError: A value has the wrong type or is out of range.
        """
        try:
            return ReqlogConfig.model_validate(self.config_data)
        except ValidationError as e:
            source = f" in {self.config_file}" if self.config_file else ""
            raise ConfigurationError(f"Invalid configuration{source}: {describe_validation_error(e)}") from e

    # -- Derived objects ------------------------------------------------------

    def get_base_dir(self) -> str | None:
        """Directory that ``~`` expands to, or None for the home directory."""
        return self.validated().paths.base_dir or None

    def store_config(self) -> StoreConfig:
        """Build a StoreConfig for FileDocStore."""
        store = self.validated().store
        return StoreConfig(
            base_dir=self.get_base_dir(),
            extension=store.extension,
            backup_suffix=store.backup_suffix,
            encoding=store.encoding,
        )

    def search_options(self) -> SearchOptions:
        """Build SearchOptions from the ``search`` section."""
        search = self.validated().search
        return SearchOptions(
            match_mode=search.match_mode,
            limit=search.limit,
            context_radius=search.context_radius,
        )

    def docs_dir(self) -> str:
        """Root directory for documents, with ``~`` expanded."""
        return str(expand_path(self.validated().paths.docs_dir, self.get_base_dir()))

    def project_dir(self, project_id: str) -> str:
        """Directory holding a project's documents.

        Uses the ``projects`` mapping when the id is configured there,
        otherwise ``<docs_dir>/<sanitized project id>`` (``untitled`` when
        nothing of the id survives sanitizing).
        """
        configured = self.validated().projects.get(project_id)
        if configured is not None:
            return str(expand_path(configured.path, self.get_base_dir()))
        return generate_default_project_path(os.path.join(self.docs_dir(), "{name}"), project_id)

    def log_file(self) -> str | None:
        """Log file path from ``logging.file``, expanded, or None."""
        value = self.validated().logging.file
        if not value:
            return None
        return str(expand_path(value, self.get_base_dir()))
