"""Shared setup logic for CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any

import click
import yaml

from reqlog.core.config import Config
from reqlog.core.exceptions import InvalidInputError, ReqlogError
from reqlog.core.utils.logging import setup_logging
from reqlog.docs.store import FileDocStore

REQLOG_DIR = Path.home() / ".reqlog"
CONFIG_PATH = REQLOG_DIR / "config.yaml"


def load_config(config_path: str | None = None) -> Config:
    """Load and validate config from ``config_path`` or ~/.reqlog/config.yaml."""
    with domain_errors():
        config = Config(config_file=config_path or str(CONFIG_PATH))
        config.validated()
        return config


def setup_cli_logging(config: Config, verbose: bool = False) -> None:
    level = "DEBUG" if verbose else config.validated().logging.level
    setup_logging(level=level, log_file=config.log_file())


def build_store(config: Config) -> FileDocStore:
    return FileDocStore(config.store_config())


def resolve_directory(config: Config, directory: str | None, project: str | None) -> str:
    """Pick the directory a command works in.

    Explicit directory wins, then the project's directory, then docs_dir.
    """
    if directory:
        return directory
    with domain_errors():
        if project:
            return config.project_dir(project)
        return config.docs_dir()


@contextmanager
def domain_errors() -> Iterator[None]:
    """Turn reqlog errors into click errors (exit code 1)."""
    try:
        yield
    except ReqlogError as e:
        raise click.ClickException(str(e)) from e


def read_structured_input(stream: IO[str]) -> Any:
    """Decode JSON or YAML from an open text stream.

    JSON is tried first; anything that is not JSON is loaded as YAML.
    """
    name = getattr(stream, "name", "<stdin>")
    text = stream.read()
    if not text.strip():
        raise InvalidInputError(f"Input {name} is empty")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return yaml.safe_load(text)
    except (yaml.YAMLError, ValueError) as e:
        raise InvalidInputError(f"Input {name} is neither valid JSON nor YAML: {e}") from e
