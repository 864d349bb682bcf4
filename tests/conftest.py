"""Shared test fixtures for reqlog."""

import os
import tempfile
from datetime import UTC, datetime, timedelta

import pytest

from reqlog.docs.models import Document, Item, ItemDraft


class FixedClock:
    """Clock that always returns the same instant."""

    def __init__(self, when: datetime):
        self.when = when

    def now(self) -> datetime:
        return self.when


class StepClock:
    """Clock that advances by ``step`` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def now(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


T0 = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "base_dir": tmp_dir,
            "docs_dir": "~/docs",
        },
        "search": {"limit": 5},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def clock():
    return StepClock(T0)


@pytest.fixture
def draft():
    return ItemDraft(
        title="Login fails on Safari",
        type="bug",
        domain="web",
        context="login page",
        priority="high",
        status="triage",
        tags=["auth", "api"],
        notes="Users see a blank page after submitting credentials.",
    )


def _make_item(doc_id: str, n: int, **overrides) -> Item:
    values = dict(
        id=f"{doc_id}-{n:02d}",
        title=f"Item {n}",
        type="task",
        domain="core",
        context="",
        priority="medium",
        status="backlog",
        tags=[],
        notes="",
        created_at=T0 + timedelta(minutes=n),
    )
    values.update(overrides)
    return Item(**values)


def _make_document(items=None, doc_id: str = "REQ-20250101-app", **overrides) -> Document:
    values = dict(
        doc_id=doc_id,
        title="App request log",
        project_id="app",
        created_at=T0,
        updated_at=T0,
        items=list(items or []),
    )
    values.update(overrides)
    return Document(**values)


@pytest.fixture
def make_item():
    """Factory for items with sensible defaults: make_item(doc_id, n, **overrides)."""
    return _make_item


@pytest.fixture
def make_document():
    """Factory for documents: make_document(items, doc_id=..., **overrides)."""
    return _make_document


@pytest.fixture
def fixed_clock():
    """Factory for clocks frozen at a given instant (default T0)."""
    return lambda when=T0: FixedClock(when)


@pytest.fixture
def log_messages():
    """Collect loguru messages at WARNING and above."""
    from loguru import logger

    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    yield messages
    logger.remove(handler_id)
