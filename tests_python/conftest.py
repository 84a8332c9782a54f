"""Shared fixtures for the archive and publish test suites."""

from __future__ import annotations

import typing as typ
from datetime import datetime
from pathlib import Path

import pytest

from publish_test_helpers import RecordingFeedClient, write_source_tree

FIXED_NOW = datetime(2025, 9, 8, 7, 5, 9)


@pytest.fixture
def fixed_now() -> datetime:
    """Return the instant every deterministic test is pinned to."""
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now: datetime) -> typ.Callable[[], datetime]:
    """Return a clock that always reports ``fixed_now``."""
    return lambda: fixed_now


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated working directory and ``chdir`` into it."""
    root = tmp_path / "workspace"
    root.mkdir()
    monkeypatch.chdir(root)
    for name in (
        "PUBLISH_ORGANIZATION",
        "PUBLISH_FEED",
        "FORCE_PLAIN_VERSION",
        "CREATE_FEED_IF_MISSING",
    ):
        monkeypatch.delenv(name, raising=False)
    return root


@pytest.fixture
def source_dir(workspace: Path) -> Path:
    """Populate ``workspace/infra`` with ``a.txt`` and ``b/c.txt``."""
    return write_source_tree(workspace / "infra")


@pytest.fixture
def feed_client() -> RecordingFeedClient:
    """Return a feed client that accepts every publish."""
    return RecordingFeedClient()
