"""Shared helpers for the archive and publish test suites."""

from __future__ import annotations

import typing as typ
from pathlib import Path

from artefact_publish.archiver import ArchiveFormat
from artefact_publish.errors import BackendUnavailable
from artefact_publish.feed_client import AzureArtifactsClient, FeedResponse

__all__ = [
    "ORGANIZATION",
    "FakeBackend",
    "RecordingFeedClient",
    "accepted",
    "denied",
    "rejected",
    "write_script",
    "write_source_tree",
]

ORGANIZATION = "https://dev.azure.com/example/"


def write_source_tree(root: Path) -> Path:
    """Create ``root`` containing ``a.txt`` and ``b/c.txt``."""
    (root / "b").mkdir(parents=True)
    (root / "a.txt").write_text("alpha\n", encoding="utf-8")
    (root / "b" / "c.txt").write_text("charlie\n", encoding="utf-8")
    return root


def write_script(path: Path, body: str) -> Path:
    """Write an executable POSIX shell script at ``path`` and return it."""
    path.write_text(f"#!/bin/sh\n{body}", encoding="utf-8")
    path.chmod(0o755)
    return path


def accepted(log: str = "") -> FeedResponse:
    """Return a successful publish response."""
    return FeedResponse(0, log, "")


def rejected() -> FeedResponse:
    """Return the response Azure Artifacts gives for a bad version string."""
    return FeedResponse(1, "", "ERROR: The version provided is invalid.\n")


def denied() -> FeedResponse:
    """Return a failure that no other version could fix."""
    return FeedResponse(
        1, "", "ERROR: TF400813: The user is not authorized to access this resource.\n"
    )


class RecordingFeedClient:
    """Feed client double that replays canned responses and records calls.

    Publishes beyond the scripted responses are accepted.
    """

    def __init__(
        self,
        responses: typ.Iterable[FeedResponse] = (),
        *,
        authenticated: bool = True,
        feed_present: bool = True,
        create_succeeds: bool = True,
    ) -> None:
        self._responses = list(responses)
        self._argv = AzureArtifactsClient(ORGANIZATION)
        self.authenticated = authenticated
        self.feed_present = feed_present
        self.create_succeeds = create_succeeds
        self.published: list[str] = []
        self.published_paths: list[list[str]] = []
        self.created_feeds: list[str] = []

    def publish_argv(
        self, *, feed: str, name: str, version: str, description: str, path: Path
    ) -> list[str]:
        return self._argv.publish_argv(
            feed=feed, name=name, version=version, description=description, path=path
        )

    def publish(
        self, *, feed: str, name: str, version: str, description: str, path: Path
    ) -> FeedResponse:
        self.published.append(version)
        self.published_paths.append(
            sorted(p.relative_to(path).as_posix() for p in path.rglob("*.txt"))
        )
        return self._responses.pop(0) if self._responses else accepted()

    def is_authenticated(self) -> bool:
        return self.authenticated

    def feed_exists(self, feed: str) -> bool:
        return self.feed_present

    def create_feed(self, feed: str) -> FeedResponse:
        self.created_feeds.append(feed)
        return accepted() if self.create_succeeds else denied()


class FakeBackend:
    """Archive backend double with scripted availability and behaviour.

    ``payload`` is written to the destination on success; ``None`` writes
    nothing, modelling a tool that exits cleanly without producing a file.
    """

    def __init__(
        self,
        name: str,
        archive_format: ArchiveFormat,
        *,
        available: bool = True,
        fails: bool = False,
        payload: bytes | None = b"archive-bytes",
    ) -> None:
        self.name = name
        self.format = archive_format
        self.available = available
        self.fails = fails
        self.payload = payload
        self.calls: list[Path] = []

    def is_available(self) -> bool:
        return self.available

    def create(self, source_dir: Path, destination: Path) -> Path:
        self.calls.append(destination)
        if self.fails:
            message = f"{self.name} exited with status 2: simulated failure"
            raise BackendUnavailable(message)
        if self.payload is not None:
            destination.write_bytes(self.payload)
        return destination
