"""Thin wrapper around the ``az artifacts`` commands used for publishing.

The client never interprets command output beyond the exit status. Classifying
failures is left to :func:`artefact_publish.publisher.classify`.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from plumbum import local
from plumbum.commands import CommandNotFound

from .errors import FeedUnavailable

if typ.TYPE_CHECKING:
    from plumbum.machines.local import LocalCommand

__all__ = ["AzureArtifactsClient", "FeedClient", "FeedResponse"]


@dc.dataclass(frozen=True)
class FeedResponse:
    """Exit status and verbatim output streams of one feed command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the command exited with status zero."""
        return self.returncode == 0


class FeedClient(typ.Protocol):
    """Operations the publishing workflow needs from a remote feed."""

    def publish_argv(
        self, *, feed: str, name: str, version: str, description: str, path: Path
    ) -> list[str]:
        """Return the exact command line that publishes one package version."""
        ...

    def publish(
        self, *, feed: str, name: str, version: str, description: str, path: Path
    ) -> FeedResponse:
        """Publish ``path`` as ``name``/``version`` to ``feed``."""
        ...

    def is_authenticated(self) -> bool:
        """Return ``True`` when a logged-in session is present."""
        ...

    def feed_exists(self, feed: str) -> bool:
        """Return ``True`` when ``feed`` is reachable."""
        ...

    def create_feed(self, feed: str) -> FeedResponse:
        """Attempt to create ``feed``."""
        ...


class AzureArtifactsClient:
    """Publish universal packages with the Azure CLI DevOps extension.

    Parameters
    ----------
    organization : str
        Organisation URL, for example ``https://dev.azure.com/example/``.
    executable : str, default="az"
        Azure CLI executable looked up on ``PATH``.
    """

    def __init__(self, organization: str, *, executable: str = "az") -> None:
        self.organization = organization
        self.executable = executable
        self._command: LocalCommand | None = None

    def _az(self) -> LocalCommand:
        if self._command is None:
            try:
                self._command = local[self.executable]
            except CommandNotFound as exc:
                message = (
                    f"'{self.executable}' was not found on PATH; install the Azure "
                    "CLI to publish packages"
                )
                raise FeedUnavailable(message) from exc
        return self._command

    def _run(self, *args: str) -> FeedResponse:
        returncode, stdout, stderr = self._az()[args].run(retcode=None)
        return FeedResponse(returncode, stdout, stderr)

    def publish_argv(
        self, *, feed: str, name: str, version: str, description: str, path: Path
    ) -> list[str]:
        return [
            self.executable,
            "artifacts",
            "universal",
            "publish",
            "--organization",
            self.organization,
            "--feed",
            feed,
            "--name",
            name,
            "--version",
            version,
            "--description",
            description,
            "--path",
            str(path),
        ]

    def publish(
        self, *, feed: str, name: str, version: str, description: str, path: Path
    ) -> FeedResponse:
        argv = self.publish_argv(
            feed=feed, name=name, version=version, description=description, path=path
        )
        return self._run(*argv[1:])

    def is_authenticated(self) -> bool:
        """Return ``True`` when ``az account show`` finds a logged-in session."""
        return self._run("account", "show").succeeded

    def feed_exists(self, feed: str) -> bool:
        """Return ``True`` when ``feed`` is visible to the current session."""
        return self._run(
            "artifacts",
            "feed",
            "show",
            "--organization",
            self.organization,
            "--feed",
            feed,
        ).succeeded

    def create_feed(self, feed: str) -> FeedResponse:
        """Attempt to create ``feed`` in the organisation."""
        return self._run(
            "artifacts",
            "feed",
            "create",
            "--organization",
            self.organization,
            "--name",
            feed,
        )
