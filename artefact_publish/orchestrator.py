"""Drive publish attempts through the version fallback cascade.

The orchestrator tries the primary candidate first. When the feed rejects a
version string it pulls the next candidate from the fallback sequence; any
other failure ends the run immediately because a different version cannot fix
it.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import itertools
import shlex
import sys
import typing as typ

from .errors import CascadeExhausted, OtherPublishFailure
from .publisher import FailureKind, PublishAttempt, publish
from .versioning import fallback_sequence, plain_version, primary_version, time_tag

if typ.TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from .feed_client import FeedClient
    from .versioning import SemanticVersion

__all__ = [
    "PublishOrchestrator",
    "PublishRequest",
    "PublishResult",
    "PublishState",
    "plan_candidates",
]


class PublishState(enum.Enum):
    """States of a single orchestration run."""

    INIT = "init"
    TRYING_PRIMARY = "trying-primary"
    TRYING_FALLBACK = "trying-fallback"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    HARD_FAILURE = "hard-failure"


@dc.dataclass(frozen=True)
class PublishRequest:
    """Inputs shared by every attempt of one run."""

    feed: str
    name: str
    description: str
    path: Path


@dc.dataclass(frozen=True)
class PublishResult:
    """Summary of a run that reached :attr:`PublishState.SUCCESS`."""

    version: SemanticVersion
    attempts: tuple[PublishAttempt, ...]
    dry_run: bool = False

    @property
    def accepted(self) -> PublishAttempt:
        """Return the attempt the feed accepted."""
        return self.attempts[-1]


def plan_candidates(
    now: datetime, *, plain: bool = False
) -> tuple[SemanticVersion, typ.Iterator[SemanticVersion]]:
    """Return the primary candidate and the lazy fallbacks for ``now``.

    ``now`` is sampled once; the fallback prerelease reuses its time tag.
    """
    seed = time_tag(now)
    primary = plain_version(now) if plain else primary_version(now)
    return primary, fallback_sequence(primary, seed)


class PublishOrchestrator:
    """Publish one package, walking fallback versions on rejection.

    Parameters
    ----------
    client : FeedClient
        Remote feed client. Never called in dry-run mode.
    dry_run : bool, default=False
        When ``True``, print the publish command for the primary candidate and
        report success without contacting the feed.

    Attributes
    ----------
    state : PublishState
        Current state of the most recent run.
    attempts : list[PublishAttempt]
        Attempts issued by the most recent run, in order.
    """

    def __init__(self, client: FeedClient, *, dry_run: bool = False) -> None:
        self.client = client
        self.dry_run = dry_run
        self.state = PublishState.INIT
        self.attempts: list[PublishAttempt] = []

    def run(
        self,
        request: PublishRequest,
        primary: SemanticVersion,
        fallbacks: typ.Iterable[SemanticVersion],
    ) -> PublishResult:
        """Publish ``request`` under the first version the feed accepts.

        Parameters
        ----------
        request : PublishRequest
            Feed, package name, description and content path.
        primary : SemanticVersion
            First candidate attempted.
        fallbacks : Iterable[SemanticVersion]
            Candidates pulled one at a time after each rejection. Candidates
            rendering to an already attempted version are skipped.

        Returns
        -------
        PublishResult
            The accepted version and every attempt made.

        Raises
        ------
        OtherPublishFailure
            If an attempt fails for a reason other than a rejected version.
        CascadeExhausted
            If the feed rejected every candidate.
        FeedUnavailable
            If the feed client executable is missing.
        """
        self.attempts = []
        self.state = PublishState.TRYING_PRIMARY
        tried: set[str] = set()

        for candidate in itertools.chain((primary,), fallbacks):
            rendered = str(candidate)
            if rendered in tried:
                print(f"Skipping already attempted version {rendered}", file=sys.stderr)
                continue
            tried.add(rendered)
            if self.state is PublishState.TRYING_FALLBACK:
                print(f"Retrying with fallback version: {rendered}", file=sys.stderr)

            attempt = self._attempt(request, candidate)
            self.attempts.append(attempt)

            if attempt.outcome is FailureKind.SUCCESS:
                self.state = PublishState.SUCCESS
                return PublishResult(candidate, tuple(self.attempts), self.dry_run)
            if attempt.outcome is FailureKind.OTHER_FAILURE:
                self.state = PublishState.HARD_FAILURE
                message = (
                    f"Publishing {request.name} {rendered} to feed "
                    f"'{request.feed}' failed"
                )
                raise OtherPublishFailure(message, self.attempts)

            if self.state is PublishState.TRYING_PRIMARY:
                print(
                    "Detected invalid version error. Applying fallbacks...",
                    file=sys.stderr,
                )
            self.state = PublishState.TRYING_FALLBACK

        self.state = PublishState.EXHAUSTED
        tried_versions = ", ".join(str(attempt.version) for attempt in self.attempts)
        message = (
            f"Feed '{request.feed}' rejected every version candidate for "
            f"{request.name}: {tried_versions}"
        )
        raise CascadeExhausted(message, self.attempts)

    def _attempt(
        self, request: PublishRequest, version: SemanticVersion
    ) -> PublishAttempt:
        print(f"Attempting publish with version={version}", file=sys.stderr)
        if self.dry_run:
            argv = self.client.publish_argv(
                feed=request.feed,
                name=request.name,
                version=str(version),
                description=request.description,
                path=request.path,
            )
            print(f"[dry-run] {shlex.join(argv)}", file=sys.stderr)
            return PublishAttempt(version=version, outcome=FailureKind.SUCCESS)
        return publish(
            self.client,
            request.feed,
            request.name,
            version,
            request.description,
            request.path,
        )
