"""Single publish attempts and the classification of their failures."""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from .feed_client import FeedClient
    from .versioning import SemanticVersion

__all__ = [
    "VERSION_REJECTED_MARKER",
    "FailureKind",
    "PublishAttempt",
    "classify",
    "publish",
]

# Azure Artifacts reports a rejected version string with this phrase.
VERSION_REJECTED_MARKER = "version provided is invalid"


class FailureKind(enum.Enum):
    """Outcome of a single publish attempt."""

    SUCCESS = "success"
    VERSION_REJECTED = "version-rejected"
    OTHER_FAILURE = "other-failure"


@dc.dataclass(frozen=True)
class PublishAttempt:
    """Record of one call to the feed, with its output kept verbatim."""

    version: SemanticVersion
    outcome: FailureKind
    raw_log: str = ""
    raw_error: str = ""


def classify(raw_error_text: str) -> FailureKind:
    """Return the failure kind described by the feed's error output.

    Only a rejected version string is worth retrying with another candidate;
    everything else (authentication, network, permissions) is terminal.

    Examples
    --------
    >>> classify("ERROR: The Version provided is invalid.")
    <FailureKind.VERSION_REJECTED: 'version-rejected'>
    >>> classify("ERROR: Please run 'az login' to setup account.")
    <FailureKind.OTHER_FAILURE: 'other-failure'>
    """
    if VERSION_REJECTED_MARKER in raw_error_text.casefold():
        return FailureKind.VERSION_REJECTED
    return FailureKind.OTHER_FAILURE


def publish(
    client: FeedClient,
    feed: str,
    name: str,
    version: SemanticVersion,
    description: str,
    path: Path,
) -> PublishAttempt:
    """Invoke the feed's publish operation once and classify the result.

    Parameters
    ----------
    client : FeedClient
        Remote feed client performing the upload.
    feed : str
        Feed receiving the package.
    name : str
        Package name.
    version : SemanticVersion
        Candidate version for this attempt.
    description : str
        Package description stored by the feed.
    path : Path
        Directory uploaded as the package content.

    Returns
    -------
    PublishAttempt
        The attempt with its classified outcome and captured output.

    Raises
    ------
    FeedUnavailable
        If the client executable cannot be found.
    """
    response = client.publish(
        feed=feed,
        name=name,
        version=str(version),
        description=description,
        path=path,
    )
    outcome = (
        FailureKind.SUCCESS if response.succeeded else classify(response.stderr)
    )
    return PublishAttempt(
        version=version,
        outcome=outcome,
        raw_log=response.stdout,
        raw_error=response.stderr,
    )
