"""Exception hierarchy shared by the packaging and publishing workflows.

Every error carries the process exit code reported by the command-line entry
points, so callers can ``return exc.exit_code`` without a lookup table.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from .publisher import PublishAttempt

__all__ = [
    "ArchiveError",
    "BackendUnavailable",
    "CascadeExhausted",
    "ConfigError",
    "DeletionFailed",
    "FeedUnavailable",
    "NoBackendAvailable",
    "OtherPublishFailure",
    "PublishFailure",
    "PublishToolError",
    "SourceMissing",
    "StagingError",
    "VerificationFailed",
]

EXIT_UNAVAILABLE = 1
EXIT_ARTEFACT = 2
EXIT_PUBLISH = 3


class PublishToolError(RuntimeError):
    """Base class for failures surfaced to the command-line entry points."""

    exit_code: typ.ClassVar[int] = EXIT_UNAVAILABLE
    title: typ.ClassVar[str] = "Publish Tool Failure"


class ConfigError(PublishToolError):
    """Raised when configuration values are missing or malformed."""

    title = "Configuration Error"


class SourceMissing(PublishToolError):
    """Raised when the source directory does not exist or is unreadable."""

    title = "Source Missing"


class StagingError(PublishToolError):
    """Raised when the staging copy of the source tree cannot be built."""

    title = "Staging Failed"


class ArchiveError(PublishToolError):
    """Base class for archive creation, verification, and deletion failures."""

    title = "Archive Failure"


class BackendUnavailable(ArchiveError):
    """Raised by a backend that cannot produce an archive; the next is tried."""


class NoBackendAvailable(ArchiveError):
    """Raised when every archive backend was unavailable or failed."""


class VerificationFailed(ArchiveError):
    """Raised when a reported archive is missing or empty on disk."""

    exit_code = EXIT_ARTEFACT
    title = "Archive Verification Failed"


class DeletionFailed(ArchiveError):
    """Raised when an archive still exists after deletion, leaking it."""

    exit_code = EXIT_ARTEFACT
    title = "Archive Deletion Failed"


class FeedUnavailable(PublishToolError):
    """Raised when the feed client executable cannot be located."""

    title = "Feed Unavailable"


class PublishFailure(PublishToolError):
    """Base class for terminal publish failures.

    Parameters
    ----------
    message : str
        Human readable summary.
    attempts : Sequence[PublishAttempt]
        Every attempt issued during the run, in order. The last attempt holds
        the diagnostic text that ended the cascade.
    """

    exit_code = EXIT_PUBLISH
    title = "Publish Failure"

    def __init__(
        self, message: str, attempts: typ.Sequence[PublishAttempt] = ()
    ) -> None:
        super().__init__(message)
        self.attempts = tuple(attempts)

    @property
    def raw_error(self) -> str:
        """Return the captured stderr of the final attempt verbatim."""
        return self.attempts[-1].raw_error if self.attempts else ""

    @property
    def raw_log(self) -> str:
        """Return the captured stdout of the final attempt verbatim."""
        return self.attempts[-1].raw_log if self.attempts else ""


class OtherPublishFailure(PublishFailure):
    """Raised on a failure that a different version cannot fix."""

    title = "Publish Failed"


class CascadeExhausted(PublishFailure):
    """Raised once the feed rejected every version candidate."""

    title = "Version Cascade Exhausted"
