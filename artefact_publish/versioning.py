"""Date-derived semantic versions and their fallback candidates.

Azure Artifacts universal packages require lowercase SemVer 2.0 without build
metadata. Versions are derived from a calendar date: ``MAJOR`` is the year,
``MINOR`` the month, ``PATCH`` the day, and the prerelease segment the compact
time of day, e.g. ``2025.9.1-142355``.

The current time is always passed in (see :data:`Clock`) so that version
generation is deterministic under test.
"""

from __future__ import annotations

import dataclasses
import re
import typing as typ
from datetime import datetime

__all__ = [
    "FALLBACK_PATCH_INCREMENTS",
    "Clock",
    "SemanticVersion",
    "fallback_sequence",
    "plain_version",
    "primary_version",
    "system_clock",
    "time_tag",
    "timestamp_tag",
]

Clock = typ.Callable[[], datetime]

FALLBACK_PATCH_INCREMENTS = 5
FALLBACK_PRERELEASE_PREFIX = "a"

_IDENTIFIER = re.compile(r"^[0-9a-z-]+$")


def system_clock() -> datetime:
    """Return the local wall-clock time with its UTC offset."""
    return datetime.now().astimezone()


@dataclasses.dataclass(slots=True, frozen=True)
class SemanticVersion:
    """A lowercase SemVer version without build metadata.

    Examples
    --------
    >>> str(SemanticVersion(2025, 9, 1, "142355"))
    '2025.9.1-142355'
    >>> str(SemanticVersion(2025, 9, 8))
    '2025.9.8'
    """

    major: int
    minor: int
    patch: int
    prerelease: str | None = None

    def __post_init__(self) -> None:
        for label, number in (
            ("major", self.major),
            ("minor", self.minor),
            ("patch", self.patch),
        ):
            if isinstance(number, bool) or not isinstance(number, int) or number < 0:
                message = f"Version {label} must be a non-negative integer: {number!r}"
                raise ValueError(message)
        if self.prerelease is None:
            return
        normalised = self.prerelease.lower()
        if not normalised or not all(
            _IDENTIFIER.match(part) for part in normalised.split(".")
        ):
            message = f"Invalid prerelease segment: {self.prerelease!r}"
            raise ValueError(message)
        object.__setattr__(self, "prerelease", normalised)

    @property
    def base(self) -> SemanticVersion:
        """Return this version without its prerelease segment."""
        return dataclasses.replace(self, prerelease=None)

    def with_patch_offset(self, offset: int) -> SemanticVersion:
        """Return the base version with ``offset`` added to the patch."""
        return SemanticVersion(self.major, self.minor, self.patch + offset)

    def with_prerelease(self, prerelease: str) -> SemanticVersion:
        """Return the base version carrying ``prerelease``."""
        return dataclasses.replace(self, prerelease=prerelease)

    def __str__(self) -> str:
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{self.prerelease}" if self.prerelease else core


def time_tag(now: datetime) -> str:
    """Return the compact ``HHMMSS`` time of day used as a prerelease seed."""
    return now.strftime("%H%M%S")


def timestamp_tag(now: datetime) -> str:
    """Return the ``YYYYmmdd-HHMMSS`` tag used in archive file names."""
    return now.strftime("%Y%m%d-%H%M%S")


def plain_version(now: datetime) -> SemanticVersion:
    """Return ``year.month.day`` for ``now``; integer fields drop leading zeros."""
    return SemanticVersion(now.year, now.month, now.day)


def primary_version(now: datetime) -> SemanticVersion:
    """Return the first candidate: the date version with a time prerelease."""
    return plain_version(now).with_prerelease(time_tag(now))


def fallback_sequence(
    base: SemanticVersion, prerelease_seed: str
) -> typ.Iterator[SemanticVersion]:
    """Yield the fallback candidates tried after the feed rejects a version.

    The order is: ``base`` without prerelease, ``base`` with the patch raised by
    one to five, then ``base`` with prerelease ``"a" + prerelease_seed``.
    Candidates are built only when pulled, so a consumer that stops early never
    pays for the rest.

    Parameters
    ----------
    base : SemanticVersion
        Version whose major/minor/patch anchor the sequence. Any prerelease it
        carries is ignored.
    prerelease_seed : str
        Seed appended to the final prerelease candidate, usually the primary
        candidate's time tag.

    Examples
    --------
    >>> seq = fallback_sequence(SemanticVersion(2025, 9, 1, "142355"), "142355")
    >>> [str(v) for v in seq]  # doctest: +NORMALIZE_WHITESPACE
    ['2025.9.1', '2025.9.2', '2025.9.3', '2025.9.4', '2025.9.5', '2025.9.6',
     '2025.9.1-a142355']
    """
    anchor = base.base
    yield anchor
    for offset in range(1, FALLBACK_PATCH_INCREMENTS + 1):
        yield anchor.with_patch_offset(offset)
    yield anchor.with_prerelease(f"{FALLBACK_PRERELEASE_PREFIX}{prerelease_seed}")
