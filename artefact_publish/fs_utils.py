"""Filesystem helpers shared by the archive and staging pipelines."""

from __future__ import annotations

from pathlib import Path

from .errors import SourceMissing

__all__ = ["require_source_dir"]


def require_source_dir(source_dir: Path) -> Path:
    """Return ``source_dir`` when it is an existing, readable directory.

    Parameters
    ----------
    source_dir : Path
        Directory that is about to be archived or staged.

    Returns
    -------
    Path
        ``source_dir`` unchanged.

    Raises
    ------
    SourceMissing
        Raised when ``source_dir`` is absent, not a directory, or cannot be
        listed.
    """

    if not source_dir.is_dir():
        message = f"{source_dir} directory not found"
        raise SourceMissing(message)
    try:
        next(source_dir.iterdir(), None)
    except OSError as exc:
        message = f"{source_dir} is not readable: {exc}"
        raise SourceMissing(message) from exc
    return source_dir
