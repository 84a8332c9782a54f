"""Disposable staging copies of a source tree.

The staging area is the upload source for a publish run. It is rebuilt from
scratch on entry and removed on every exit path, including exceptions,
``KeyboardInterrupt`` and ``SIGTERM``.
"""

from __future__ import annotations

import contextlib
import shutil
import signal
import sys
import threading
import typing as typ
from pathlib import Path

from .config import DEFAULT_STAGING_DIR
from .errors import StagingError
from .fs_utils import require_source_dir

__all__ = ["staging_area", "with_staging"]

T = typ.TypeVar("T")

LISTING_MAX_DEPTH = 4


def _initialize_staging_dir(staging_dir: Path) -> None:
    if staging_dir.exists():
        shutil.rmtree(staging_dir)
    staging_dir.mkdir(parents=True)


def _require_disjoint(source: Path, staging_dir: Path) -> None:
    staging = staging_dir.resolve()
    if staging.is_relative_to(source) or source.is_relative_to(staging):
        message = (
            f"Staging directory {staging} overlaps source directory {source}; "
            "choose a staging location outside the source tree"
        )
        raise StagingError(message)


def _populate_staging_dir(source: Path, staging_dir: Path) -> None:
    try:
        _initialize_staging_dir(staging_dir)
        shutil.copytree(source, staging_dir / source.name)
    except OSError as exc:
        message = f"Failed to stage {source} into {staging_dir}: {exc}"
        raise StagingError(message) from exc


def _print_listing(root: Path, max_depth: int = LISTING_MAX_DEPTH) -> None:
    print(root, file=sys.stderr)
    for path in sorted(root.rglob("*")):
        if len(path.relative_to(root).parts) <= max_depth:
            print(path, file=sys.stderr)


def _remove_staging_dir(staging_dir: Path) -> bool:
    """Remove ``staging_dir``; return ``False`` and warn if anything remains."""
    try:
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
    except OSError as exc:
        print(
            f"::warning title=Cleanup Warning::Failed to remove {staging_dir}: {exc}",
            file=sys.stderr,
        )
    if staging_dir.exists():
        print(
            "::warning title=Cleanup Warning::Staging directory "
            f"{staging_dir} still exists (remove manually).",
            file=sys.stderr,
        )
        return False
    print("Cleanup complete.", file=sys.stderr)
    return True


def _raise_system_exit(signum: int, _frame: object) -> None:
    raise SystemExit(128 + signum)


@contextlib.contextmanager
def _terminate_as_exit() -> typ.Iterator[None]:
    """Turn ``SIGTERM`` into ``SystemExit`` so ``finally`` blocks run.

    Signal handlers can only be installed from the main thread; elsewhere the
    default disposition is left untouched.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, _raise_system_exit)
    try:
        yield
    finally:
        # ``None`` means the previous handler was not installed from Python.
        signal.signal(
            signal.SIGTERM, signal.SIG_DFL if previous is None else previous
        )


@contextlib.contextmanager
def staging_area(
    source_dir: Path, staging_dir: Path = DEFAULT_STAGING_DIR
) -> typ.Iterator[Path]:
    """Copy ``source_dir`` into a fresh ``staging_dir`` for the ``with`` body.

    The tree lands at ``staging_dir / <name of source_dir>``, with relative
    paths such as ``.`` resolved first; the yielded path is ``staging_dir``
    itself. Any previous content of ``staging_dir`` is removed first.

    Parameters
    ----------
    source_dir : Path
        Directory to copy.
    staging_dir : Path, default=Path(".publish_staging")
        Location of the staging area. Owned exclusively by this run.

    Yields
    ------
    Path
        The populated staging directory.

    Raises
    ------
    SourceMissing
        Raised when ``source_dir`` does not exist.
    StagingError
        Raised when ``staging_dir`` overlaps ``source_dir`` or the copy fails.

    Examples
    --------
    >>> with staging_area(Path("infra")) as staged:  # doctest: +SKIP
    ...     sorted(p.name for p in staged.iterdir())
    ['infra']
    """
    source = require_source_dir(source_dir).resolve()
    _require_disjoint(source, staging_dir)
    with _terminate_as_exit():
        try:
            _populate_staging_dir(source, staging_dir)
            _print_listing(staging_dir)
            yield staging_dir
        finally:
            print("Cleaning up staging directory...", file=sys.stderr)
            _remove_staging_dir(staging_dir)


def with_staging(
    source_dir: Path,
    body: typ.Callable[[Path], T],
    *,
    staging_dir: Path = DEFAULT_STAGING_DIR,
) -> T:
    """Run ``body`` with a staging copy of ``source_dir`` and return its result.

    The staging directory is gone once this returns or raises.
    """
    with staging_area(source_dir, staging_dir) as staged:
        return body(staged)
