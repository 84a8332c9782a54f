"""Create, verify, preview, and delete compressed archives of a directory.

Backends are tried in priority order: ``tar.gz`` first, ``zip`` as the
fallback. A backend whose tool is missing is skipped silently; one whose tool
fails is reported and skipped. The first archive produced is verified on disk
before it is handed to the caller, who must delete it with
:func:`delete_archive`.

Examples
--------
Archive ``infra`` and remove the result after previewing it::

    from pathlib import Path
    from artefact_publish.archiver import ArchiveRequest, package_directory

    package_directory(
        ArchiveRequest(Path("infra"), "infra-archive", "20250901-142355")
    )
"""

from __future__ import annotations

import dataclasses as dc
import enum
import sys
import tarfile
import typing as typ
import zipfile
from pathlib import Path

from plumbum import local
from plumbum.commands import CommandNotFound

from .errors import (
    BackendUnavailable,
    DeletionFailed,
    NoBackendAvailable,
    VerificationFailed,
)
from .fs_utils import require_source_dir

__all__ = [
    "DEFAULT_BACKENDS",
    "ArchiveBackend",
    "ArchiveFormat",
    "ArchiveRequest",
    "ArchiveResult",
    "TarGzBackend",
    "ZipBackend",
    "create_archive",
    "delete_archive",
    "list_entries",
    "package_directory",
    "preview_entries",
]

PREVIEW_LIMIT = 10


class ArchiveFormat(enum.Enum):
    """Supported archive formats, valued by their file suffix."""

    TAR_GZ = ".tar.gz"
    ZIP = ".zip"

    @property
    def suffix(self) -> str:
        """Return the file suffix for this format."""
        return self.value


@dc.dataclass(frozen=True)
class ArchiveRequest:
    """Describe the archive to build.

    Attributes
    ----------
    source_dir : Path
        Directory to archive. Entries are rooted at its name.
    base_name : str
        Archive file name prefix.
    timestamp : str
        Tag appended to ``base_name``, e.g. ``20250901-142355``.
    output_dir : Path
        Directory receiving the archive.
    """

    source_dir: Path
    base_name: str
    timestamp: str
    output_dir: Path = Path()

    def destination(self, archive_format: ArchiveFormat) -> Path:
        """Return the absolute archive path for ``archive_format``."""
        name = f"{self.base_name}-{self.timestamp}{archive_format.suffix}"
        return (self.output_dir / name).resolve()


@dc.dataclass(frozen=True)
class ArchiveResult:
    """A verified archive owned by the caller until it is deleted."""

    path: Path
    format: ArchiveFormat
    size_bytes: int


class ArchiveBackend(typ.Protocol):
    """One way of producing an archive."""

    name: str
    format: ArchiveFormat

    def is_available(self) -> bool:
        """Return ``True`` when the backend's tool can be invoked."""
        ...

    def create(self, source_dir: Path, destination: Path) -> Path:
        """Archive ``source_dir`` into ``destination`` and return its path.

        Raises :class:`BackendUnavailable` when the tool fails.
        """
        ...


class _CommandBackend:
    """Archive backend driven by an external executable through plumbum.

    Subclasses set ``flags``; the command line is ``flags``, then the
    destination, then the source directory name.
    """

    name: str
    format: ArchiveFormat
    flags: typ.ClassVar[tuple[str, ...]]

    def __init__(self, executable: str) -> None:
        self.executable = executable

    def is_available(self) -> bool:
        try:
            local.which(self.executable)
        except CommandNotFound:
            return False
        return True

    def _arguments(self, source_name: str, destination: Path) -> list[str]:
        return [*self.flags, str(destination), source_name]

    def create(self, source_dir: Path, destination: Path) -> Path:
        try:
            command = local[self.executable]
        except CommandNotFound as exc:
            message = f"{self.executable} is not available in PATH"
            raise BackendUnavailable(message) from exc

        source = source_dir.resolve()
        with local.cwd(str(source.parent)):
            returncode, _stdout, stderr = command[
                self._arguments(source.name, destination)
            ].run(retcode=None)
        if returncode != 0:
            destination.unlink(missing_ok=True)
            detail = stderr.strip() or "no diagnostic output"
            message = f"{self.executable} exited with status {returncode}: {detail}"
            raise BackendUnavailable(message)
        return destination


class TarGzBackend(_CommandBackend):
    """Create ``.tar.gz`` archives with ``tar -czf``."""

    name = "tar"
    format = ArchiveFormat.TAR_GZ
    flags = ("-czf",)

    def __init__(self, executable: str = "tar") -> None:
        super().__init__(executable)


class ZipBackend(_CommandBackend):
    """Create ``.zip`` archives with ``zip -rq``."""

    name = "zip"
    format = ArchiveFormat.ZIP
    flags = ("-rq",)

    def __init__(self, executable: str = "zip") -> None:
        super().__init__(executable)


DEFAULT_BACKENDS: tuple[ArchiveBackend, ...] = (TarGzBackend(), ZipBackend())


def _verify(path: Path, archive_format: ArchiveFormat) -> ArchiveResult:
    if not path.is_file():
        message = f"Archive {path} not found after creation"
        raise VerificationFailed(message)
    size = path.stat().st_size
    if size <= 0:
        message = f"Archive {path} is empty"
        raise VerificationFailed(message)
    return ArchiveResult(path=path, format=archive_format, size_bytes=size)


def create_archive(
    request: ArchiveRequest,
    backends: typ.Sequence[ArchiveBackend] = DEFAULT_BACKENDS,
) -> ArchiveResult:
    """Build and verify an archive of ``request.source_dir``.

    Parameters
    ----------
    request : ArchiveRequest
        Source directory and naming inputs.
    backends : Sequence[ArchiveBackend]
        Backends in priority order.

    Returns
    -------
    ArchiveResult
        The verified archive. The caller must pass it to
        :func:`delete_archive`.

    Raises
    ------
    SourceMissing
        If the source directory does not exist.
    NoBackendAvailable
        If every backend is unavailable or failed.
    VerificationFailed
        If the first successful backend left no file or an empty one.
    """
    require_source_dir(request.source_dir)
    request.output_dir.mkdir(parents=True, exist_ok=True)

    failures: list[str] = []
    for backend in backends:
        if not backend.is_available():
            failures.append(f"{backend.name}: not available in PATH")
            continue
        destination = request.destination(backend.format)
        try:
            path = backend.create(request.source_dir, destination)
        except BackendUnavailable as exc:
            print(
                f"{backend.name} command present but failed, attempting next "
                f"backend: {exc}",
                file=sys.stderr,
            )
            failures.append(f"{backend.name}: {exc}")
            continue
        return _verify(path, backend.format)

    names = " or ".join(backend.name for backend in backends) or "any backend"
    message = f"Failed to create archive with {names}"
    if failures:
        message = f"{message} ({'; '.join(failures)})"
    raise NoBackendAvailable(message)


def list_entries(result: ArchiveResult) -> list[str]:
    """Return the file entries stored in ``result``, in archive order."""
    if result.format is ArchiveFormat.TAR_GZ:
        with tarfile.open(result.path, "r:gz") as archive:
            return [member.name for member in archive.getmembers() if member.isfile()]
    with zipfile.ZipFile(result.path) as archive:
        return [info.filename for info in archive.infolist() if not info.is_dir()]


def preview_entries(result: ArchiveResult, limit: int = PREVIEW_LIMIT) -> list[str]:
    """Print and return up to ``limit`` entries of ``result``.

    The preview is informational only; read errors are reported and an empty
    list is returned.
    """
    try:
        entries = list_entries(result)[:limit]
    except (OSError, EOFError, tarfile.TarError, zipfile.BadZipFile) as exc:
        print(
            f"::warning title=Archive Preview::Could not list {result.path}: {exc}",
            file=sys.stderr,
        )
        return []
    label = "tar" if result.format is ArchiveFormat.TAR_GZ else "zip"
    print(f"Archive contents ({label}):")
    for entry in entries:
        print(f"  {entry}")
    return entries


def delete_archive(result: ArchiveResult) -> None:
    """Remove ``result`` from disk.

    Deleting an archive that is already gone is a no-op.

    Raises
    ------
    DeletionFailed
        If the archive still exists after the delete call.
    """
    error: OSError | None = None
    try:
        result.path.unlink(missing_ok=True)
    except OSError as exc:
        error = exc
    if result.path.exists():
        message = f"Failed to delete {result.path}"
        if error is not None:
            message = f"{message}: {error}"
        raise DeletionFailed(message) from error


def package_directory(
    request: ArchiveRequest,
    backends: typ.Sequence[ArchiveBackend] = DEFAULT_BACKENDS,
) -> ArchiveResult:
    """Create, verify, preview, and delete an archive of ``request.source_dir``.

    Returns the (now deleted) :class:`ArchiveResult` for reporting.
    """
    result = create_archive(request, backends)
    try:
        print(f"Created archive: {result.path.name} (size: {result.size_bytes} bytes)")
        preview_entries(result)
    finally:
        print(f"Deleting archive {result.path.name}...")
        delete_archive(result)
    print("Archive verification complete and file removed successfully.")
    return result
