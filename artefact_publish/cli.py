"""Command-line entry points for archiving and publishing a directory.

Examples
--------
Archive ``infra``, list the archive, and delete it again::

    package-infra infra-archive --source-dir infra

Inspect the publish command for ``infra`` without uploading anything::

    export PUBLISH_ORGANIZATION="https://dev.azure.com/example/"
    export PUBLISH_FEED="terraform-temporary-plans"
    publish-infra my-first-package --dry-run

Environment toggles
-------------------
``FORCE_PLAIN_VERSION=1``
    Start with ``year.month.day`` instead of ``year.month.day-HHMMSS``.
``CREATE_FEED_IF_MISSING=1``
    Try to create the feed when it cannot be found.

Both toggles are parsed strictly: ``1``, ``true``, ``yes`` and ``on`` enable
them; an empty value, ``0``, ``false``, ``no`` and ``off`` disable them. Any
other value, such as ``2``, is a configuration error (exit status 1) rather
than being treated as "set".
"""

from __future__ import annotations

import os
import sys
import typing as typ
from pathlib import Path

import cyclopts

from .archiver import DEFAULT_BACKENDS, ArchiveRequest, package_directory
from .config import (
    DEFAULT_ARCHIVE_BASE_NAME,
    DEFAULT_SOURCE_DIR,
    ArchiveConfig,
    PublishConfig,
    load_publish_config,
)
from .errors import ConfigError, PublishFailure, PublishToolError
from .feed_client import AzureArtifactsClient
from .fs_utils import require_source_dir
from .orchestrator import PublishOrchestrator, PublishRequest, plan_candidates
from .staging import staging_area
from .versioning import system_clock, timestamp_tag

if typ.TYPE_CHECKING:
    from datetime import datetime

    from .archiver import ArchiveBackend
    from .feed_client import FeedClient
    from .orchestrator import PublishResult
    from .versioning import Clock

__all__ = [
    "package_app",
    "package_infra",
    "publish_app",
    "publish_infra",
]

LOG_PREVIEW_LINES = 30

package_app = cyclopts.App(
    name="package-infra",
    help="Archive a directory (tar.gz preferred, zip fallback), verify it, then delete it.",
)
publish_app = cyclopts.App(
    name="publish-infra",
    help="Publish a directory as an Azure Artifacts universal package.",
)


def _report_error(exc: PublishToolError) -> int:
    print(f"::error title={exc.title}::{exc}", file=sys.stderr)
    return exc.exit_code


def package_infra(
    config: ArchiveConfig,
    *,
    clock: Clock = system_clock,
    backends: typ.Sequence[ArchiveBackend] = DEFAULT_BACKENDS,
) -> int:
    """Archive ``config.source_dir``, verify and preview it, then delete it.

    Returns
    -------
    int
        ``0`` on success, ``1`` when the source or every backend is missing,
        ``2`` when verification or deletion failed.
    """
    request = ArchiveRequest(
        source_dir=config.source_dir,
        base_name=config.base_name,
        timestamp=timestamp_tag(clock()),
        output_dir=config.output_dir,
    )
    try:
        package_directory(request, backends)
    except PublishToolError as exc:
        return _report_error(exc)
    return 0


def describe_snapshot(source_dir: Path, now: datetime) -> str:
    """Return the package description recorded by the feed."""
    return (
        f"Universal package snapshot of '{source_dir.resolve().name}' folder on "
        f"{now.isoformat(timespec='seconds')}"
    )


def _preflight(client: FeedClient, config: PublishConfig) -> None:
    if not client.is_authenticated():
        print(
            "::warning title=Not Logged In::Not logged into Azure "
            "(az account show failed). Run 'az login' if publish fails.",
            file=sys.stderr,
        )
    if client.feed_exists(config.feed):
        return
    print(f"Info: Feed '{config.feed}' not found or inaccessible.", file=sys.stderr)
    if not config.create_feed_if_missing:
        return
    print(f"Attempting to create feed '{config.feed}'...", file=sys.stderr)
    if client.create_feed(config.feed).succeeded:
        print(f"Feed '{config.feed}' created.", file=sys.stderr)
    else:
        print(
            f"::warning title=Feed Creation Failed::Failed to create feed "
            f"'{config.feed}'. Continuing; publish will likely fail.",
            file=sys.stderr,
        )


def _prefixed(text: str, prefix: str, limit: int | None = None) -> str:
    lines = text.splitlines()[:limit]
    return "\n".join(f"{prefix}{line}" for line in lines)


def _report_success(result: PublishResult) -> None:
    print(f"Publish succeeded for version {result.version}.", file=sys.stderr)
    if log := _prefixed(result.accepted.raw_log, "LOG: ", LOG_PREVIEW_LINES):
        print(log, file=sys.stderr)


def _report_publish_failure(exc: PublishFailure) -> int:
    print(
        f"::error title={exc.title}::{exc} after {len(exc.attempts)} attempt(s)",
        file=sys.stderr,
    )
    if details := _prefixed(exc.raw_error, "FINAL_ERR: "):
        print(details, file=sys.stderr)
    return exc.exit_code


def publish_infra(
    config: PublishConfig,
    *,
    client: FeedClient | None = None,
    clock: Clock = system_clock,
) -> int:
    """Stage ``config.source_dir`` and publish it through the version cascade.

    Parameters
    ----------
    config : PublishConfig
        Resolved publish settings.
    client : FeedClient | None
        Feed client; defaults to :class:`AzureArtifactsClient` for
        ``config.organization``.
    clock : Clock
        Time source sampled once for the version and description.

    Returns
    -------
    int
        ``0`` on success, ``1`` when the source or feed tooling is missing,
        ``3`` when publishing failed or every version was rejected.
    """
    feed_client = client or AzureArtifactsClient(config.organization)
    now = clock()
    primary, fallbacks = plan_candidates(now, plain=config.force_plain_version)
    orchestrator = PublishOrchestrator(feed_client, dry_run=config.dry_run)

    try:
        require_source_dir(config.source_dir)
        if not config.dry_run:
            _preflight(feed_client, config)
        print(
            f"Publishing universal package: feed={config.feed} "
            f"name={config.package_name} version={primary} "
            f"(dry-run={int(config.dry_run)})",
            file=sys.stderr,
        )
        with staging_area(config.source_dir, config.staging_dir) as staged:
            request = PublishRequest(
                feed=config.feed,
                name=config.package_name,
                description=describe_snapshot(config.source_dir, now),
                path=staged,
            )
            result = orchestrator.run(request, primary, fallbacks)
    except PublishFailure as exc:
        return _report_publish_failure(exc)
    except PublishToolError as exc:
        return _report_error(exc)

    _report_success(result)
    print("Done.", file=sys.stderr)
    return 0


@package_app.default
def package_cli(
    base_name: str = DEFAULT_ARCHIVE_BASE_NAME,
    *,
    source_dir: Path = DEFAULT_SOURCE_DIR,
    output_dir: Path = Path(),
) -> int:
    """Archive ``source_dir`` as ``BASE_NAME-<timestamp>`` and remove it again.

    Parameters
    ----------
    base_name:
        Archive file name prefix.
    source_dir:
        Directory to archive.
    output_dir:
        Directory receiving the temporary archive.
    """
    return package_infra(
        ArchiveConfig(source_dir=source_dir, base_name=base_name, output_dir=output_dir)
    )


@publish_app.default
def publish_cli(
    base_name: str | None = None,
    *,
    dry_run: bool = False,
    config_file: Path | None = None,
    source_dir: Path | None = None,
    staging_dir: Path | None = None,
    organization: str | None = None,
    feed: str | None = None,
) -> int:
    """Publish ``source_dir`` as universal package ``BASE_NAME``.

    Parameters
    ----------
    base_name:
        Package name; defaults to ``my-first-package``.
    dry_run:
        Print the publish command instead of running it.
    config_file:
        Optional TOML file with a ``[publish]`` table.
    source_dir:
        Directory to publish.
    staging_dir:
        Disposable staging location used as the upload source.
    organization:
        Azure DevOps organisation URL.
    feed:
        Universal package feed name.
    """
    try:
        config = load_publish_config(
            config_file,
            environ=os.environ,
            package_name=base_name,
            dry_run=True if dry_run else None,
            source_dir=source_dir,
            staging_dir=staging_dir,
            organization=organization,
            feed=feed,
        )
    except FileNotFoundError as exc:
        return _report_error(ConfigError(str(exc)))
    except ConfigError as exc:
        return _report_error(exc)
    return publish_infra(config)
