"""Behavioural tests for the command-line entry points."""

from __future__ import annotations

import shutil
import typing as typ
from datetime import datetime
from pathlib import Path

import pytest

from artefact_publish import cli
from artefact_publish.archiver import ArchiveFormat, TarGzBackend, list_entries
from artefact_publish.config import ArchiveConfig, PublishConfig
from publish_test_helpers import (
    ORGANIZATION,
    FakeBackend,
    RecordingFeedClient,
    accepted,
    denied,
    rejected,
)

Clock = typ.Callable[[], datetime]


def make_publish_config(workspace: Path, **changes: object) -> PublishConfig:
    """Return a publish configuration rooted in ``workspace``."""
    values: dict[str, object] = {
        "organization": ORGANIZATION,
        "feed": "plans",
        "source_dir": workspace / "infra",
        "staging_dir": workspace / ".publish_staging",
        "package_name": "my-first-package",
    }
    return PublishConfig(**(values | changes))  # type: ignore[arg-type]


def test_package_infra_succeeds_and_leaves_nothing_behind(
    source_dir: Path, workspace: Path, clock: Clock
) -> None:
    """The archive command creates, verifies and removes its archive."""
    backend = FakeBackend("tar", ArchiveFormat.TAR_GZ)

    code = cli.package_infra(
        ArchiveConfig(source_dir=source_dir, output_dir=workspace),
        clock=clock,
        backends=[backend],
    )

    assert code == 0
    assert [path.name for path in backend.calls] == [
        "infra-archive-20250908-070509.tar.gz"
    ]
    assert not backend.calls[0].exists(), "archive must be deleted"


@pytest.mark.parametrize(
    ("backends", "expected"),
    [
        ([FakeBackend("tar", ArchiveFormat.TAR_GZ, available=False)], 1),
        ([FakeBackend("tar", ArchiveFormat.TAR_GZ, payload=b"")], 2),
    ],
)
def test_package_infra_exit_codes(
    source_dir: Path,
    workspace: Path,
    clock: Clock,
    backends: list[FakeBackend],
    expected: int,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Missing backends and failed verification map to distinct exit codes."""
    code = cli.package_infra(
        ArchiveConfig(source_dir=source_dir, output_dir=workspace),
        clock=clock,
        backends=backends,
    )

    assert code == expected
    assert "::error title=" in capsys.readouterr().err


def test_package_infra_missing_source(workspace: Path, clock: Clock) -> None:
    """A missing source directory exits with status 1."""
    code = cli.package_infra(
        ArchiveConfig(source_dir=workspace / "infra"), clock=clock, backends=[]
    )

    assert code == 1


def test_publish_infra_success_reports_log(
    source_dir: Path, workspace: Path, clock: Clock, capsys: pytest.CaptureFixture[str]
) -> None:
    """A publish accepted on the base version reports it and cleans up."""
    client = RecordingFeedClient([rejected(), accepted("line one\nline two")])
    config = make_publish_config(workspace)

    code = cli.publish_infra(config, client=client, clock=clock)

    assert code == 0
    assert client.published == ["2025.9.8-070509", "2025.9.8"]
    assert client.published_paths[0] == ["infra/a.txt", "infra/b/c.txt"], (
        "the staged tree should be uploaded"
    )
    assert not config.staging_dir.exists(), "staging must be removed"
    err = capsys.readouterr().err
    assert "Publish succeeded for version 2025.9.8." in err
    assert "LOG: line two" in err


def test_publish_infra_hard_failure(
    source_dir: Path, workspace: Path, clock: Clock, capsys: pytest.CaptureFixture[str]
) -> None:
    """Non-version failures exit with status 3 and echo the raw error."""
    client = RecordingFeedClient([denied()])
    config = make_publish_config(workspace)

    code = cli.publish_infra(config, client=client, clock=clock)

    assert code == 3
    assert client.published == ["2025.9.8-070509"]
    assert not config.staging_dir.exists(), "staging must be removed on failure"
    err = capsys.readouterr().err
    assert "::error title=Publish Failed::" in err
    assert "FINAL_ERR: ERROR: TF400813" in err


def test_publish_infra_exhausted(
    source_dir: Path, workspace: Path, clock: Clock
) -> None:
    """Rejecting every candidate exits with status 3."""
    client = RecordingFeedClient([rejected()] * 8)
    config = make_publish_config(workspace)

    assert cli.publish_infra(config, client=client, clock=clock) == 3
    assert len(client.published) == 8
    assert not config.staging_dir.exists()


def test_publish_infra_missing_source(workspace: Path, clock: Clock) -> None:
    """A missing source directory exits with status 1 before any publish."""
    client = RecordingFeedClient()

    code = cli.publish_infra(make_publish_config(workspace), client=client, clock=clock)

    assert code == 1
    assert client.published == []


def test_publish_infra_relative_source_dir(
    source_dir: Path,
    workspace: Path,
    clock: Clock,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Publishing ``.`` stages the current directory under its own name."""
    client = RecordingFeedClient()
    monkeypatch.chdir(source_dir)
    config = make_publish_config(workspace, source_dir=Path("."))

    assert cli.publish_infra(config, client=client, clock=clock) == 0
    assert client.published_paths == [["infra/a.txt", "infra/b/c.txt"]]
    assert "snapshot of 'infra' folder" in cli.describe_snapshot(Path("."), clock())


def test_publish_infra_staging_inside_source_is_an_error(
    source_dir: Path,
    workspace: Path,
    clock: Clock,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A staging directory inside the source tree exits 1 with an annotation."""
    client = RecordingFeedClient()
    monkeypatch.chdir(source_dir)
    config = make_publish_config(
        workspace,
        source_dir=Path("."),
        staging_dir=Path(".publish_staging"),
        dry_run=True,
    )

    assert cli.publish_infra(config, client=client, clock=clock) == 1
    assert client.published == []
    assert "::error title=Staging Failed::" in capsys.readouterr().err
    assert not (source_dir / ".publish_staging").exists()


def test_publish_infra_preflight_creates_missing_feed(
    source_dir: Path, workspace: Path, clock: Clock, capsys: pytest.CaptureFixture[str]
) -> None:
    """Pre-flight warns when logged out and creates the feed when asked."""
    client = RecordingFeedClient(authenticated=False, feed_present=False)
    config = make_publish_config(workspace, create_feed_if_missing=True)

    assert cli.publish_infra(config, client=client, clock=clock) == 0
    assert client.created_feeds == ["plans"]
    err = capsys.readouterr().err
    assert "::warning title=Not Logged In::" in err
    assert "Feed 'plans' created." in err


def test_publish_infra_feed_creation_failure_is_a_warning(
    source_dir: Path, workspace: Path, clock: Clock, capsys: pytest.CaptureFixture[str]
) -> None:
    """A failed feed creation does not stop the publish attempt."""
    client = RecordingFeedClient(feed_present=False, create_succeeds=False)
    config = make_publish_config(workspace, create_feed_if_missing=True)

    assert cli.publish_infra(config, client=client, clock=clock) == 0
    assert "::warning title=Feed Creation Failed::" in capsys.readouterr().err


def test_publish_infra_plain_version(
    source_dir: Path, workspace: Path, clock: Clock
) -> None:
    """Plain-version mode starts from the date version."""
    client = RecordingFeedClient()
    config = make_publish_config(workspace, force_plain_version=True)

    assert cli.publish_infra(config, client=client, clock=clock) == 0
    assert client.published == ["2025.9.8"]


def test_publish_cli_dry_run_from_environment(
    source_dir: Path,
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """The cyclopts-bound command prints the publish plan in dry-run mode."""
    monkeypatch.setenv("PUBLISH_ORGANIZATION", ORGANIZATION)
    monkeypatch.setenv("PUBLISH_FEED", "plans")

    code = cli.publish_cli("snapshot-pkg", dry_run=True)

    assert code == 0
    assert not (workspace / ".publish_staging").exists()
    err = capsys.readouterr().err
    assert "[dry-run] az artifacts universal publish" in err
    assert "--name snapshot-pkg" in err


def test_publish_cli_reports_missing_settings(
    workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """Without an organisation or feed the command exits with status 1."""
    assert cli.publish_cli(dry_run=True) == 1
    assert "::error title=Configuration Error::" in capsys.readouterr().err


def test_publish_cli_reports_missing_config_file(
    workspace: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A named configuration file that does not exist exits with status 1."""
    assert cli.publish_cli(config_file=workspace / "absent.toml") == 1
    assert "Configuration file not found" in capsys.readouterr().err


@pytest.mark.skipif(shutil.which("tar") is None, reason="tar not installed")
def test_end_to_end_archive_and_dry_run_publish(
    source_dir: Path,
    workspace: Path,
    clock: Clock,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Archiving ``infra`` holds two entries; a dry run succeeds on the primary."""
    observed: list[list[str]] = []
    real_list_entries = list_entries

    def recording_list_entries(result: object) -> list[str]:
        entries = real_list_entries(result)  # type: ignore[arg-type]
        observed.append(entries)
        return entries

    monkeypatch.setattr(
        "artefact_publish.archiver.list_entries", recording_list_entries
    )

    archive_code = cli.package_infra(
        ArchiveConfig(source_dir=source_dir, output_dir=workspace),
        clock=clock,
        backends=[TarGzBackend()],
    )

    assert archive_code == 0
    assert [sorted(entries) for entries in observed] == [
        ["infra/a.txt", "infra/b/c.txt"]
    ], "the archive should hold exactly two file entries"
    assert list(workspace.glob("infra-archive-*")) == [], "archive must be deleted"

    client = RecordingFeedClient([denied()])
    config = make_publish_config(workspace, dry_run=True)

    publish_code = cli.publish_infra(config, client=client, clock=clock)

    assert publish_code == 0
    assert client.published == [], "dry run must not invoke the remote client"
    err = capsys.readouterr().err
    assert "Attempting publish with version=2025.9.8-070509" in err
    assert "--version 2025.9.8-070509" in err
    assert not config.staging_dir.exists()
