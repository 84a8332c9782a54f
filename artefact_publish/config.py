"""Configuration models and loader for the packaging and publishing commands.

Publishing settings are read from an optional TOML file containing a
``[publish]`` table, then overridden by environment variables and finally by
explicit command-line values.

Usage
-----
Load the publish configuration with environment toggles applied::

    import os
    from pathlib import Path
    from artefact_publish.config import load_publish_config

    config = load_publish_config(Path("publish.toml"), environ=os.environ)
    print(f"Publishing {config.source_dir} to feed {config.feed}")

Example ``publish.toml``::

    [publish]
    organization = "https://dev.azure.com/example/"
    feed = "terraform-temporary-plans"
    source_dir = "infra"
    package_name = "my-first-package"
"""

from __future__ import annotations

import dataclasses
import typing as typ
from pathlib import Path

import tomllib

from .environment import env_flag
from .errors import ConfigError

__all__ = [
    "DEFAULT_ARCHIVE_BASE_NAME",
    "DEFAULT_PACKAGE_NAME",
    "DEFAULT_SOURCE_DIR",
    "DEFAULT_STAGING_DIR",
    "ArchiveConfig",
    "PublishConfig",
    "load_publish_config",
]

DEFAULT_SOURCE_DIR = Path("infra")
DEFAULT_STAGING_DIR = Path(".publish_staging")
DEFAULT_PACKAGE_NAME = "my-first-package"
DEFAULT_ARCHIVE_BASE_NAME = "infra-archive"

ORGANIZATION_ENV = "PUBLISH_ORGANIZATION"
FEED_ENV = "PUBLISH_FEED"
FORCE_PLAIN_VERSION_ENV = "FORCE_PLAIN_VERSION"
CREATE_FEED_ENV = "CREATE_FEED_IF_MISSING"

_PATH_KEYS = frozenset({"source_dir", "staging_dir"})
_STRING_KEYS = frozenset({"organization", "feed", "package_name"})
_BOOL_KEYS = frozenset({"dry_run", "force_plain_version", "create_feed_if_missing"})


@dataclasses.dataclass(slots=True, frozen=True)
class ArchiveConfig:
    """Inputs for the archive command.

    Attributes
    ----------
    source_dir : Path
        Directory whose tree is archived.
    base_name : str
        Prefix of the archive file name.
    output_dir : Path
        Directory receiving the archive until it is deleted.
    """

    source_dir: Path = DEFAULT_SOURCE_DIR
    base_name: str = DEFAULT_ARCHIVE_BASE_NAME
    output_dir: Path = Path()


@dataclasses.dataclass(slots=True, frozen=True)
class PublishConfig:
    """Concrete configuration produced by :func:`load_publish_config`.

    Parameters
    ----------
    organization : str
        Azure DevOps organisation URL hosting the feed.
    feed : str
        Name of the universal package feed.
    source_dir : Path, default=Path("infra")
        Directory copied into the staging area and published.
    staging_dir : Path, default=Path(".publish_staging")
        Disposable directory used as the upload source.
    package_name : str, default="my-first-package"
        Universal package name.
    dry_run : bool, default=False
        When ``True``, print the publish command instead of running it.
    force_plain_version : bool, default=False
        When ``True``, the primary candidate carries no prerelease segment.
    create_feed_if_missing : bool, default=False
        When ``True``, attempt to create the feed if it cannot be found.

    Examples
    --------
    >>> config = PublishConfig(  # doctest: +SKIP
    ...     organization="https://dev.azure.com/example/",
    ...     feed="plans",
    ... )
    >>> config.package_name  # doctest: +SKIP
    'my-first-package'
    """

    organization: str
    feed: str
    source_dir: Path = DEFAULT_SOURCE_DIR
    staging_dir: Path = DEFAULT_STAGING_DIR
    package_name: str = DEFAULT_PACKAGE_NAME
    dry_run: bool = False
    force_plain_version: bool = False
    create_feed_if_missing: bool = False


def load_publish_config(
    config_file: Path | None = None,
    *,
    environ: typ.Mapping[str, str],
    **overrides: object,
) -> PublishConfig:
    """Build a :class:`PublishConfig` from file, environment, and overrides.

    Parameters
    ----------
    config_file : Path | None
        Optional TOML file with a ``[publish]`` table.
    environ : Mapping[str, str]
        Environment consulted for ``PUBLISH_ORGANIZATION``, ``PUBLISH_FEED``,
        ``FORCE_PLAIN_VERSION`` and ``CREATE_FEED_IF_MISSING``.
    **overrides : object
        Explicit values (typically from the CLI). ``None`` values are ignored.

    Returns
    -------
    PublishConfig
        Fully resolved configuration.

    Raises
    ------
    FileNotFoundError
        Raised when ``config_file`` is given but absent.
    ConfigError
        Raised when required keys are missing, unknown keys are present, or a
        value has the wrong type.
    """
    values: dict[str, typ.Any] = {}
    if config_file is not None:
        values |= _read_publish_table(Path(config_file))

    if organization := environ.get(ORGANIZATION_ENV):
        values["organization"] = organization
    if feed := environ.get(FEED_ENV):
        values["feed"] = feed
    try:
        if env_flag(environ, FORCE_PLAIN_VERSION_ENV):
            values["force_plain_version"] = True
        if env_flag(environ, CREATE_FEED_ENV):
            values["create_feed_if_missing"] = True
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    values |= {key: value for key, value in overrides.items() if value is not None}
    _check_known_keys(values, "overrides")

    if missing := sorted(
        key for key in ("organization", "feed") if not values.get(key)
    ):
        joined = ", ".join(missing)
        message = (
            f"Missing required publish setting(s): {joined}. Provide them in the "
            f"[publish] table or via {ORGANIZATION_ENV}/{FEED_ENV}."
        )
        raise ConfigError(message)

    for key in _PATH_KEYS & values.keys():
        values[key] = Path(values[key])
    return PublishConfig(**values)


def _read_publish_table(path: Path) -> dict[str, typ.Any]:
    if not path.is_file():
        message = f"Configuration file not found at {path}"
        raise FileNotFoundError(message)
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        message = f"Invalid TOML in {path}: {exc}"
        raise ConfigError(message) from exc

    table = data.get("publish", {})
    if not isinstance(table, dict):
        message = f"[publish] must be a table in {path}"
        raise ConfigError(message)
    _check_known_keys(table, str(path))
    for key, value in table.items():
        _validate_value(key, value, path)
    return dict(table)


def _check_known_keys(values: typ.Mapping[str, object], origin: str) -> None:
    known = _PATH_KEYS | _STRING_KEYS | _BOOL_KEYS
    if unknown := sorted(set(values) - known):
        joined = ", ".join(unknown)
        message = f"Unknown publish setting(s) in {origin}: {joined}"
        raise ConfigError(message)


def _validate_value(key: str, value: object, path: Path) -> None:
    if key in _BOOL_KEYS:
        valid = isinstance(value, bool)
        expected = "a boolean"
    else:
        valid = isinstance(value, str) and bool(value)
        expected = "a non-empty string"
    if not valid:
        message = f"publish.{key} must be {expected} in {path}"
        raise ConfigError(message)
