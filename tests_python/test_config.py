"""Tests for publish configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from artefact_publish.config import DEFAULT_STAGING_DIR, load_publish_config
from artefact_publish.environment import coerce_bool
from artefact_publish.errors import ConfigError

REQUIRED_ENV = {
    "PUBLISH_ORGANIZATION": "https://dev.azure.com/example/",
    "PUBLISH_FEED": "plans",
}


def write_config(path: Path, body: str) -> Path:
    """Write ``body`` to ``path`` and return it."""
    path.write_text(body, encoding="utf-8")
    return path


def test_environment_supplies_required_settings() -> None:
    """Organisation and feed may come from the environment alone."""
    config = load_publish_config(environ=REQUIRED_ENV)

    assert config.organization == "https://dev.azure.com/example/"
    assert config.feed == "plans"
    assert config.staging_dir == DEFAULT_STAGING_DIR
    assert config.source_dir == Path("infra")
    assert config.dry_run is False


def test_toml_file_then_env_then_overrides(tmp_path: Path) -> None:
    """Explicit overrides beat the environment, which beats the file."""
    config_file = write_config(
        tmp_path / "publish.toml",
        """
[publish]
organization = "https://dev.azure.com/file/"
feed = "file-feed"
package_name = "from-file"
source_dir = "terraform"
""",
    )

    config = load_publish_config(
        config_file,
        environ={"PUBLISH_FEED": "env-feed"},
        package_name="from-cli",
        dry_run=None,
    )

    assert config.organization == "https://dev.azure.com/file/"
    assert config.feed == "env-feed"
    assert config.package_name == "from-cli"
    assert config.source_dir == Path("terraform")
    assert config.dry_run is False, "None overrides must be ignored"


@pytest.mark.parametrize(
    ("env", "attribute"),
    [
        ({"FORCE_PLAIN_VERSION": "1"}, "force_plain_version"),
        ({"CREATE_FEED_IF_MISSING": "yes"}, "create_feed_if_missing"),
    ],
)
def test_environment_toggles(env: dict[str, str], attribute: str) -> None:
    """Toggles switch on their matching setting."""
    config = load_publish_config(environ=REQUIRED_ENV | env)

    assert getattr(config, attribute) is True


@pytest.mark.parametrize("value", ["maybe", "2"])
def test_invalid_toggle_is_a_config_error(value: str) -> None:
    """Toggles accept boolean words only; other non-empty values are rejected."""
    with pytest.raises(ConfigError, match=f"Cannot interpret '{value}'"):
        load_publish_config(environ=REQUIRED_ENV | {"FORCE_PLAIN_VERSION": value})


def test_missing_required_settings() -> None:
    """Without organisation or feed the loader refuses to continue."""
    with pytest.raises(ConfigError, match="feed, organization"):
        load_publish_config(environ={})


@pytest.mark.parametrize(
    ("body", "match"),
    [
        ("[publish]\nfeeds = 'typo'\n", "Unknown publish setting"),
        ("[publish]\ndry_run = 'yes'\n", "must be a boolean"),
        ("[publish]\nfeed = ''\n", "must be a non-empty string"),
        ("publish = 1\n", "must be a table"),
        ("[publish\n", "Invalid TOML"),
    ],
)
def test_invalid_config_file(tmp_path: Path, body: str, match: str) -> None:
    """Malformed configuration files surface as ``ConfigError``."""
    config_file = write_config(tmp_path / "publish.toml", body)

    with pytest.raises(ConfigError, match=match):
        load_publish_config(config_file, environ=REQUIRED_ENV)


def test_missing_config_file(tmp_path: Path) -> None:
    """A named but absent configuration file is reported."""
    with pytest.raises(FileNotFoundError):
        load_publish_config(tmp_path / "absent.toml", environ=REQUIRED_ENV)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (True, True),
        ("true", True),
        ("YES", True),
        (" on ", True),
        ("1", True),
        ("", False),
        ("off", False),
        ("0", False),
    ],
)
def test_coerce_bool_handles_common_inputs(value: object, expected: bool) -> None:
    """The coercion helper accepts boolean strings in various casings."""
    assert coerce_bool(value) is expected


def test_coerce_bool_rejects_non_strings() -> None:
    """Non-string, non-bool values raise ``TypeError``."""
    with pytest.raises(TypeError):
        coerce_bool(1)
