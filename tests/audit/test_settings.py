"""Tests for settings loading: TOML file, environment overrides, validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tfcleanup.audit.models import QueryVariable
from tfcleanup.audit.settings import DEFAULT_BASE_URL, get_settings, load_settings

SETTINGS_TOML = """
organization = "acme"
token = "from-toml"
log_level = "DEBUG"

[repositories]
git_dir = "/srv/repos"
username = "ci-bot"

[[query.variables]]
key = "environment"
value = "staging"
"""


def test_defaults_without_any_source(tmp_path: Path) -> None:
    settings = load_settings()

    assert settings.organization is None
    assert settings.token is None
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.rate_limit == 30
    assert settings.output == "report.json"
    assert settings.query.predicates == []
    assert settings.repositories.git_dir == "./repositories"


def test_reads_settings_toml_from_working_directory(tmp_path: Path) -> None:
    (tmp_path / "settings.toml").write_text(SETTINGS_TOML, encoding="utf-8")

    settings = load_settings()

    assert settings.organization == "acme"
    assert settings.token is not None
    assert settings.token.get_secret_value() == "from-toml"
    assert settings.log_level == "DEBUG"
    assert settings.repositories.git_dir == "/srv/repos"
    assert settings.query.predicates == [QueryVariable(key="environment", value="staging")]


def test_explicit_settings_file(tmp_path: Path) -> None:
    custom = tmp_path / "conf" / "prod.toml"
    custom.parent.mkdir()
    custom.write_text('organization = "prod-org"\n', encoding="utf-8")
    (tmp_path / "settings.toml").write_text('organization = "default-org"\n', encoding="utf-8")

    assert load_settings(custom).organization == "prod-org"


def test_missing_settings_file_is_not_an_error(tmp_path: Path) -> None:
    assert load_settings(tmp_path / "absent.toml").organization is None


def test_environment_overrides_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "settings.toml").write_text(SETTINGS_TOML, encoding="utf-8")
    monkeypatch.setenv("TFCLEANUP_ORGANIZATION", "env-org")
    monkeypatch.setenv("TFCLEANUP_TOKEN", "from-env")

    settings = load_settings()

    assert settings.organization == "env-org"
    assert settings.token is not None
    assert settings.token.get_secret_value() == "from-env"


def test_nested_environment_variable_merges_with_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "settings.toml").write_text(SETTINGS_TOML, encoding="utf-8")
    monkeypatch.setenv("TFCLEANUP_REPOSITORIES__GIT_DIR", "/tmp/checkouts")

    settings = load_settings()

    assert settings.repositories.git_dir == "/tmp/checkouts"
    assert settings.repositories.username == "ci-bot"


def test_dotenv_file_is_read(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("TFCLEANUP_ORGANIZATION=dotenv-org\n", encoding="utf-8")
    assert load_settings().organization == "dotenv-org"


def test_token_is_not_leaked_in_repr(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TFCLEANUP_TOKEN", "super-secret")
    assert "super-secret" not in repr(load_settings())


@pytest.mark.parametrize("line", ["rate_limit = 0", "page_size = 500", 'query = "env=prod"'])
def test_invalid_values_raise(tmp_path: Path, line: str) -> None:
    (tmp_path / "settings.toml").write_text(line + "\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_settings()


def test_default_settings_are_cached(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    first = load_settings()
    monkeypatch.setenv("TFCLEANUP_ORGANIZATION", "late")

    assert load_settings() is first
    assert first.organization is None

    get_settings.cache_clear()
    assert load_settings().organization == "late"
