"""Run configuration loaded from ``settings.toml`` and TFCLEANUP_* variables.

Precedence, highest first: explicit keyword arguments, environment variables,
``.env``, the TOML settings file.  Nested fields use ``__`` in environment
variable names, e.g. ``TFCLEANUP_REPOSITORIES__GIT_DIR=/srv/repos``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from tfcleanup.audit.models.query import Query

DEFAULT_SETTINGS_FILE = "settings.toml"
DEFAULT_BASE_URL = "https://app.terraform.io/api/v2"


class RepositorySettings(BaseModel):
    """Where repositories are checked out and how clones authenticate."""

    git_dir: str = "./repositories"
    """Root under which every workspace repository is cloned."""

    token: SecretStr | None = None
    """Optional HTTPS token for cloning.  Sent as a header, never stored in .git/config."""

    username: str = "x-access-token"


class CleanupSettings(BaseSettings):
    """tfcleanup settings.

    ``token`` and ``organization`` are optional here so that ``apply`` can
    run without API access; ``plan`` checks them before fetching.
    """

    model_config = SettingsConfigDict(
        env_prefix="TFCLEANUP_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        toml_file=DEFAULT_SETTINGS_FILE,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Terraform Cloud -------------------------------------------------------
    token: SecretStr | None = None
    organization: str | None = None
    base_url: str = DEFAULT_BASE_URL
    rate_limit: int = Field(default=30, gt=0)
    """Maximum API requests per second."""

    page_size: int = Field(default=100, gt=0, le=100)

    # -- Plan ------------------------------------------------------------------
    output: str = "report.json"
    query: Query = Field(default_factory=Query)
    repositories: RepositorySettings = Field(default_factory=RepositorySettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def load_settings(settings_file: str | Path | None = None) -> CleanupSettings:
    """Load settings, reading TOML from ``settings_file`` instead of the default.

    Without ``settings_file`` this is ``get_settings()``.  A missing TOML file
    is not an error; environment variables alone are enough.  Raises
    ``pydantic.ValidationError`` on invalid values.
    """
    if settings_file is None:
        return get_settings()

    class _FileSettings(CleanupSettings):
        model_config = SettingsConfigDict(toml_file=str(settings_file))

    return _FileSettings()


@lru_cache(maxsize=1)
def get_settings() -> CleanupSettings:
    """Return a cached settings instance read from the default sources.

    Reads environment variables, ``.env`` and ``./settings.toml`` on first
    call, then returns the same object.  Call ``get_settings.cache_clear()``
    in tests to force a re-read after overriding env vars.
    """
    return CleanupSettings()
