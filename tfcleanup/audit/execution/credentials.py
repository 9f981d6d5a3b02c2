"""Credential resolution for repository clones.

Credentials are resolved by walking an ordered list of providers.  Each
provider either returns ``GitCredentials`` or raises
``CredentialUnavailableError``; the first provider that returns wins.

Providers never write secrets to disk.  They only shape the environment of
the ``git clone`` subprocess:

1. ``configured_token``  -- ``repositories.token`` from settings, sent as an
   HTTP ``Authorization`` header through git's environment config
   (``GIT_CONFIG_COUNT`` / ``GIT_CONFIG_KEY_n`` / ``GIT_CONFIG_VALUE_n``).
2. ``ssh_agent``         -- SSH remotes when ``SSH_AUTH_SOCK`` is set.
3. ``credential_helper`` -- a stored ``credential.helper`` in git config.
4. ``anonymous``         -- always available; public repositories.

All providers disable interactive prompts so an unreachable or private
remote fails fast instead of blocking the run.
"""

from __future__ import annotations

import base64
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

import git
import httpx
from git.exc import CommandError
from loguru import logger

from tfcleanup.audit.errors import CredentialUnavailableError
from tfcleanup.audit.settings import RepositorySettings

_NO_PROMPT = {"GIT_TERMINAL_PROMPT": "0"}


@dataclass(frozen=True)
class GitCredentials:
    """Environment additions for the git subprocess, plus where they came from."""

    source: str
    env: Mapping[str, str] = field(default_factory=dict)


CredentialProvider = Callable[[httpx.URL, RepositorySettings], GitCredentials]


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


def configured_token(url: httpx.URL, settings: RepositorySettings) -> GitCredentials:
    if settings.token is None:
        msg = "no repositories.token configured"
        raise CredentialUnavailableError(msg)
    if url.scheme != "https":
        msg = f"token auth needs an https remote, got {url.scheme!r}"
        raise CredentialUnavailableError(msg)

    pair = f"{settings.username}:{settings.token.get_secret_value()}"
    basic = base64.b64encode(pair.encode("utf-8")).decode("ascii")
    return GitCredentials(
        source="token",
        env={
            **_NO_PROMPT,
            "GIT_CONFIG_COUNT": "1",
            "GIT_CONFIG_KEY_0": "http.extraHeader",
            "GIT_CONFIG_VALUE_0": f"Authorization: Basic {basic}",
        },
    )


def ssh_agent(url: httpx.URL, settings: RepositorySettings) -> GitCredentials:
    if url.scheme not in ("ssh", "git+ssh"):
        msg = f"not an ssh remote ({url.scheme!r})"
        raise CredentialUnavailableError(msg)
    if not os.environ.get("SSH_AUTH_SOCK"):
        msg = "SSH_AUTH_SOCK is not set"
        raise CredentialUnavailableError(msg)
    return GitCredentials(
        source="ssh-agent",
        env={**_NO_PROMPT, "GIT_SSH_COMMAND": "ssh -o BatchMode=yes"},
    )


def credential_helper(url: httpx.URL, settings: RepositorySettings) -> GitCredentials:
    try:
        helper = git.Git().config("--get", "credential.helper").strip()
    except CommandError:
        # git exits 1 when the key is unset; also covers a missing git binary.
        helper = ""
    if not helper:
        msg = "no credential.helper configured"
        raise CredentialUnavailableError(msg)
    return GitCredentials(source=f"credential-helper ({helper})", env=dict(_NO_PROMPT))


def anonymous(url: httpx.URL, settings: RepositorySettings) -> GitCredentials:
    return GitCredentials(source="anonymous", env=dict(_NO_PROMPT))


DEFAULT_PROVIDERS: tuple[CredentialProvider, ...] = (
    configured_token,
    ssh_agent,
    credential_helper,
    anonymous,
)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_credentials(
    url: httpx.URL,
    settings: RepositorySettings,
    providers: Sequence[CredentialProvider] = DEFAULT_PROVIDERS,
) -> GitCredentials:
    """Return credentials from the first provider that has any.

    Raises ``CredentialUnavailableError`` if every provider declines.
    """
    for provider in providers:
        try:
            credentials = provider(url, settings)
        except CredentialUnavailableError as exc:
            logger.debug("Credential provider {} skipped: {}", getattr(provider, "__name__", provider), exc)
            continue
        logger.debug("Using {} credentials for {}", credentials.source, url.host or url.path)
        return credentials

    msg = f"No credentials available for {url}"
    raise CredentialUnavailableError(msg)
