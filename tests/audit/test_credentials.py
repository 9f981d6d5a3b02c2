"""Unit tests for the clone credential chain."""

from __future__ import annotations

import base64

import httpx
import pytest
from pydantic import SecretStr

from tfcleanup.audit.errors import CredentialUnavailableError
from tfcleanup.audit.execution.credentials import (
    GitCredentials,
    anonymous,
    configured_token,
    resolve_credentials,
    ssh_agent,
)
from tfcleanup.audit.settings import RepositorySettings

HTTPS_URL = httpx.URL("https://github.com/acme/infra")
SSH_URL = httpx.URL("ssh://git@github.com/acme/infra")


def _unavailable(url, settings):
    raise CredentialUnavailableError("nothing here")


def _fixed(source: str):
    def provider(url, settings):
        return GitCredentials(source=source)

    return provider


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------


def test_first_available_provider_wins() -> None:
    calls: list[str] = []

    def tracking(name, result):
        def provider(url, settings):
            calls.append(name)
            return result(url, settings)

        return provider

    creds = resolve_credentials(
        HTTPS_URL,
        RepositorySettings(),
        [tracking("a", _unavailable), tracking("b", _fixed("b")), tracking("c", _fixed("c"))],
    )

    assert creds.source == "b"
    assert calls == ["a", "b"]


def test_all_providers_unavailable_raises() -> None:
    with pytest.raises(CredentialUnavailableError, match="No credentials"):
        resolve_credentials(HTTPS_URL, RepositorySettings(), [_unavailable, _unavailable])


def test_other_errors_are_not_swallowed() -> None:
    def broken(url, settings):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        resolve_credentials(HTTPS_URL, RepositorySettings(), [broken, anonymous])


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


def test_configured_token_builds_basic_auth_header() -> None:
    settings = RepositorySettings(token=SecretStr("s3cret"), username="bot")

    creds = configured_token(HTTPS_URL, settings)

    expected = base64.b64encode(b"bot:s3cret").decode("ascii")
    assert creds.source == "token"
    assert creds.env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
    assert creds.env["GIT_CONFIG_VALUE_0"] == f"Authorization: Basic {expected}"
    assert creds.env["GIT_TERMINAL_PROMPT"] == "0"


def test_configured_token_requires_token() -> None:
    with pytest.raises(CredentialUnavailableError):
        configured_token(HTTPS_URL, RepositorySettings())


def test_configured_token_requires_https() -> None:
    with pytest.raises(CredentialUnavailableError):
        configured_token(SSH_URL, RepositorySettings(token=SecretStr("s3cret")))


def test_ssh_agent_needs_socket(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)
    with pytest.raises(CredentialUnavailableError):
        ssh_agent(SSH_URL, RepositorySettings())

    monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")
    creds = ssh_agent(SSH_URL, RepositorySettings())
    assert creds.source == "ssh-agent"
    assert "BatchMode=yes" in creds.env["GIT_SSH_COMMAND"]


def test_ssh_agent_ignores_https(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")
    with pytest.raises(CredentialUnavailableError):
        ssh_agent(HTTPS_URL, RepositorySettings())


def test_default_chain_prefers_configured_token() -> None:
    settings = RepositorySettings(token=SecretStr("s3cret"))
    assert resolve_credentials(HTTPS_URL, settings).source == "token"


def test_anonymous_never_prompts() -> None:
    creds = anonymous(HTTPS_URL, RepositorySettings())
    assert creds.env == {"GIT_TERMINAL_PROMPT": "0"}
