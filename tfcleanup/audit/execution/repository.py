"""Repository synchronizer -- clone or reset a workspace's repository.

Local layout::

    {git_dir}/{identifier}/

``identifier`` is the VCS binding's explicit identifier (``org/repo`` on
Terraform Cloud) or, when absent, the last path segment of the repository
URL.  Checkouts persist between runs, so the second and later runs only
reset the existing working tree to HEAD instead of cloning again.

Synchronization never raises: every failure (bad URL, not a git repository,
reset failure, clone failure) comes back as ``SyncOutcome.failed`` so the
caller can record the workspace as a missing repository and move on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import git
import httpx
from git.exc import GitError
from loguru import logger

from tfcleanup.audit.errors import CredentialUnavailableError, RepositoryError, RepositoryUrlError
from tfcleanup.audit.execution.credentials import (
    DEFAULT_PROVIDERS,
    CredentialProvider,
    resolve_credentials,
)
from tfcleanup.audit.models.enums import SyncStatus
from tfcleanup.audit.models.workspace import VcsRepo
from tfcleanup.audit.settings import RepositorySettings


@dataclass(frozen=True)
class SyncOutcome:
    """Result of ``sync_repository``: a path on success, a reason on failure."""

    status: SyncStatus
    path: Path | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != SyncStatus.FAILED

    @classmethod
    def updated(cls, path: Path) -> SyncOutcome:
        return cls(status=SyncStatus.UPDATED, path=path)

    @classmethod
    def cloned(cls, path: Path) -> SyncOutcome:
        return cls(status=SyncStatus.CLONED, path=path)

    @classmethod
    def failed(cls, reason: str) -> SyncOutcome:
        return cls(status=SyncStatus.FAILED, reason=reason)


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def parse_repository_url(raw: str) -> httpx.URL:
    """Parse a repository URL.  Raises ``RepositoryUrlError`` if unusable."""
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        msg = f"Failed to parse repository url {raw!r}: {exc}"
        raise RepositoryUrlError(msg) from exc
    if not url.scheme or (not url.host and url.scheme != "file"):
        msg = f"Repository url {raw!r} is not absolute"
        raise RepositoryUrlError(msg)
    return url


def local_identifier(vcs_repo: VcsRepo, url: httpx.URL) -> str:
    """Explicit identifier if set, otherwise the URL's last path segment.

    Raises ``RepositoryUrlError`` if the result would not name a directory
    strictly below the git root (absolute, empty, or containing ``..``).
    """
    if vcs_repo.identifier:
        return _checked_identifier(vcs_repo.identifier)
    segments = [segment for segment in url.path.split("/") if segment]
    if not segments:
        msg = f"Repository url {vcs_repo.repository_http_url!r} has no path segment to name the checkout"
        raise RepositoryUrlError(msg)
    return _checked_identifier(segments[-1])


def _checked_identifier(identifier: str) -> str:
    parts = PurePosixPath(identifier.replace("\\", "/")).parts
    if not parts or parts[0] == "/" or ".." in parts:
        msg = f"Checkout identifier {identifier!r} escapes the git root"
        raise RepositoryUrlError(msg)
    return identifier


def local_path(vcs_repo: VcsRepo, git_dir: str | Path) -> tuple[httpx.URL, Path]:
    """Resolve ``(url, {git_dir}/{identifier})`` for a VCS binding."""
    url = parse_repository_url(vcs_repo.repository_http_url)
    return url, Path(git_dir) / local_identifier(vcs_repo, url)


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


def sync_repository(
    vcs_repo: VcsRepo,
    settings: RepositorySettings,
    *,
    providers: Sequence[CredentialProvider] = DEFAULT_PROVIDERS,
) -> SyncOutcome:
    """Ensure a local checkout of ``vcs_repo`` exists and sits at HEAD.

    Blocking: runs git subprocesses and touches the filesystem.
    """
    try:
        url, path = local_path(vcs_repo, settings.git_dir)
    except RepositoryUrlError as exc:
        logger.error("{}", exc)
        return SyncOutcome.failed(str(exc))

    try:
        if path.is_dir():
            logger.info("Repo already exists locally at {}, updating instead.", path)
            reset_to_head(path)
            logger.info("Repo at HEAD: {}", path)
            return SyncOutcome.updated(path)

        logger.info("Cloning repo: {} into {}", vcs_repo.repository_http_url, path)
        clone(vcs_repo.repository_http_url, path, settings, providers, url=url)
        logger.info("Clone successful: {}", path)
        return SyncOutcome.cloned(path)
    except RepositoryError as exc:
        logger.error("{}", exc)
        return SyncOutcome.failed(str(exc))


def reset_to_head(path: Path) -> None:
    """``git reset --hard HEAD`` in ``path``.  Raises ``RepositoryError``."""
    try:
        with git.Repo(path) as repo:
            repo.head.reset(index=True, working_tree=True)
    except (GitError, ValueError) as exc:
        msg = f"Updating repository at {path} failed: {_describe(exc)}"
        raise RepositoryError(msg) from exc


def clone(
    remote: str,
    path: Path,
    settings: RepositorySettings,
    providers: Sequence[CredentialProvider] = DEFAULT_PROVIDERS,
    *,
    url: httpx.URL | None = None,
) -> None:
    """Clone ``remote`` into ``path``.  Raises ``RepositoryError``.

    git receives ``remote`` exactly as configured; the parsed ``url`` (derived
    from ``remote`` when omitted) only selects credentials.
    """
    if url is None:
        try:
            url = parse_repository_url(remote)
        except RepositoryUrlError as exc:
            raise RepositoryError(str(exc)) from exc

    try:
        credentials = resolve_credentials(url, settings, providers)
    except CredentialUnavailableError as exc:
        msg = f"Clone of {remote} failed: {exc}"
        raise RepositoryError(msg) from exc

    logger.debug("Cloning with {} credentials", credentials.source)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        repo = git.Repo.clone_from(remote, path, env=dict(credentials.env))
    except (GitError, OSError) as exc:
        msg = f"Clone of {remote} into {path} failed: {_describe(exc)}"
        raise RepositoryError(msg) from exc
    repo.close()


def _describe(exc: Exception) -> str:
    """Prefer git's own stderr over GitPython's multi-line command dump."""
    stderr = getattr(exc, "stderr", None)
    if isinstance(stderr, str) and stderr.strip():
        return stderr.strip().removeprefix("stderr:").strip().strip("'").strip()
    return str(exc) or type(exc).__name__
