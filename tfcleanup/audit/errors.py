"""Error taxonomy for the audit pipeline.

Every error raised by this package derives from ``CleanupError``.  Where a
builtin exception describes the same failure class, the domain error also
derives from it, so callers can catch either.

Which errors are recoverable is decided by the caller, not here:

- ``DeclarationParseError`` is recovered per file by the scanner.
- ``RepositoryUrlError`` / ``RepositoryError`` are recovered per workspace by
  the synchronizer (the workspace is reported as a missing repository).
- ``FetchError`` and ``ReportWriteError`` are fatal to the run.
"""

from __future__ import annotations


class CleanupError(Exception):
    """General catch-all for failures that fit no narrower category."""


class RepositoryUrlError(CleanupError, ValueError):
    """A repository URL could not be parsed or yields no local identifier."""


class RepositoryError(CleanupError):
    """A git operation (open, reset, clone) failed."""


class CredentialUnavailableError(CleanupError, LookupError):
    """A credential provider has nothing to offer for the given remote."""


class ScanError(CleanupError, OSError):
    """The source tree to scan is missing or cannot be walked."""


class DeclarationParseError(CleanupError, ValueError):
    """A declaration file is unreadable or matches no accepted shape."""


class ReportWriteError(CleanupError, OSError):
    """The report could not be serialised or written."""


class FetchError(CleanupError):
    """The Terraform Cloud API request failed or returned an unusable payload."""
