"""tfcleanup - rule based cleanup planning for Terraform Cloud workspaces."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tfcleanup")
except PackageNotFoundError:
    # Running from a source checkout that was never installed.
    __version__ = "0.0.0"
