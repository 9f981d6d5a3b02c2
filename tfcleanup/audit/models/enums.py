"""Shared enumerations used across the audit pipeline."""

from __future__ import annotations

from enum import StrEnum


class VariableCategory(StrEnum):
    """Terraform Cloud variable category."""

    TERRAFORM = "terraform"
    ENV = "env"


class SyncStatus(StrEnum):
    """Outcome of a repository synchronization."""

    UPDATED = "updated"
    CLONED = "cloned"
    FAILED = "failed"


class DeclarationShape(StrEnum):
    """Which accepted document shape a declaration file matched."""

    SINGLE_BLOCK = "single_block"
    BLOCK_MAP = "block_map"
