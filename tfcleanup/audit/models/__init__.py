"""Data models for the audit pipeline."""

from tfcleanup.audit.models.enums import DeclarationShape, SyncStatus, VariableCategory
from tfcleanup.audit.models.query import Query, QueryVariable
from tfcleanup.audit.models.report import (
    REPORT_VERSION,
    Report,
    ReportVariable,
    UnlistedVariables,
)
from tfcleanup.audit.models.workspace import Variable, VcsRepo, Workspace, WorkspaceVariables

__all__ = [
    "REPORT_VERSION",
    # Enums
    "DeclarationShape",
    # Query
    "Query",
    "QueryVariable",
    # Report
    "Report",
    "ReportVariable",
    "SyncStatus",
    "UnlistedVariables",
    # Workspace
    "Variable",
    "VariableCategory",
    "VcsRepo",
    "Workspace",
    "WorkspaceVariables",
]
