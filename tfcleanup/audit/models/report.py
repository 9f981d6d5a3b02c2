"""Report document models.

The report is the single persisted artifact of a ``plan`` run.  Variable
values never appear in it: unlisted variables are projected down to
``{id, key}``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from tfcleanup import __version__
from tfcleanup.audit.models.query import Query
from tfcleanup.audit.models.workspace import Variable, Workspace

REPORT_VERSION = "0.1.0"
"""Report format version.  Bump when the document layout changes."""


class ReportVariable(BaseModel):
    id: str
    key: str

    @classmethod
    def from_variable(cls, variable: Variable) -> ReportVariable:
        return cls(id=variable.id, key=variable.key)


class UnlistedVariables(BaseModel):
    """Cloud variables of a workspace with no declaration in its repository."""

    workspace: Workspace
    unlisted_variables: list[ReportVariable] = Field(default_factory=list)


class Report(BaseModel):
    report_version: str = REPORT_VERSION
    bin_version: str = Field(default_factory=lambda: __version__)
    query: Query | None = None
    workspaces: list[Workspace] = Field(default_factory=list)
    missing_repositories: list[Workspace] = Field(default_factory=list)
    unlisted_variables: list[UnlistedVariables] = Field(default_factory=list)
