"""Workspace and variable models.

Both are immutable snapshots of Terraform Cloud JSON:API resources.  The
``from_resource`` constructors accept a single ``data`` item as returned by
``GET /organizations/{org}/workspaces`` and ``GET /workspaces/{id}/vars``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tfcleanup.audit.models.enums import VariableCategory


class VcsRepo(BaseModel):
    """VCS binding of a workspace (``attributes.vcs-repo``)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    repository_http_url: str = Field(alias="repository-http-url")
    identifier: str | None = None
    branch: str | None = None


class Workspace(BaseModel):
    """A Terraform Cloud workspace."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    vcs_repo: VcsRepo | None = None

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> Workspace:
        attributes = resource.get("attributes") or {}
        vcs = attributes.get("vcs-repo")
        return cls(
            id=resource["id"],
            name=attributes["name"],
            vcs_repo=VcsRepo.model_validate(vcs) if vcs else None,
        )


class Variable(BaseModel):
    """A workspace variable.  ``value`` is ``None`` for sensitive variables."""

    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    value: str | None = None
    category: VariableCategory = VariableCategory.TERRAFORM
    sensitive: bool = False
    hcl: bool = False
    description: str | None = None

    @classmethod
    def from_resource(cls, resource: dict[str, Any]) -> Variable:
        attributes = resource.get("attributes") or {}
        return cls(
            id=resource["id"],
            key=attributes["key"],
            value=attributes.get("value"),
            category=attributes.get("category", VariableCategory.TERRAFORM),
            sensitive=attributes.get("sensitive", False),
            hcl=attributes.get("hcl", False),
            description=attributes.get("description"),
        )


class WorkspaceVariables(BaseModel):
    """A workspace paired with its variables, in API order."""

    model_config = ConfigDict(frozen=True)

    workspace: Workspace
    variables: list[Variable] = Field(default_factory=list)
