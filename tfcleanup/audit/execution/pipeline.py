"""Plan pipeline -- fetch, filter, then sync and reconcile workspace by workspace.

The per-workspace step (``plan_workspace``) depends only on its inputs: it
returns a ``WorkspaceOutcome`` instead of mutating shared state.  Outcomes
are folded into an immutable ``PlanAccumulator``, which becomes the report
at the end of the run.

Scheduling: API calls are awaited one at a time under the client's rate
governor.  Blocking git and filesystem work is pushed to a worker thread
with ``anyio.to_thread.run_sync`` but awaited before the next workspace
starts, so no two workspaces are ever processed concurrently.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from functools import partial
from typing import TYPE_CHECKING, Protocol

from anyio import to_thread
from loguru import logger

from tfcleanup.audit.errors import ScanError
from tfcleanup.audit.execution.credentials import DEFAULT_PROVIDERS, CredentialProvider
from tfcleanup.audit.execution.filter import select
from tfcleanup.audit.execution.repository import sync_repository
from tfcleanup.audit.execution.scanner import reconcile
from tfcleanup.audit.models.report import Report, ReportVariable, UnlistedVariables
from tfcleanup.audit.models.workspace import Workspace, WorkspaceVariables
from tfcleanup.audit.report import build_report

if TYPE_CHECKING:
    from tfcleanup.audit.models.query import Query
    from tfcleanup.audit.settings import CleanupSettings, RepositorySettings


class WorkspaceSource(Protocol):
    """Anything that can produce workspaces paired with their variables."""

    async def fetch_workspace_variables(self) -> list[WorkspaceVariables]: ...


# ---------------------------------------------------------------------------
# Outcome & accumulator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkspaceOutcome:
    """What one workspace contributes to the report.

    ``missing`` workspaces go to ``missing_repositories`` only; all others go
    to ``workspaces``, plus ``unlisted`` when it is set.
    """

    workspace: Workspace
    missing: bool = False
    unlisted: UnlistedVariables | None = None


@dataclass(frozen=True)
class PlanAccumulator:
    workspaces: tuple[Workspace, ...] = ()
    missing_repositories: tuple[Workspace, ...] = ()
    unlisted_variables: tuple[UnlistedVariables, ...] = ()

    def add(self, outcome: WorkspaceOutcome) -> PlanAccumulator:
        """Return a new accumulator with ``outcome`` appended."""
        if outcome.missing:
            return replace(self, missing_repositories=(*self.missing_repositories, outcome.workspace))
        unlisted = self.unlisted_variables
        if outcome.unlisted is not None:
            unlisted = (*unlisted, outcome.unlisted)
        return replace(self, workspaces=(*self.workspaces, outcome.workspace), unlisted_variables=unlisted)

    def to_report(self, query: Query | None) -> Report:
        return build_report(query, self.workspaces, self.missing_repositories, self.unlisted_variables)


# ---------------------------------------------------------------------------
# Per-workspace step
# ---------------------------------------------------------------------------


def plan_workspace(
    entry: WorkspaceVariables,
    settings: RepositorySettings,
    *,
    providers: Sequence[CredentialProvider] = DEFAULT_PROVIDERS,
) -> WorkspaceOutcome:
    """Sync the workspace's repository and reconcile its variables.

    Workspaces without a VCS binding are kept without a scan.  A failed sync
    marks the workspace missing and skips reconciliation, since there is no
    tree to scan.
    """
    workspace = entry.workspace
    if workspace.vcs_repo is None:
        logger.info("Workspace {} has no VCS repository, nothing to scan.", workspace.name)
        return WorkspaceOutcome(workspace=workspace)

    logger.info("Repo detected for workspace: {}", workspace.name)
    outcome = sync_repository(workspace.vcs_repo, settings, providers=providers)
    if not outcome.ok or outcome.path is None:
        logger.warning("Workspace {} recorded as missing repository: {}", workspace.name, outcome.reason)
        return WorkspaceOutcome(workspace=workspace, missing=True)

    logger.info("Parsing variable data for workspace: {}", workspace.name)
    try:
        reconciliation = reconcile(outcome.path, entry.variables)
    except ScanError as exc:
        logger.warning("Workspace {} recorded as missing repository: {}", workspace.name, exc)
        return WorkspaceOutcome(workspace=workspace, missing=True)

    if not reconciliation.unlisted:
        return WorkspaceOutcome(workspace=workspace)

    logger.info(
        "Workspace {} has {} unlisted variables: {}",
        workspace.name,
        len(reconciliation.unlisted),
        ", ".join(v.key for v in reconciliation.unlisted),
    )
    return WorkspaceOutcome(
        workspace=workspace,
        unlisted=UnlistedVariables(
            workspace=workspace,
            unlisted_variables=[ReportVariable.from_variable(v) for v in reconciliation.unlisted],
        ),
    )


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


async def plan_entries(
    entries: Sequence[WorkspaceVariables],
    settings: RepositorySettings,
    *,
    providers: Sequence[CredentialProvider] = DEFAULT_PROVIDERS,
) -> PlanAccumulator:
    """Run ``plan_workspace`` over ``entries`` strictly one after another."""
    accumulator = PlanAccumulator()
    for entry in entries:
        outcome = await to_thread.run_sync(partial(plan_workspace, entry, settings, providers=providers))
        accumulator = accumulator.add(outcome)
    return accumulator


async def run_plan(
    source: WorkspaceSource,
    settings: CleanupSettings,
    *,
    providers: Sequence[CredentialProvider] = DEFAULT_PROVIDERS,
) -> Report:
    """Execute the plan phase and return the (unsaved) report.

    Raises ``FetchError`` if the workspace source fails; per-workspace
    problems are reflected in the report instead.
    """
    logger.info("Start Plan Phase")
    entries = await source.fetch_workspace_variables()
    logger.info("Fetched {} workspaces", len(entries))

    query = settings.query
    if query.predicates:
        logger.info("Filtering workspaces with variable query.")
    selected = select(entries, query)
    logger.info("{} of {} workspaces selected", len(selected), len(entries))

    logger.info("Cloning workspace repositories.")
    accumulator = await plan_entries(selected, settings.repositories, providers=providers)
    return accumulator.to_report(query)
