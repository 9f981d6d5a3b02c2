"""Plan execution: filter, sync, scan, reconcile."""

from tfcleanup.audit.execution.filter import select
from tfcleanup.audit.execution.pipeline import PlanAccumulator, WorkspaceOutcome, plan_workspace, run_plan
from tfcleanup.audit.execution.repository import SyncOutcome, sync_repository
from tfcleanup.audit.execution.scanner import Reconciliation, ScanResult, reconcile, scan_declarations

__all__ = [
    "PlanAccumulator",
    "Reconciliation",
    "ScanResult",
    "SyncOutcome",
    "WorkspaceOutcome",
    "plan_workspace",
    "reconcile",
    "run_plan",
    "scan_declarations",
    "select",
    "sync_repository",
]
