"""Report assembly and persistence.

``build_report`` copies pipeline state into a ``Report`` verbatim; it does no
filtering of its own.  ``save_report`` serialises the report to indented JSON
and writes it atomically; any failure there is fatal to the run.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from tfcleanup.audit.errors import CleanupError, ReportWriteError
from tfcleanup.audit.models.query import Query
from tfcleanup.audit.models.report import Report, UnlistedVariables
from tfcleanup.audit.models.workspace import Workspace
from tfcleanup.audit.store import atomic_write, read_file


def build_report(
    query: Query | None,
    workspaces: Sequence[Workspace],
    missing_repositories: Sequence[Workspace],
    unlisted_variables: Sequence[UnlistedVariables],
) -> Report:
    """Assemble the report document for one run.

    ``query`` is echoed only when it carries predicates; an empty query is
    recorded as ``null`` since it selected everything.
    """
    return Report(
        query=query if query is not None and query.predicates else None,
        workspaces=list(workspaces),
        missing_repositories=list(missing_repositories),
        unlisted_variables=list(unlisted_variables),
    )


def render_report(report: Report) -> str:
    """Serialise the report.  Output is stable for identical input."""
    return report.model_dump_json(indent=2) + "\n"


def save_report(report: Report, destination: str | Path) -> None:
    """Write ``report`` to ``destination`` atomically.

    Raises ``ReportWriteError`` if serialisation or the write fails; in that
    case no file is left at ``destination`` that was not there before.
    """
    path = Path(destination)
    logger.info("Saving report to: {}", path)
    try:
        data = render_report(report)
    except ValueError as exc:
        logger.error("Failed to serialise report!")
        msg = f"Failed to serialise report: {exc}"
        raise ReportWriteError(msg) from exc

    try:
        atomic_write(path, data)
    except OSError as exc:
        logger.error("Failed to save report!")
        msg = f"Failed to write report to {path}: {exc}"
        raise ReportWriteError(msg) from exc

    logger.info(
        "Report saved ({} workspaces, {} missing repositories, {} with unlisted variables)",
        len(report.workspaces),
        len(report.missing_repositories),
        len(report.unlisted_variables),
    )


def load_report(source: str | Path) -> Report:
    """Read back a report written by ``save_report``."""
    path = Path(source)
    try:
        return Report.model_validate_json(read_file(path))
    except (OSError, ValidationError) as exc:
        msg = f"Could not load report from {path}: {exc}"
        raise CleanupError(msg) from exc
