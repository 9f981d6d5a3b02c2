from __future__ import annotations

from pathlib import Path

import click

from tfcleanup import __version__

SETTINGS_HELP = (
    "Settings file (TOML). Defaults to ./settings.toml; TFCLEANUP_* environment variables override it."
)


def _load_settings(settings_file: Path | None):
    """Load settings and start logging, turning validation errors into a CLI error."""
    from pydantic import ValidationError

    from tfcleanup.audit.log import setup_logging
    from tfcleanup.audit.settings import load_settings

    try:
        settings = load_settings(settings_file)
    except ValidationError as exc:
        msg = (
            "Uh oh, looks like a settings issue! By default I look for a settings.toml file "
            f"and override with TFCLEANUP_* environment variables.\n{exc}"
        )
        raise click.ClickException(msg) from exc

    setup_logging(settings.log_level)
    return settings


@click.group()
@click.version_option(__version__, prog_name="tfcleanup")
def main() -> None:
    """tfcleanup - rule based cleanup operations for Terraform Cloud workspaces."""


@main.command()
@click.option(
    "--settings",
    "settings_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="TFCLEANUP_SETTINGS_FILE",
    default=None,
    help=SETTINGS_HELP,
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Report destination (default: from settings, report.json).",
)
def plan(settings_file: Path | None, output: Path | None) -> None:
    """Generate a report of the cleanup actions the query and rules call for."""
    import anyio
    from loguru import logger

    from tfcleanup.audit.client import TerraformCloudClient
    from tfcleanup.audit.errors import CleanupError
    from tfcleanup.audit.execution.pipeline import run_plan
    from tfcleanup.audit.report import save_report

    settings = _load_settings(settings_file)
    destination = output or Path(settings.output)

    async def _run():
        async with TerraformCloudClient.from_settings(settings) as client:
            return await run_plan(client, settings)

    try:
        report = anyio.run(_run)
        save_report(report, destination)
    except CleanupError as exc:
        logger.error("Plan failed: {}", exc)
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Report written to {destination}: {len(report.workspaces)} workspaces, "
        f"{len(report.missing_repositories)} missing repositories, "
        f"{len(report.unlisted_variables)} with unlisted variables."
    )


@main.command()
@click.option(
    "--settings",
    "settings_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="TFCLEANUP_SETTINGS_FILE",
    default=None,
    help=SETTINGS_HELP,
)
@click.option(
    "--report",
    "report_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Report produced by `plan` (default: from settings, report.json).",
)
def apply(settings_file: Path | None, report_path: Path | None) -> None:
    """Execute the actions described in a previously generated report."""
    from loguru import logger

    from tfcleanup.audit.errors import CleanupError
    from tfcleanup.audit.report import load_report

    settings = _load_settings(settings_file)
    source = report_path or Path(settings.output)

    try:
        report = load_report(source)
    except CleanupError as exc:
        raise click.ClickException(str(exc)) from exc

    logger.info(
        "Report {} (format {}, tool {}): {} missing repositories, {} workspaces with unlisted variables",
        source,
        report.report_version,
        report.bin_version,
        len(report.missing_repositories),
        len(report.unlisted_variables),
    )
    msg = "apply is not implemented yet; review the report and act on it manually."
    raise click.ClickException(msg)


if __name__ == "__main__":
    main()
