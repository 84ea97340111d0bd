# src/lode/cli/run_cmds.py

"""
Headless runs: execute frameworks once and print a summary.
"""

import asyncio
from pathlib import Path

import click
import structlog
from rich.console import Console
from rich.table import Table

from lode.cli.utils import CONFIG_PATH_OPTION, logging_options, setup_logging_from_context
from lode.exceptions import LodeError
from lode.framework import Framework
from lode.runtime.orchestrator import RunOrchestrator
from lode.status import STATUS_EMOJI_MAP, Status
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.run")

FAILING_STATUSES = frozenset({Status.FAILED, Status.ERROR})


def build_summary_table(frameworks: list[Framework]) -> Table:
    table = Table(title="Run summary", show_lines=False)
    table.add_column("", width=2)
    table.add_column("Framework")
    table.add_column("Suite")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    for framework in frameworks:
        for suite in framework.suites:
            stats = suite.result.stats
            duration = f"{stats.duration:.2f}s" if stats and stats.duration is not None else "-"
            table.add_row(
                STATUS_EMOJI_MAP[suite.status],
                framework.name,
                suite.display_name,
                suite.status.value,
                duration,
            )
    return table


@click.command(name="run")
@CONFIG_PATH_OPTION
@click.option(
    "-f",
    "--framework",
    "framework_ids",
    multiple=True,
    help="Framework id to run (repeatable). Runs every enabled framework by default.",
)
@logging_options
@click.pass_context
def run_cli(
    ctx: click.Context,
    config_path: Path,
    framework_ids: tuple[str, ...],
    log_level: str | None,
    log_file: str | None,
    json_logs: bool | None,
):
    """Run test suites once and report the results."""
    setup_logging_from_context(
        ctx,
        local_log_level=log_level,
        local_log_file=log_file,
        local_json_logs=json_logs,
        default_log_level="WARNING",
    )
    log.info("Executing 'run' command", config_path=str(config_path), frameworks=framework_ids or "all")

    orchestrator = RunOrchestrator(config_path, asyncio.Event())
    try:
        statuses = asyncio.run(orchestrator.run_once(list(framework_ids) or None))
    except LodeError as e:
        log.error("Run failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        ctx.exit(2)

    console = Console()
    console.print(build_summary_table([orchestrator.frameworks[framework_id] for framework_id in statuses]))
    for framework_id, status in statuses.items():
        console.print(f"{STATUS_EMOJI_MAP[status]} {framework_id}: [b]{status.value}[/b]")

    if any(status in FAILING_STATUSES for status in statuses.values()):
        ctx.exit(1)
