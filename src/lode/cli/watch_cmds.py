#
# src/lode/cli/watch_cmds.py
#
"""
`lode watch`: the interactive result tree.
"""

from pathlib import Path

import click
import structlog

from lode.cli.utils import CONFIG_PATH_OPTION, logging_options, setup_logging_from_context
from lode.telemetry import StructLogger

try:
    from lode.tui.app import LodeTuiApp

    TEXTUAL_AVAILABLE = True
except ImportError as e:
    TEXTUAL_AVAILABLE = False
    LodeTuiApp = None
    structlog.get_logger("cli.watch").debug("TUI unavailable", error=str(e))


log: StructLogger = structlog.get_logger("cli.watch")

MISSING_TUI_HINT = "Install the 'tui' extra to use 'lode watch': pip install 'lode[tui]'"


@click.command(name="watch")
@CONFIG_PATH_OPTION
@logging_options
@click.pass_context
def watch_cli(
    ctx: click.Context,
    config_path: Path,
    log_level: str | None,
    log_file: str | None,
    json_logs: bool | None,
):
    """Browse suites and tests, select them and run them interactively."""
    if not TEXTUAL_AVAILABLE or LodeTuiApp is None:
        click.echo("Error: textual is not installed.", err=True)
        click.echo(MISSING_TUI_HINT, err=True)
        ctx.exit(1)

    app = LodeTuiApp(config_path=config_path)
    setup_logging_from_context(
        ctx,
        local_log_level=log_level,
        local_log_file=log_file,
        local_json_logs=json_logs,
        tui_app_instance=app,
    )
    log.info("Starting TUI", config_path=str(config_path))
    try:
        app.run()
    except Exception as e:
        log.critical("TUI crashed", error=str(e), exc_info=True)
        click.echo(f"Error: the TUI stopped unexpectedly: {e}", err=True)
        ctx.exit(1)
    log.info("TUI closed")


# 🔼⚙️
