#
# src/lode/cli/main.py
#
"""
The `lode` command group.
"""

from importlib.metadata import PackageNotFoundError, version

import click
import structlog

from lode.cli.config_cmds import config_cli
from lode.cli.run_cmds import run_cli
from lode.cli.utils import LOG_SETTINGS_KEY, LogSettings, logging_options, setup_logging_from_context
from lode.cli.watch_cmds import watch_cli
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.main")


def _installed_version() -> str:
    try:
        return version("lode")
    except PackageNotFoundError:
        return "0.0.0-dev"


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(_installed_version(), "-V", "--version", package_name="lode")
@logging_options
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, log_file: str | None, json_logs: bool | None):
    """
    Lode: run test suites and browse their results as a tree.

    Options given on a command override the ones given here; both override
    LODE_* environment variables and the configuration file.
    """
    ctx.ensure_object(dict)
    ctx.obj[LOG_SETTINGS_KEY] = LogSettings(level=log_level, file=log_file, json_logs=json_logs)
    setup_logging_from_context(ctx, default_log_level="WARNING")
    log.debug("lode starting", subcommand=ctx.invoked_subcommand)


for _command in (run_cli, watch_cli, config_cli):
    cli.add_command(_command)


if __name__ == "__main__":
    cli()

# 🔼⚙️
