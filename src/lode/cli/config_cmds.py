#
# src/lode/cli/config_cmds.py
#
"""
`lode config`: inspect the configuration file.
"""

from pathlib import Path

import click
import structlog
from rich.pretty import pretty_repr

from lode.cli.utils import CONFIG_PATH_OPTION, logging_options, setup_logging_from_context
from lode.config import LodeConfig, load_config
from lode.exceptions import ConfigurationError
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("cli.config")


def disabled_frameworks(config: LodeConfig) -> list[str]:
    """Frameworks that load_config switched off because their path is missing."""
    return [framework_id for framework_id, framework in config.frameworks.items() if not framework._path_valid]


@click.group(name="config")
def config_cli():
    """Inspect the configuration."""


@config_cli.command(name="show")
@CONFIG_PATH_OPTION
@logging_options
@click.pass_context
def show_config(
    ctx: click.Context,
    config_path: Path,
    log_level: str | None,
    log_file: str | None,
    json_logs: bool | None,
):
    """Validate the configuration and print it as loaded."""
    setup_logging_from_context(ctx, local_log_level=log_level, local_log_file=log_file, local_json_logs=json_logs)

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        log.error("Invalid configuration", config_path=str(config_path), error=str(e))
        click.echo(f"Error: {config_path} is not a valid configuration:\n{e}", err=True)
        ctx.exit(1)

    click.echo(pretty_repr(config, expand_all=True))

    disabled = disabled_frameworks(config)
    if disabled:
        log.warning("Some frameworks are disabled", frameworks=disabled)
        click.echo(f"Disabled (path not found): {', '.join(disabled)}", err=True)


# 🔼⚙️
