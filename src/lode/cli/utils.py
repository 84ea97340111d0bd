#
# src/lode/cli/utils.py
#
"""
Options and logging plumbing shared by every lode command.

Logging options can be given on the group (`lode --log-level DEBUG run`) or on
the command itself (`lode run --log-level DEBUG`); the command's value wins.
"""

import logging
from pathlib import Path
from typing import Any

import click
import structlog
from attrs import define, evolve

from lode.telemetry.logger import setup_logging

log = structlog.get_logger("cli.utils")

LOG_SETTINGS_KEY = "log_settings"

CONFIG_PATH_OPTION = click.option(
    "-c",
    "--config-path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
    default=Path("lode.toml"),
    show_default=True,
    envvar="LODE_CONF",
    show_envvar=True,
    help="lode configuration file.",
)

_LOGGING_OPTIONS = (
    click.option(
        "--json-logs",
        is_flag=True,
        default=None,
        envvar="LODE_JSON_LOGS",
        help="Render console logs as JSON lines.",
    ),
    click.option(
        "--log-file",
        type=click.Path(dir_okay=False, writable=True, resolve_path=True),
        default=None,
        envvar="LODE_LOG_FILE",
        help="Also write JSON logs to this file.",
    ),
    click.option(
        "-l",
        "--log-level",
        type=click.Choice(list(logging.getLevelNamesMapping()), case_sensitive=False),
        default=None,
        envvar="LODE_LOG_LEVEL",
        help="Logging level, overriding the configuration file.",
    ),
)


def logging_options(command):
    """Adds --log-level, --log-file and --json-logs to a command or group."""
    for option in _LOGGING_OPTIONS:
        command = option(command)
    return command


@define(frozen=True)
class LogSettings:
    """Logging choices made on the command line; None means not given."""

    level: str | None = None
    file: str | None = None
    json_logs: bool | None = None

    def override(self, level: str | None, file: str | None, json_logs: bool | None) -> "LogSettings":
        return evolve(
            self,
            level=level or self.level,
            file=file or self.file,
            json_logs=self.json_logs if json_logs is None else json_logs,
        )


def group_log_settings(ctx: click.Context) -> LogSettings:
    ctx.ensure_object(dict)
    return ctx.obj.get(LOG_SETTINGS_KEY) or LogSettings()


def setup_logging_from_context(
    ctx: click.Context,
    local_log_level: str | None = None,
    local_log_file: str | None = None,
    local_json_logs: bool | None = None,
    default_log_level: str = "INFO",
    tui_app_instance: Any | None = None,
) -> LogSettings:
    """Configures logging from the group options, overridden by the command's own."""
    settings = group_log_settings(ctx).override(local_log_level, local_log_file, local_json_logs)
    level = (settings.level or default_log_level).upper()

    # With the TUI up, stderr belongs to the terminal UI.
    file_only = tui_app_instance is not None and settings.file is not None

    setup_logging(
        level=level,
        json_logs=bool(settings.json_logs),
        log_file=settings.file,
        file_only=file_only,
        tui_app_instance=tui_app_instance,
    )
    log.debug("Command logging ready", level=level, log_file=settings.file, file_only=file_only)
    return settings


# 🔼⚙️
