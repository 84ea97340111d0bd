#
# src/lode/telemetry/logger/base.py
#
"""
One-shot structlog configuration for lode.

Everything goes through the stdlib root logger: structlog only prepares the
event dict and `ProcessorFormatter` renders it per handler, so the console,
the JSON log file and the TUI event log can each pick their own output.
"""

import logging
import sys
from typing import TYPE_CHECKING, Optional

import structlog
from structlog.typing import FilteringBoundLogger, Processor

from lode.telemetry.logger.processors import (
    add_emoji_processor,
    level_number,
    remove_extra_keys_processor,
)

try:
    from lode.tui.logging_handler import TextualLogHandler

    HAS_TUI = True
except ImportError:
    TextualLogHandler = None
    HAS_TUI = False

if TYPE_CHECKING:
    from lode.tui.app import LodeTuiApp


BASE_LOGGER_NAME = "lode"

StructLogger = FilteringBoundLogger

_PRE_CHAIN: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    add_emoji_processor,
]


def _formatter(json_output: bool, colors: bool = False) -> structlog.stdlib.ProcessorFormatter:
    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(processors=[remove_extra_keys_processor, renderer])


def _reset_root(level: int) -> logging.Logger:
    root = logging.getLogger()
    while root.handlers:
        handler = root.handlers[0]
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)
    return root


def _attach(root: logging.Logger, handler: logging.Handler, formatter: logging.Formatter, level: int) -> None:
    handler.setFormatter(formatter)
    handler.setLevel(level)
    root.addHandler(handler)


def setup_logging(
    level: int | str = logging.INFO,
    json_logs: bool = False,
    log_file: str | None = None,
    file_only: bool = False,
    tui_app_instance: Optional["LodeTuiApp"] = None,
) -> None:
    """
    Routes all lode logging through the stdlib root logger.

    Args:
        level: Level number or name; unknown names fall back to INFO.
        json_logs: Render console output as JSON lines.
        log_file: Also write JSON lines to this file.
        file_only: Suppress console output (the log file is still written).
        tui_app_instance: When given, records go to the app's event log instead
            of stderr.
    """
    numeric_level = level_number(level)
    tui_mode = tui_app_instance is not None

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = _reset_root(numeric_level)
    setup_log = structlog.get_logger(BASE_LOGGER_NAME)
    console_enabled = not (tui_mode or file_only)

    if console_enabled:
        _attach(
            root,
            logging.StreamHandler(sys.stderr),
            _formatter(json_logs, colors=sys.stderr.isatty()),
            numeric_level,
        )

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            setup_log.error("Cannot open log file", log_file=log_file, error=str(e))
        else:
            _attach(root, file_handler, _formatter(json_output=True), numeric_level)

    if tui_mode:
        if HAS_TUI and TextualLogHandler is not None:
            _attach(root, TextualLogHandler(app=tui_app_instance), _formatter(json_output=False), numeric_level)
        else:
            setup_log.error("TUI log handler unavailable, is the 'tui' extra installed?")

    setup_log.debug(
        "Logging configured",
        level=logging.getLevelName(numeric_level),
        console=console_enabled,
        json_console=json_logs,
        log_file=log_file,
        tui=tui_mode,
    )


# 🔼⚙️
