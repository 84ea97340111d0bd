#
# src/lode/tui/logging_handler.py
#
"""
A logging handler forwarding records to the Textual event log.
"""

import logging
from typing import TYPE_CHECKING

from lode.tui.messages import LogMessageUpdate

if TYPE_CHECKING:
    from textual.app import App


class TextualLogHandler(logging.Handler):
    """Posts every formatted record to the app as a LogMessageUpdate."""

    def __init__(self, app: "App", level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.app = app

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            framework_id = getattr(record, "framework_id", None)
            self.app.post_message(LogMessageUpdate(framework_id, record.levelname, message))
        except Exception:
            self.handleError(record)
