#
# src/lode/runtime/tui_interface.py
#
"""
The runtime's only way of talking to the Textual app. Without an app (headless
runs) or without textual installed every call is a no-op.
"""

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Optional

import structlog

from lode.telemetry import StructLogger

try:
    from lode.tui.messages import FrameworksReady, LogMessageUpdate, NuggetUpdate

    TEXTUAL_AVAILABLE = True
except ImportError:
    TEXTUAL_AVAILABLE = False
    FrameworksReady = LogMessageUpdate = NuggetUpdate = None  # type: ignore

if TYPE_CHECKING:
    from textual.message import Message

    from lode.tui.app import LodeTuiApp

log: StructLogger = structlog.get_logger("runtime.tui_interface")


class TUIInterface:
    """Turns tree changes and log lines into app messages."""

    def __init__(self, app: Optional["LodeTuiApp"]):
        self.app = app
        self.is_active = app is not None and TEXTUAL_AVAILABLE

    def _post(self, build: Callable[[], "Message"], what: str) -> None:
        if not self.is_active or self.app is None:
            return
        try:
            self.app.post_message(build())
        except Exception as e:
            # Not routed back to the TUI, that would loop.
            log.warning("Could not post to TUI", message=what, error=str(e))

    def post_nugget_update(self, framework_id: str, event: str, payload: Mapping[str, Any]) -> None:
        self._post(lambda: NuggetUpdate(framework_id, event, dict(payload)), "nugget_update")

    def post_frameworks_ready(self, framework_ids: list[str]) -> None:
        self._post(lambda: FrameworksReady(list(framework_ids)), "frameworks_ready")

    def post_log_update(self, framework_id: str | None, level: str, message: str) -> None:
        self._post(lambda: LogMessageUpdate(framework_id, level.upper(), message), "log")


# 🔼⚙️
