#
# src/lode/tui/messages.py
#
"""
Messages posted to the Textual app from the runtime.
"""

from typing import Any

from textual.message import Message


class NuggetUpdate(Message):
    """Render payload of one suite or test whose state changed."""

    def __init__(self, framework_id: str, event: str, payload: dict[str, Any]) -> None:
        self.framework_id = framework_id
        self.event = event
        self.payload = payload
        super().__init__()

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(self.payload.get("identifiers", ()))


class FrameworksReady(Message):
    """The orchestrator finished building its frameworks."""

    def __init__(self, framework_ids: list[str]) -> None:
        self.framework_ids = framework_ids
        super().__init__()


class LogMessageUpdate(Message):
    """A log line for the event log pane."""

    def __init__(self, framework_id: str | None, level: str, message: str) -> None:
        self.framework_id = framework_id
        self.level = level
        self.message = message
        super().__init__()
