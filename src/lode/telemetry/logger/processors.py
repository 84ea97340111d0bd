#
# src/lode/telemetry/logger/processors.py
#
"""
structlog processors shared by every renderer.
"""

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

from lode.status import STATUS_EMOJI_MAP, Status

LEVEL_EMOJIS = {
    "debug": "🐛",
    "info": "ℹ️",
    "warning": "⚠️",
    "error": "❌",
    "critical": "💥",
}

# Keys that only make sense to the stdlib bridge and would clutter rendered output.
_EXTRA_KEYS = ("_record", "_from_structlog", "positional_args")


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event with an emoji for the new status, or for the log level."""
    event = event_dict.get("event")
    if not isinstance(event, str):
        return event_dict

    new_status = event_dict.get("new_status")
    emoji = None
    if new_status is not None:
        try:
            emoji = STATUS_EMOJI_MAP.get(Status.parse(new_status))
        except ValueError:
            emoji = None
    if emoji is None:
        level = event_dict.get("level") or method_name
        emoji = LEVEL_EMOJIS.get(str(level).lower(), "➡️")

    event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drops internal bookkeeping keys before rendering."""
    for key in _EXTRA_KEYS:
        event_dict.pop(key, None)
    return event_dict


def level_number(level: str | int) -> int:
    """Resolves a level name or number into a stdlib logging level, defaulting to INFO."""
    if isinstance(level, int):
        return level
    numeric: Any = logging.getLevelName(str(level).upper())
    return numeric if isinstance(numeric, int) else logging.INFO

# 🔼⚙️
