# src/tconsole/telemetry/logger/processors.py

"""
structlog processors shared by every tconsole log renderer.
"""

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS: dict[Any, str] = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
    "server": "🖥️",
    "worker": "🍴",
    "channel": "🔌",
    "config": "📄",
    "time": "⏱️",
    "general": "➡️",
}

# Keys that only make sense to the processors themselves.
_INTERNAL_KEYS = ("emoji_key",)


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event with an emoji picked from ``emoji_key`` or the log level."""
    key = event_dict.get("emoji_key")
    if key is None:
        key = logging.getLevelName(method_name.upper())
    emoji = LOG_EMOJIS.get(key, LOG_EMOJIS["general"])
    event = event_dict.get("event")
    if isinstance(event, str):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in _INTERNAL_KEYS:
        event_dict.pop(key, None)
    return event_dict


# 🔼⚙️
