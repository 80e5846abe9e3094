"""Log renderers for structured logging."""

import json
from datetime import UTC, datetime
from typing import Any

from colorama import Fore, Style, init

init(autoreset=True)

# Keys rendered in the log line prefix rather than as trailing fields
_PREFIX_KEYS = ("timestamp", "level", "logger", "correlation_id", "event")

_LEVEL_COLORS = {
    "debug": Fore.CYAN,
    "info": Fore.GREEN,
    "warning": Fore.YELLOW,
    "error": Fore.RED,
    "critical": Fore.RED + Style.BRIGHT,
}


def _format_value(value: Any) -> Any:
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _extra_fields(event_dict: dict[str, Any]) -> list[tuple[str, Any]]:
    return [
        (key, _format_value(value))
        for key, value in event_dict.items()
        if key not in _PREFIX_KEYS
    ]


class JSONFormatter:
    """Render events as one JSON object per line."""

    def __init__(self, ensure_ascii: bool = False):
        self.ensure_ascii = ensure_ascii

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> str:
        event_dict.setdefault("timestamp", datetime.now(UTC).isoformat())
        event_dict["level"] = method_name.upper()
        return json.dumps(event_dict, ensure_ascii=self.ensure_ascii, default=str)


class ConsoleFormatter:
    """Human-readable, optionally colored output for development."""

    def __init__(self, colors: bool = True):
        self.colors = colors

    def _paint(self, text: str, color: str) -> str:
        if not self.colors:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> str:
        parts = []

        if "timestamp" in event_dict:
            parts.append(f"[{_format_value(event_dict['timestamp'])}]")

        level = method_name.upper()
        parts.append(self._paint(level, _LEVEL_COLORS.get(method_name.lower(), "")))

        if "logger" in event_dict:
            parts.append(self._paint(f"[{event_dict['logger']}]", Fore.BLUE))
        if "correlation_id" in event_dict:
            parts.append(self._paint(f"[{event_dict['correlation_id']}]", Fore.MAGENTA))

        if event_dict.get("event"):
            parts.append(str(event_dict["event"]))

        extra = ", ".join(f"{key}={value}" for key, value in _extra_fields(event_dict))
        if extra:
            parts.append(self._paint(extra, Fore.WHITE))

        return " ".join(parts)


class StructuredFormatter:
    """Pipe-separated key=value output, stable for log scraping and tests."""

    def __init__(self, separator: str = " | "):
        self.separator = separator

    def __call__(
        self, logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> str:
        parts = []
        if "timestamp" in event_dict:
            parts.append(f"timestamp={_format_value(event_dict['timestamp'])}")
        parts.append(f"level={method_name.upper()}")
        for key in ("logger", "correlation_id"):
            if key in event_dict:
                parts.append(f"{key}={event_dict[key]}")
        if "event" in event_dict:
            parts.append(f"message={event_dict['event']}")
        parts.extend(f"{key}={value}" for key, value in _extra_fields(event_dict))
        return self.separator.join(parts)
