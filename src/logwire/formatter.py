"""Human-readable line rendering for log records.

The renderer is the last structlog processor of every handler's
`ProcessorFormatter`. It lays a record out as::

    Jan  2 15:04:05.000 (/src/app/main.py:42 app.main.run) [INFO] [user:42] started

Caller annotations are produced by a pluggable `CallerFormatter` so the
default full-path rendering can be swapped for the short one.
"""

import datetime
from collections.abc import Callable
from pathlib import PurePath
from typing import Any, NamedTuple

from colorama import Fore, Style
from structlog.typing import EventDict, WrappedLogger

from .log_levels import level_name, method_level


class CallSite(NamedTuple):
    """Location a record was emitted from.

    Attributes:
        file:       Absolute path of the source file
        line:       Line number
        function:   Fully qualified function name (module.Class.method)
    """

    file: str
    line: int
    function: str


CallerFormatter = Callable[[CallSite], str]

# Event dict keys filled in by structlog's CallsiteParameterAdder
CALLSITE_KEYS = ("pathname", "lineno", "qual_module", "qual_name")

_RESERVED_KEYS = frozenset({"event", "level", "timestamp", "exception", "stack", *CALLSITE_KEYS})

_LEVEL_COLORS = {
    "trace": Fore.WHITE,
    "debug": Fore.WHITE,
    "warning": Fore.YELLOW,
    "error": Fore.RED,
    "fatal": Fore.RED,
}
_DEFAULT_COLOR = Fore.CYAN


def full_path_caller(site: CallSite) -> str:
    """Render the call site with the full file path and function name."""
    return f" ({site.file}:{site.line} {site.function})"


def short_caller(site: CallSite) -> str:
    """Render the call site with the file base name and the bare function name.

    >>> short_caller(CallSite("/a/b/pkg/file.go", 42, "pkg.Type.Method"))
    ' (file.go:42 Method) -> '
    """
    function = site.function.rsplit(".", 1)[-1]
    return f" ({PurePath(site.file).name}:{site.line} {function}) -> "


class NestedRenderer:
    """Render an event dict as a single nested-style text line.

    Args:
        timestamp_format:   strftime format, empty for "Jan _2 15:04:05.000"
        hide_keys:          Render fields as [value] instead of [key:value]
        show_full_level:    Render the whole level name instead of four letters
        caller_first:       Put the caller annotation before the level
        caller_formatter:   Renders the caller annotation
        colors:             Wrap the level and fields in ANSI color codes
    """

    def __init__(
            self,
            timestamp_format: str = "",
            hide_keys: bool = False,
            show_full_level: bool = False,
            caller_first: bool = False,
            caller_formatter: CallerFormatter = full_path_caller,
            colors: bool = True,
    ) -> None:
        self.timestamp_format = timestamp_format
        self.hide_keys = hide_keys
        self.show_full_level = show_full_level
        self.caller_first = caller_first
        self.caller_formatter = caller_formatter
        self.colors = colors

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        level = event_dict.get("level", method_name)
        if numeric := method_level(level):
            level = level_name(numeric)
        caller = self._format_caller(event_dict)

        parts = [self._format_timestamp(event_dict.get("timestamp"))]

        if self.caller_first:
            parts.append(caller)

        if self.colors:
            parts.append(_LEVEL_COLORS.get(level, _DEFAULT_COLOR))

        label = level.upper()
        parts.append(f" [{label if self.show_full_level else label[:4]}] ")
        parts.append(self._format_fields(event_dict))

        if self.colors:
            parts.append(Style.RESET_ALL)

        parts.append(str(event_dict.get("event", "")))

        if not self.caller_first:
            parts.append(caller)

        for key in ("stack", "exception"):
            if text := event_dict.get(key):
                parts.append("\n" + text)

        return "".join(parts)

    def _format_timestamp(self, timestamp: Any) -> str:
        if timestamp is None:
            stamp = datetime.datetime.now()
        elif isinstance(timestamp, (int, float)):
            stamp = datetime.datetime.fromtimestamp(timestamp)
        else:
            return str(timestamp)

        if self.timestamp_format:
            return stamp.strftime(self.timestamp_format)

        # Mirrors the classic "Jan _2 15:04:05.000" stamp
        return f"{stamp:%b} {stamp.day:2d} {stamp:%H:%M:%S}.{stamp.microsecond // 1000:03d}"

    def _format_caller(self, event_dict: EventDict) -> str:
        if "pathname" not in event_dict:
            return ""

        module = event_dict.get("qual_module")
        qual_name = event_dict.get("qual_name", "?")
        function = f"{module}.{qual_name}" if module else qual_name

        return self.caller_formatter(
            CallSite(event_dict["pathname"], event_dict.get("lineno", 0), function)
        )

    def _format_fields(self, event_dict: EventDict) -> str:
        keys = sorted(key for key in event_dict if key not in _RESERVED_KEYS)

        if self.hide_keys:
            return "".join(f"[{event_dict[key]}] " for key in keys)
        return "".join(f"[{key}:{event_dict[key]}] " for key in keys)
