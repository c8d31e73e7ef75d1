"""Log level definitions, parsing and filtering."""

import logging
from typing import Final, Literal, get_args

import structlog
from structlog.typing import EventDict

TRACE: Final = 5
logging.addLevelName(TRACE, "TRACE")

LogLevel = Literal["trace", "debug", "info", "warn", "warning", "error", "fatal", "critical", "panic"]
VALID_LOG_LEVELS = frozenset(get_args(LogLevel))

_NAME_TO_LEVEL: Final = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

# Logger method names as seen by structlog processors
_METHOD_TO_LEVEL: Final = {
    **_NAME_TO_LEVEL,
    "exception": logging.ERROR,
}

_LEVEL_TO_NAME: Final = {
    TRACE: "trace",
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}


def parse_level(name: str) -> int:
    """Convert a severity name into a numeric logging level.

    Args:
        name: Severity name, case-insensitive (e.g. "trace", "WARN")

    Returns:
        Numeric level understood by the standard library

    Raises:
        ValueError: If the name is not a recognized severity
    """
    try:
        return _NAME_TO_LEVEL[name.strip().lower()]
    except (KeyError, AttributeError) as e:
        msg = (
            f"Invalid logging level: {name!r}. "
            f"Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
        raise ValueError(msg) from e


def level_name(level: int) -> str:
    """Return the canonical name of a numeric level, or its stdlib name."""
    return _LEVEL_TO_NAME.get(level, logging.getLevelName(level).lower())


def method_level(method_name: str) -> int:
    """Numeric level of a logger method such as "info" or "exception"."""
    return _METHOD_TO_LEVEL.get(method_name, logging.NOTSET)


def filter_by_level(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Drop events below the wrapped logger's effective level.

    Works like `structlog.stdlib.filter_by_level` but also knows about the
    trace level. Must be the first processor in the chain.

    Raises:
        structlog.DropEvent: If the event is below the logger's level
    """
    if logger.isEnabledFor(method_level(method_name)):
        return event_dict
    raise structlog.DropEvent
