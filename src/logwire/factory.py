"""Factory module for assembling configured loggers.

`new_logger` turns a `LogConfig` into a ready-to-use `Logger`: a private
standard library logger filtered by severity, fanning out to the console and,
when a log file is configured, to a rotating file. Configuration faults never
abort the assembly; they degrade to defaults and are reported to an optional
observer instead.

The module also keeps a process-wide default logger. It can only be
configured once; if it is accessed before configuration, a console-only
logger built from the defaults is used.
"""

import itertools
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Final, TextIO

import structlog

from .config import FormatterConfig, LogConfig, RotationConfig
from .handlers import create_console_handler, create_file_handler, create_renderer, create_shared_processors
from .log_levels import TRACE, parse_level

FaultObserver = Callable[[str, Exception], None]

_logger_ids: Final = itertools.count(1)


class _StdlibLogger(logging.Logger):
    """Standard library logger that knows the trace level."""

    def trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)


class Logger(structlog.stdlib.BoundLogger):
    """Handle returned by `new_logger`.

    A structlog `BoundLogger` with an additional trace level. Every handler
    flushes after each record; `close` releases the log file.
    """

    def trace(self, event: str | None = None, *args: Any, **kw: Any) -> Any:
        """Process event and log it at the trace level."""
        return self._proxy_to_logger("trace", event, *args, **kw)

    def log(self, level: int, event: str | None = None, *args: Any, **kw: Any) -> Any:
        """Process event and log it at the numeric *level*, trace included."""
        if level == TRACE:
            return self._proxy_to_logger("trace", event, *args, **kw)
        return super().log(level, event, *args, **kw)

    def close(self) -> None:
        """Flush and close every handler of this logger."""
        for handler in list(self._logger.handlers):
            handler.close()
            self._logger.removeHandler(handler)


def new_logger(
        config: LogConfig,
        *,
        name: str | None = None,
        on_fault: FaultObserver | None = None,
        stream: TextIO | None = None,
) -> Logger:
    """Assemble a logger from a configuration.

    The assembly:
    1. Resolves the level, falling back to trace for unknown names
    2. Enables call-site capture if the formatter traces callers
    3. Builds the line renderer, with short caller annotations unless full paths are requested
    4. Sends records to the console
    5. Adds a rotating log file when one is configured, rotating it first if requested
    6. Installs everything on a private severity-filtered logger

    Args:
        config:     Logger configuration
        name:       Name of the underlying standard library logger
        on_fault:   Called with a message and the exception for every fault that was
                    degraded instead of raised (unknown level, failed startup rotation)
        stream:     Console stream, `sys.stderr` if omitted

    Returns:
        Configured Logger instance
    """
    formatter_config = config.formatter or FormatterConfig()
    rotation_config = config.rotation or RotationConfig()

    try:
        level = parse_level(config.level)
    except ValueError as e:
        level = TRACE
        _report(on_fault, f"Unknown log level {config.level!r}, using trace", e)

    renderer = create_renderer(formatter_config, colors=not config.logfile)
    handlers = [create_console_handler(renderer, stream)]

    if config.logfile:
        file_handler = create_file_handler(config.logfile, rotation_config, renderer)

        if rotation_config.rotate_at_startup:
            try:
                file_handler.rollover()
            except OSError as e:
                _report(on_fault, f"Failed to rotate {config.logfile} at startup", e)

        handlers.append(file_handler)

    stdlib_logger = _StdlibLogger(name or f"logwire.{next(_logger_ids)}", level)
    stdlib_logger.propagate = False
    for handler in handlers:
        stdlib_logger.addHandler(handler)

    return Logger(
        stdlib_logger,
        processors=create_shared_processors(formatter_config),
        context={},
    )


def _report(on_fault: FaultObserver | None, message: str, error: Exception) -> None:
    if on_fault is not None:
        on_fault(message, error)


class ConfigurationState:
    """Manages the process-wide default logger.

    Provides thread-safe access to the default logger and ensures that it can
    only be configured once.

    Attributes:
        _logger:    Configured default logger
        _fallback:  Console-only logger used before configuration
        _lock:      Threading lock for thread-safe state modifications
    """

    def __init__(self) -> None:
        """Initialize the configuration state."""
        self._logger: Logger | None = None
        self._fallback: Logger | None = None
        self._lock: Final = threading.Lock()

    def is_configured(self) -> bool:
        """Check if the default logger has been configured.

        Returns:
            True if logging has been configured, False otherwise
        """
        return self._logger is not None

    def get_logger(self) -> Logger:
        """Get the default logger, or the console-only fallback.

        Returns:
            Configured Logger, or a console-only one built from the defaults
        """
        if self._logger is not None:
            return self._logger

        with self._lock:
            if self._logger is not None:
                return self._logger
            if self._fallback is None:
                self._fallback = new_logger(LogConfig.create_default(), name="logwire")
            return self._fallback

    def set_logger(self, logger: Logger) -> None:
        """Set the default logger.

        Args:
            logger: Logger to use as the process-wide default

        Raises:
            RuntimeError: If logging has already been configured
        """
        with self._lock:
            if self._logger is not None:
                msg = (
                    "Logging has already been configured. "
                    "configure_logging() should only be called once."
                )
                raise RuntimeError(msg)
            self._logger = logger


# Global configuration state
_config_state: Final = ConfigurationState()


def configure_logging(
        config: LogConfig | str | Path | None = None,
        *,
        on_fault: FaultObserver | None = None,
) -> Logger:
    """Configure the process-wide default logger.

    Args:
        config:     A LogConfig, a path to a .toml or .json configuration file,
                    or None for the defaults (console only)
        on_fault:   Observer for degraded configuration, see `new_logger`

    Returns:
        The configured default Logger

    Raises:
        RuntimeError: If logging has already been configured
    """
    if _config_state.is_configured():
        msg = (
            "Logging has already been configured. "
            "configure_logging() should only be called once."
        )
        raise RuntimeError(msg)

    if config is None:
        config = LogConfig.create_default()
    elif not isinstance(config, LogConfig):
        config = LogConfig.from_file(config)

    logger = new_logger(config, name="logwire", on_fault=on_fault)
    try:
        _config_state.set_logger(logger)
    except RuntimeError:
        logger.close()
        raise
    return logger


def get_logger(**initial_values: Any) -> Logger:
    """Get the process-wide default logger.

    If logging hasn't been configured yet, returns a console-only logger.

    Args:
        **initial_values: Context to bind to the returned logger

    Returns:
        Default Logger, bound with the given context
    """
    logger = _config_state.get_logger()
    return logger.bind(**initial_values) if initial_values else logger
