"""Processor chain and handler creation for the logger factory.

This module builds the pieces `new_logger` assembles: the structlog processor
chain every record goes through, the line renderer, and the console and
rotating file handlers the records fan out to.
"""

import logging
import sys
from typing import TextIO

import colorama
import structlog
from structlog.processors import CallsiteParameter
from structlog.types import Processor

from .config import FormatterConfig, RotationConfig
from .formatter import NestedRenderer, full_path_caller, short_caller
from .log_levels import filter_by_level
from .rotation import RotatingFileSink

CALLSITE_PARAMETERS = (
    CallsiteParameter.PATHNAME,
    CallsiteParameter.LINENO,
    CallsiteParameter.QUAL_MODULE,
    CallsiteParameter.QUAL_NAME,
)


def create_shared_processors(config: FormatterConfig) -> list[Processor]:
    """Create the structlog processor chain of a logger.

    The chain runs once per record before it is handed to the standard library
    logger, so every handler receives the same event dict.

    Args:
        config: Formatter options, used to decide whether call sites are captured

    Returns:
        List of structlog processors ending with the handoff to `ProcessorFormatter`
    """
    processors: list[Processor] = [
        # Level filtering first, so dropped records cost nothing
        filter_by_level,

        # Context management
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),

        # Error handling and stack traces
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,

        # Rendered by the formatter, which applies the configured format
        structlog.processors.TimeStamper(fmt=None, utc=True),
    ]

    if config.trace_caller:
        # Skip our own frames so the annotation points at the caller
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                CALLSITE_PARAMETERS,
                additional_ignores=[f"{__package__}."],
            )
        )

    processors.append(structlog.stdlib.ProcessorFormatter.wrap_for_formatter)
    return processors


def create_renderer(config: FormatterConfig, colors: bool = True) -> NestedRenderer:
    """Create the line renderer described by the formatter options.

    Args:
        config: Formatter options
        colors: Emit ANSI color codes

    Returns:
        Configured NestedRenderer
    """
    return NestedRenderer(
        timestamp_format=config.timestamp_format,
        hide_keys=config.hide_keys,
        show_full_level=config.show_full_level,
        caller_first=config.caller_first,
        caller_formatter=full_path_caller if config.full_path_caller else short_caller,
        colors=colors,
    )


def create_console_handler(renderer: NestedRenderer, stream: TextIO | None = None) -> logging.Handler:
    """Create a console handler writing to standard error.

    Args:
        renderer:   Line renderer shared by all handlers of the logger
        stream:     Stream to write to, `sys.stderr` if omitted

    Returns:
        Configured StreamHandler instance
    """
    if renderer.colors:
        colorama.just_fix_windows_console()

    handler = logging.StreamHandler(sys.stderr if stream is None else stream)
    handler.setFormatter(_create_formatter(renderer))
    return handler


def create_file_handler(
        logfile: str,
        config: RotationConfig,
        renderer: NestedRenderer
) -> RotatingFileSink:
    """Create a rotating file handler.

    The file itself is only opened on the first record, so an unwritable
    path surfaces through the handler's error reporting, not here.

    Args:
        logfile:    Path of the active log file
        config:     Rotation policy
        renderer:   Line renderer shared by all handlers of the logger

    Returns:
        Configured RotatingFileSink instance
    """
    handler = RotatingFileSink(
        logfile,
        max_size=config.max_size,
        max_backups=config.max_backups,
        max_age=config.max_age,
        localtime=config.localtime,
        compress=config.compress,
    )
    handler.setFormatter(_create_formatter(renderer))
    return handler


def _create_formatter(renderer: NestedRenderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
