"""Configuration-driven logger factory with console and rotating file output.

This package assembles a ready-to-use structured logger from a small
configuration object, using structlog on top of the Python standard library
logging. Records are filtered by severity, rendered as human-readable
"nested" text lines and written to standard error and, optionally, to a log
file that is rotated by size and age.

Key Features:
    - Default configuration with a single optional log file argument
    - Trace level below debug, fatal above error
    - Unknown level names fall back to trace instead of failing
    - Rotating file output with timestamped, optionally gzipped backups
    - Retention of rotated files by count and by age
    - Rotation of the existing log file at startup
    - Optional caller annotation, with full paths or short names
    - TOML and JSON configuration files
    - Optional observer for configuration faults that were degraded

Basic Usage:
    ```python
    from logwire import LogConfig, new_logger

    # Console-only logging with defaults (trace level, caller annotation)
    logger = new_logger(LogConfig.create_default())
    logger.info("Using default console-only logging")

    # With a rotating log file
    logger = new_logger(LogConfig.create_default("logs/app.log"))
    logger.warning("Disk almost full", free_mb=120)

    # From a configuration file
    logger = new_logger(LogConfig.from_toml("config/logging.toml"))
    logger.trace("Very chatty")
    ```

    A process-wide default logger is also available:

    ```python
    from logwire import configure_logging, get_logger

    configure_logging("config/logging.toml")
    get_logger(component="db").info("Connected")
    ```

Configuration:
    ```toml
    loglevel = "info"          # (trace, debug, info, warn, error, fatal)
    logfile = "logs/app.log"   # empty or missing: console only

    [logrotation]
    maxsize = 10               # megabytes (0: 100)
    maxbackups = 30            # (0: keep all)
    maxage = 30                # days (0: no limit)
    localtime = true
    compress = false
    rotate_at_startup = true

    [logformatter]
    timestamp_format = ""      # strftime format, empty: "Jan _2 15:04:05.000"
    hide_keys = true
    show_full_level = false
    trace_caller = true
    caller_first = true
    full_path_caller = true
    ```

Implementation Notes:
    - Color codes are disabled for every destination once a log file is set
    - The log file is opened on the first record; write errors are reported
      through the standard library's handler error channel, not raised
    - Writes and rotations are serialized by the handler lock
    - Every record is flushed as it is written; `Logger.close` releases the file
"""

from .config import FormatterConfig, LogConfig, RotationConfig
from .factory import Logger, configure_logging, get_logger, new_logger
from .formatter import CallSite, NestedRenderer, full_path_caller, short_caller
from .log_levels import TRACE, parse_level
from .rotation import RotatingFileSink

default_config = LogConfig.create_default

__all__ = [
    "TRACE",
    "CallSite",
    "FormatterConfig",
    "LogConfig",
    "Logger",
    "NestedRenderer",
    "RotatingFileSink",
    "RotationConfig",
    "configure_logging",
    "default_config",
    "full_path_caller",
    "get_logger",
    "new_logger",
    "parse_level",
    "short_caller",
]
