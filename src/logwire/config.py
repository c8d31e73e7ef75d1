"""Configuration handling for the logger factory.

This module defines the configuration schema consumed by `new_logger` and the
parsing of that schema from TOML, JSON or plain mappings. The key names used
in external files are the wire contract:

    ```toml
    loglevel = "info"
    logfile = "logs/app.log"

    [logrotation]
    maxsize = 10              # megabytes
    maxbackups = 30
    maxage = 30               # days
    localtime = true
    compress = false
    rotate_at_startup = true

    [logformatter]
    timestamp_format = "%Y-%m-%d %H:%M:%S"
    hide_keys = true
    show_full_level = false
    trace_caller = true
    caller_first = true
    full_path_caller = false
    ```

Missing keys take their zero value and missing sections are left unset.
"""

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import tomllib

from .log_levels import LogLevel


@dataclass(frozen=True, slots=True)
class RotationConfig:
    """Rotation policy for the log file.

    Attributes:
        max_size:           Size in megabytes before the file is rotated (0: 100MB)
        max_backups:        Number of rotated files to retain (0: keep all)
        max_age:            Days to retain rotated files (0: no age limit)
        localtime:          Use local time instead of UTC in backup names
        compress:           Gzip rotated files
        rotate_at_startup:  Rotate the existing file when the logger is created
    """

    max_size: int = 0
    max_backups: int = 0
    max_age: int = 0
    localtime: bool = False
    compress: bool = False
    rotate_at_startup: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values after initialization.

        Raises:
            ValueError: If any of the size, backup or age limits is negative
        """
        for name in ("max_size", "max_backups", "max_age"):
            if getattr(self, name) < 0:
                msg = f"{name} must be a non-negative integer"
                raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class FormatterConfig:
    """Options of the human-readable line formatter.

    Attributes:
        timestamp_format:   strftime format for timestamps (empty: "Jan _2 15:04:05.000")
        hide_keys:          Render fields as [value] instead of [key:value]
        show_full_level:    Render WARNING instead of WARN
        trace_caller:       Capture and render the call site of every record
        caller_first:       Put the call site before the message
        full_path_caller:   Render the full path and qualified function name
    """

    timestamp_format: str = ""
    hide_keys: bool = False
    show_full_level: bool = False
    trace_caller: bool = False
    caller_first: bool = False
    full_path_caller: bool = False


@dataclass(frozen=True, slots=True)
class LogConfig:
    """Complete logger configuration.

    The level is deliberately not validated: an unknown name makes the
    assembled logger fall back to the most verbose level.

    Attributes:
        level:      Severity name (trace, debug, info, warn, error, fatal)
        logfile:    Path of the log file, empty for console-only output
        rotation:   Rotation policy for the log file
        formatter:  Line formatter options
    """

    level: LogLevel | str = "trace"
    logfile: str = ""
    rotation: RotationConfig | None = None
    formatter: FormatterConfig | None = None

    @classmethod
    def create_default(cls, logfile: str | Path | None = None) -> "LogConfig":
        """Create a LogConfig with sensible defaults.

        Creates a configuration with:
        - trace level logging
        - 10MB files, 30 backups kept for 30 days, rotated at startup
        - caller annotation with full paths, placed before the message

        Args:
            logfile: Optional log file path, console-only output if omitted

        Returns:
            LogConfig instance with default settings
        """
        return cls(
            level="trace",
            logfile=str(logfile) if logfile else "",
            rotation=RotationConfig(
                max_size=10,
                max_backups=30,
                max_age=30,
                localtime=True,
                rotate_at_startup=True,
            ),
            formatter=FormatterConfig(
                hide_keys=True,
                trace_caller=True,
                caller_first=True,
                full_path_caller=True,
            ),
        )

    @classmethod
    def from_toml(cls, config_path: str | Path) -> "LogConfig":
        """Create a LogConfig from a TOML file.

        Raises:
            FileNotFoundError:  If the configuration file doesn't exist
            ValueError:         If the file is malformed or holds invalid values
        """
        config_path = Path(config_path)
        try:
            with config_path.open("rb") as f:
                data = tomllib.load(f)

        except FileNotFoundError as e:
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg) from e

        except tomllib.TOMLDecodeError as e:
            msg = f"Failed to parse TOML file {config_path}: {e}"
            raise ValueError(msg) from e

        return cls.from_mapping(data)

    @classmethod
    def from_json(cls, config_path: str | Path) -> "LogConfig":
        """Create a LogConfig from a JSON file.

        Raises:
            FileNotFoundError:  If the configuration file doesn't exist
            ValueError:         If the file is malformed or holds invalid values
        """
        config_path = Path(config_path)
        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)

        except FileNotFoundError as e:
            msg = f"Configuration file not found: {config_path}"
            raise FileNotFoundError(msg) from e

        except json.JSONDecodeError as e:
            msg = f"Failed to parse JSON file {config_path}: {e}"
            raise ValueError(msg) from e

        return cls.from_mapping(data)

    @classmethod
    def from_file(cls, config_path: str | Path) -> "LogConfig":
        """Create a LogConfig from a .toml or .json file, chosen by suffix."""
        config_path = Path(config_path)
        if config_path.suffix.lower() == ".json":
            return cls.from_json(config_path)
        return cls.from_toml(config_path)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LogConfig":
        """Create a LogConfig from a mapping using the wire key names.

        The keys may also be nested under a top-level "logging" table.

        Raises:
            ValueError: If a value has the wrong type or is out of range
        """
        if not isinstance(data, Mapping):
            msg = f"Configuration must be a mapping, got {type(data).__name__}"
            raise ValueError(msg)

        if isinstance(data.get("logging"), Mapping):
            data = data["logging"]

        try:
            return cls(
                level=_as_str(data.get("loglevel", ""), "loglevel"),
                logfile=_as_str(data.get("logfile", ""), "logfile"),
                rotation=_parse_rotation(data.get("logrotation")),
                formatter=_parse_formatter(data.get("logformatter")),
            )

        except (TypeError, ValueError) as e:
            msg = f"Invalid value in logging configuration: {e!s}"
            raise ValueError(msg) from e

    def to_mapping(self) -> dict[str, Any]:
        """Return the configuration using the wire key names."""
        data: dict[str, Any] = {"loglevel": self.level, "logfile": self.logfile}

        if self.rotation is not None:
            rotation = asdict(self.rotation)
            data["logrotation"] = {
                _ROTATION_KEYS[name]: value for name, value in rotation.items()
            }

        if self.formatter is not None:
            data["logformatter"] = asdict(self.formatter)

        return data


# Dataclass field name -> wire key
_ROTATION_KEYS = {
    "max_size": "maxsize",
    "max_backups": "maxbackups",
    "max_age": "maxage",
    "localtime": "localtime",
    "compress": "compress",
    "rotate_at_startup": "rotate_at_startup",
}


def _parse_rotation(section: Mapping[str, Any] | None) -> RotationConfig | None:
    """Create a RotationConfig from the "logrotation" section."""
    if section is None:
        return None
    if not isinstance(section, Mapping):
        msg = "logrotation must be a table"
        raise TypeError(msg)

    values = {}
    for field in fields(RotationConfig):
        key = _ROTATION_KEYS[field.name]
        if key not in section:
            continue
        values[field.name] = (
            _as_bool(section[key], key) if field.type in (bool, "bool") else _as_int(section[key], key)
        )

    return RotationConfig(**values)


def _parse_formatter(section: Mapping[str, Any] | None) -> FormatterConfig | None:
    """Create a FormatterConfig from the "logformatter" section."""
    if section is None:
        return None
    if not isinstance(section, Mapping):
        msg = "logformatter must be a table"
        raise TypeError(msg)

    values = {}
    for field in fields(FormatterConfig):
        if field.name not in section:
            continue
        value = section[field.name]
        values[field.name] = (
            _as_str(value, field.name) if field.name == "timestamp_format" else _as_bool(value, field.name)
        )

    return FormatterConfig(**values)


def _as_str(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    msg = f"{key} must be a string, got {value!r}"
    raise TypeError(msg)


def _as_int(value: Any, key: str) -> int:
    # bool is an int subclass, but "maxsize = true" is a mistake
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    msg = f"{key} must be an integer, got {value!r}"
    raise TypeError(msg)


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    msg = f"{key} must be a boolean, got {value!r}"
    raise TypeError(msg)
