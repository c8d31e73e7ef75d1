"""Shared fixtures for the logwire test suite."""

import io

import pytest

from logwire import FormatterConfig, LogConfig, RotationConfig, factory


@pytest.fixture
def console():
    """In-memory console stream."""
    return io.StringIO()


@pytest.fixture
def plain_formatter():
    """Formatter options without caller annotation, for exact line checks."""
    return FormatterConfig(timestamp_format="%Y", hide_keys=False)


@pytest.fixture
def make_config(plain_formatter):
    """Build a LogConfig with quiet defaults: no startup rotation, no caller."""

    def _make(level="trace", logfile="", rotation=None, formatter=None):
        return LogConfig(
            level=level,
            logfile=str(logfile) if logfile else "",
            rotation=rotation or RotationConfig(),
            formatter=formatter or plain_formatter,
        )

    return _make


@pytest.fixture
def fresh_state(monkeypatch):
    """Reset the process-wide default logger for one test."""
    state = factory.ConfigurationState()
    monkeypatch.setattr(factory, "_config_state", state)
    return state
