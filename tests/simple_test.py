"""Example usage of the process-wide default logger."""

import structlog

from logwire import configure_logging, get_logger


def demonstrate_logging_features(logger) -> None:
    """Demonstrate various logging features.

    Args:
        logger: Configured logger instance
    """
    # Structured logging with additional context
    logger = logger.bind(user_id="123", service="example_service")
    logger.info("Application started", version="1.0.0")

    # Exception logging
    try:
        result = 1 / 0
        print(result)  # This won't execute
    except ZeroDivisionError:
        logger.exception("Error dividing by zero")

    # Context variables (thread/async safe)
    with structlog.contextvars.bound_contextvars(request_id="abc-123"):
        logger.trace("Processing request")
        logger.warning("Resource usage high", cpu_usage=85, memory_usage=90)


def test_console_fallback_before_configuration(fresh_state, capsys):
    logger = get_logger()
    logger.info("Using default console-only logging")

    assert not fresh_state.is_configured()
    assert get_logger() is logger
    assert "Using default console-only logging" in capsys.readouterr().err


def test_configure_from_file(fresh_state, tmp_path, capsys):
    logfile = tmp_path / "logs" / "app.log"
    config_path = tmp_path / "logging.toml"
    config_path.write_text(
        f'loglevel = "debug"\nlogfile = {str(logfile)!r}\n\n'
        "[logrotation]\nrotate_at_startup = true\n\n"
        "[logformatter]\nhide_keys = false\n",
        encoding="utf-8",
    )

    logger = configure_logging(config_path)
    demonstrate_logging_features(get_logger(component="demo"))
    logger.close()

    content = logfile.read_text(encoding="utf-8")
    assert "[component:demo]" in content
    assert "[request_id:abc-123]" in content
    assert "ZeroDivisionError" in content
    assert "Processing request" not in content  # trace is below debug
    assert "Resource usage high" in capsys.readouterr().err


def test_reconfiguration_is_refused(fresh_state, capsys):
    logger = configure_logging()

    try:
        configure_logging()
        raise AssertionError("configure_logging() accepted a second configuration")
    except RuntimeError as e:
        assert "already been configured" in str(e)

    # Original configuration still in use
    assert get_logger() is logger
    get_logger().info("Still using original configuration")
    assert "Still using original configuration" in capsys.readouterr().err
