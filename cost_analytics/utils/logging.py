"""
Structured logging configuration for the cost analytics engine.
"""

import sys
import structlog
import os


def should_use_human_readable() -> bool:
    """Determine if we should use human-readable output"""
    if os.getenv("LOG_FORMAT") == "json":
        return False

    if os.getenv("LOG_FORMAT") == "human":
        return True

    # Auto-detect: use human readable if stdout is a TTY
    return sys.stdout.isatty()


def configure_logging(
    level: str = "INFO", format_type: str = "auto", component: str = None
) -> None:
    """
    Configure structured logging

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ("auto", "json", "human")
        component: Optional component name added to every event
    """
    if format_type == "auto":
        use_human = should_use_human_readable()
    else:
        use_human = format_type == "human"

    processors = [
        structlog.processors.TimeStamper(fmt="%H:%M:%S" if use_human else "ISO"),
        structlog.processors.add_log_level,
    ]

    if component:

        def add_component(logger, method_name, event_dict):
            event_dict["component"] = component
            return event_dict

        processors.append(add_component)

    processors.append(structlog.processors.StackInfoRenderer())
    if use_human:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    level_map = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40, "CRITICAL": 50}
    log_level = level_map.get(level.upper(), 20)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None):
    """Get a configured logger instance"""
    return structlog.get_logger(name)


def setup_logging(verbose: bool = False, json_format: bool = False) -> None:
    """
    Quick setup function for common use cases

    Args:
        verbose: Enable DEBUG level logging
        json_format: Force JSON output format
    """
    level = "DEBUG" if verbose else "INFO"
    format_type = "json" if json_format else "auto"
    configure_logging(level=level, format_type=format_type)
