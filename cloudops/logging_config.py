"""Structured logging setup shared by the command-line tools.

Every tool emits its machine-consumable result on stdout (for example
``eval "$(assume-role ...)"``), so all log output is routed to stderr.
"""

import logging
import sys

import structlog

LOG_FORMATS = ("console", "json")


def configure_logging(level: str = "INFO", log_format: str = "console", verbose: bool = False) -> None:
    """Configure stdlib logging and structlog for a CLI invocation.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "console" for human-friendly output, "json" for one JSON object per line
        verbose: Force DEBUG level regardless of ``level``

    Raises:
        ValueError: If ``log_format`` is not one of LOG_FORMATS
    """
    log_format = log_format.lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Invalid log format: {log_format}. Must be one of {list(LOG_FORMATS)}")

    resolved_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    # force=True so repeated invocations in one process (tests, CliRunner) reconfigure cleanly
    logging.basicConfig(level=resolved_level, stream=sys.stderr, format="%(message)s", force=True)

    use_json_logs = log_format == "json"
    renderer = (
        structlog.processors.JSONRenderer()
        if use_json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
