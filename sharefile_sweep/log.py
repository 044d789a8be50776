"""
Structured logging setup.

structlog is routed through the standard library so that library loggers
(``urllib3``, ``requests``) share the same handler.  Logs go to stderr;
stdout is reserved for the summary report.
"""
import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = False):
    """
    Configure structlog processors and a single stderr handler.

    Pipeline:
    1. Merge context variables
    2. Add log level and logger name
    3. Add ISO timestamps (UTC)
    4. Render exceptions
    5. Format as JSON (``json_logs``) or colored console lines
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.getLevelName(level))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # urllib3 connection chatter is noise below WARNING
    logging.getLogger("urllib3").setLevel(max(logging.WARNING, root_logger.level))
