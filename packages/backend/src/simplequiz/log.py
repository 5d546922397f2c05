"""structlog setup.

Called once from the app factory. The request id bound by
RequestIdMiddleware reaches every log line through merge_contextvars.
"""

import logging

import structlog


def configure_logging(debug: bool = False, json_logs: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def token_prefix(token: str | None) -> str:
    """Short, non-replayable form of a bearer token for log lines."""
    if not token:
        return "-"
    return token[:8]
