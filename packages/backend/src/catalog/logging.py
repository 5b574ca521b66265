"""structlog configuration.

Learn: structlog renders every event as key=value pairs (or JSON in
production) and hands the rendered line to the stdlib logger named
after the calling module. Two handlers hang off the "catalog" logger:
the console, and logs/error.log, which receives WARNING and above
(unexpected failures, unknown routes, refused requests) so they survive
a restart. The "catalog.access" logger also writes logs/access.log.
"""

import logging
from pathlib import Path
from typing import Any

import structlog

# Per-request access lines, written to access.log
ACCESS_LOGGER = "catalog.access"

_SECRET_KEYS = ("password", "secret", "token", "authorization")


def _redact_secrets(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Never let credentials reach a log line."""
    for key in list(event_dict):
        if key == "event":
            continue
        if any(s in key.lower() for s in _SECRET_KEYS):
            event_dict[key] = "***"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_dir: str = "logs",
) -> None:
    """Configure structlog + stdlib handlers. Safe to call more than once."""
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    app_logger = logging.getLogger("catalog")
    app_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    access_logger = logging.getLogger(ACCESS_LOGGER)
    for logger in (app_logger, access_logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(message)s"))
    app_logger.addHandler(console)

    # Durable error log: failures, 404s, refused and degraded requests
    error_file = logging.FileHandler(log_path / "error.log", encoding="utf-8")
    error_file.setLevel(logging.WARNING)
    error_file.setFormatter(logging.Formatter("%(message)s"))
    app_logger.addHandler(error_file)

    # One line per request; still propagates to the console
    access_file = logging.FileHandler(log_path / "access.log", encoding="utf-8")
    access_file.setFormatter(logging.Formatter("%(message)s"))
    access_logger.addHandler(access_file)
