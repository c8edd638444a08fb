"""structlog setup shared by the search API and the backfill job.

Every log line carries the service name, level, ISO timestamp and logger
name, and is rendered as JSON or, with ``HS_LOG_FORMAT=console``, as
colourised text. Raw user queries show up in many events, so they are cut
to ``MAX_QUERY_LOG_LENGTH`` characters before rendering.

Typical usage
- Call ``configure_logging(service_name, log_level, log_format)`` once at startup
- Wrap a retrieval path in ``search_context(path)`` to tag its events
"""

import logging
import sys
from typing import Any, ContextManager, MutableMapping

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

MAX_QUERY_LOG_LENGTH = 200


def truncate_query(
    logger: Any,
    method_name: str,
    event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor bounding the ``query`` field."""
    query = event_dict.get("query")
    if isinstance(query, str) and len(query) > MAX_QUERY_LOG_LENGTH:
        event_dict["query"] = query[:MAX_QUERY_LOG_LENGTH] + "..."
        event_dict["query_length"] = len(query)
    return event_dict


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
) -> None:
    """Route structlog through stdlib logging on stdout.

    Parameters
    - service_name: bound into the context of every event as ``service``
    - log_level: stdlib level name, case-insensitive
    - log_format: ``json``; anything else selects the console renderer
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
        truncate_query,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def search_context(path: str) -> ContextManager[Any]:
    """Tag events logged inside the block with ``search_path``."""
    return structlog.contextvars.bound_contextvars(search_path=path)


def log_performance(operation: str, duration_ms: float, **kwargs: Any) -> None:
    """Log the elapsed time of one unit of work.

    ``kwargs`` become extra fields, e.g. ``results_count``.
    """
    get_logger("performance").info(
        f"Operation {operation} completed",
        operation=operation,
        duration_ms=round(duration_ms, 3),
        **kwargs
    )
