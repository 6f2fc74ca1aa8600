"""structlog setup shared by the API, the notification worker and the admin CLI.

Structured events from `structlog.get_logger()` and plain stdlib records from
uvicorn, dramatiq or SQLAlchemy go through the same processor chain and end up
on one stdout handler, rendered either for a terminal or as JSON lines.
"""

import logging
import sys
from typing import Literal

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from fulfillment.config import settings

LogFormat = Literal["console", "json"]

# Third-party loggers and the level they are capped at
QUIET_LOGGERS: dict[str, int] = {
    "httpx": logging.INFO,
    "httpcore": logging.WARNING,
    "asyncio": logging.INFO,
    "dramatiq": logging.INFO,
    "aiosqlite": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,  # settings.database_echo turns SQL echo on separately
    "sqlalchemy.pool": logging.WARNING,
}


def add_environment(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Tag every event with the deployment environment unless already bound."""
    event_dict.setdefault("env", settings.env)
    return event_dict


def resolve_log_format(log_format: str | None = None) -> LogFormat:
    """Explicit format, else settings.log_format, else JSON in production only."""
    value = (log_format or settings.log_format or ("json" if settings.env == "prod" else "console")).lower()
    if value not in ("console", "json"):
        raise ValueError(f"Unknown log format {value!r}, expected 'console' or 'json'")
    return value  # type: ignore[return-value]


def shared_processors(log_format: LogFormat) -> list[Processor]:
    """Processors applied to structlog events and foreign stdlib records alike."""
    timestamper = (
        structlog.processors.TimeStamper(fmt="iso", utc=True)
        if log_format == "json"
        else structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_environment,
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def build_renderer(log_format: LogFormat) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog and stdlib logging to a single stdout handler.

    Args:
        level: Root level name; defaults to settings.log_level.
        log_format: "console" or "json"; see resolve_log_format().
    """
    fmt = resolve_log_format(log_format)
    processors = shared_processors(fmt)

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, build_renderer(fmt)],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    for name, cap in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(cap)


_configured = False


def setup_logging() -> None:
    """Configure logging on first call; later calls are no-ops."""
    global _configured
    if not _configured:
        configure_logging()
        _configured = True
