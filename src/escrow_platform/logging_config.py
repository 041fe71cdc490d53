"""structlog setup shared by the API, the simulation and the tests.

Both structlog loggers and plain stdlib loggers (uvicorn, SQLAlchemy) go
through one ``ProcessorFormatter`` so their output looks the same. Entries
carry whatever the request middleware bound (request_id, method, path,
user_id); secrets are masked before rendering.

    setup_logging("INFO")
    logger = get_logger(__name__)
    logger.info("deal.funded", deal_id=7, amount="250.00")
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.types import EventDict, Processor

    from escrow_platform.config import Settings

SECRET_KEYS = frozenset({"password", "credential", "credential_hash", "admin_token", "token"})
REDACTED = "***"

# Third-party loggers that drown out deal events below WARNING.
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "httpx")


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    for key in event_dict.keys() & SECRET_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        redact_secrets,
    ]


def _renderers(json_logs: bool) -> list[Processor]:
    if json_logs:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    # ConsoleRenderer formats exc_info itself.
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """Route structlog and stdlib logging to stdout at ``log_level``."""
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(json_logs),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings(settings: Settings) -> None:
    """JSON lines everywhere except a development box."""
    setup_logging(settings.app_log_level, json_logs=not settings.is_development)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
