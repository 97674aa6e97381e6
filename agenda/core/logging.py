from __future__ import annotations

import logging
import sys
import uuid

import structlog

SERVICE_NAME = "dental-agenda"

# rótulos curtos para o log; ids de sessão completos não vão para o log
SESSION_PREFIX_LEN = 8


def get_logger(**initial) -> structlog.BoundLogger:
    return structlog.get_logger(**initial)


def _add_service(_, __, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(json: bool = True, level: str = "INFO") -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, stream=sys.stdout, format="%(message)s")
    # httpx loga cada requisição em INFO; a agenda já registra api.*
    logging.getLogger("httpx").setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def set_request_id(req_id: str | None) -> str:
    rid = req_id or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=rid)
    return rid


def session_label(session_id: str) -> str:
    return session_id[:SESSION_PREFIX_LEN]


def set_calendar_session(session_id: str | None) -> None:
    if session_id:
        structlog.contextvars.bind_contextvars(calendar_session=session_label(session_id))
