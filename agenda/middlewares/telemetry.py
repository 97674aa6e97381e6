from __future__ import annotations

import time
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from agenda.core.logging import get_logger, set_request_id

# CSS da grade e healthchecks não precisam de request.start/end
QUIET_PREFIXES = ("/static/", "/healthz")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Amarra request_id (e, depois, a sessão da agenda) a todo log da requisição."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        structlog.contextvars.clear_contextvars()
        rid = set_request_id(request.headers.get("X-Request-ID"))
        quiet = request.url.path.startswith(QUIET_PREFIXES)

        log = get_logger(path=request.url.path, method=request.method)
        if not quiet:
            log.info("request.start")

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            log.exception("request.error", error=str(exc))
            raise

        response.headers["X-Request-ID"] = rid
        if not quiet:
            log.info(
                "request.end",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000.0, 2),
            )
        return response
