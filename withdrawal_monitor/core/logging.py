"""
Logging setup for the monitor.

Services log dot-namespaced structlog events (``poller.cycle_completed``,
``rpc.endpoint_rotated``). Development renders them for the console;
staging and production emit one JSON object per line.
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from typing import Any

import structlog
from fastapi import Request

# Chatty transports used by web3 and the Telegram client
_NOISY_LOGGERS = ("web3", "aiohttp", "httpx", "httpcore", "urllib3")


def configure_logging(env: str = "development", debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer: Any
    if env == "development":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Bind a request id to every log line of an HTTP request and echo it back."""
    start = time.perf_counter()
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
    finally:
        structlog.get_logger("withdrawal_monitor.http").info(
            "http.request_completed",
            method=request.method,
            status=status,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        structlog.contextvars.clear_contextvars()

    response.headers["x-request-id"] = request_id
    return response
