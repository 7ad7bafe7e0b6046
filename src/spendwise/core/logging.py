"""
JSON log lines for the extraction service.

Every record is one JSON object: ``ts``, ``level``, ``logger``, ``event`` plus the
event's fields. Fields bound with ``log_context`` (the request id, the user whose
mail is being ingested, the worker task id) are added to every line emitted inside
that scope, so call sites only pass what is specific to the event.
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from spendwise.core.config import settings

ROOT_LOGGER = "spendwise"

_bound: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("log_context")


def _bound_fields() -> dict[str, Any]:
    return _bound.get({})


def _with_bound(fields: dict[str, Any]) -> dict[str, Any]:
    return {**_bound_fields(), **{k: v for k, v in fields.items() if v is not None}}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).strftime(
                "%Y-%m-%dT%H:%M:%S.%fZ"
            ),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", None) or record.getMessage(),
        }
        payload.update(_bound_fields())
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            payload.update((k, v) for k, v in fields.items() if v is not None)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=True)


_configured = False


def configure_logging() -> None:
    global _configured  # noqa: PLW0603
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(logging.getLevelNamesMapping().get(settings.log_level.upper(), logging.INFO))
    root.handlers = [handler]
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind ``fields`` to every log line emitted until the block exits."""
    token = _bound.set(_with_bound(fields))
    try:
        yield
    finally:
        _bound.reset(token)


def bind_log_fields(**fields: Any) -> None:
    # Visible to the rest of the current context, e.g. one request.
    _bound.set(_with_bound(fields))


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    logger.log(level, event, extra={"event": event, "fields": fields})


def log_exception(logger: logging.Logger, event: str, **fields: Any) -> None:
    logger.exception(event, extra={"event": event, "fields": fields})


def text_snippet(text: str | None, max_len: int = 200) -> str | None:
    """Collapse whitespace and cut ``text`` down to something safe to put in a log line."""
    if not text:
        return None
    s = " ".join(text.split())
    if len(s) <= max_len:
        return s
    return s[: max_len - 3].rstrip() + "..."


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        with log_context(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                log_exception(
                    get_logger(__name__),
                    "http.request.error",
                    method=request.method,
                    path=request.url.path,
                )
                raise
        response.headers["x-request-id"] = request_id
        return response


def monotonic_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
