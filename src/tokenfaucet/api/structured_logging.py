# src/tokenfaucet/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from tokenfaucet.runtime.runtime_logging import log_event


def _falsy(v: str | None) -> bool:
    return (v or "").strip().lower() in {"0", "false", "no", "n", "off"}


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Configure stdlib logging for JSONL output (stderr).

    - Level from the argument, else FAUCET_LOG_LEVEL (default INFO).
    - Safe to call multiple times.
    """
    name = (level_name or os.environ.get("FAUCET_LOG_LEVEL") or "INFO").strip().upper()
    level = getattr(logging, name, logging.INFO)

    root = logging.getLogger()
    if getattr(root, "_faucet_configured", False):  # type: ignore[attr-defined]
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root.handlers = [handler]
    root.setLevel(level)
    setattr(root, "_faucet_configured", True)  # type: ignore[attr-defined]


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One `http_request` event per request.

    FAUCET_LOG_REQUESTS=0 disables it.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = not _falsy(os.environ.get("FAUCET_LOG_REQUESTS"))
        self._logger = logging.getLogger("tokenfaucet.http")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        started = time.monotonic()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id

        status = 500
        err: Optional[str] = None
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            status = int(response.status_code)
            response.headers.setdefault("x-request-id", request_id)
            return response
        except Exception as e:
            err = str(e)
            raise
        finally:
            log_event(
                self._logger,
                "http_request",
                request_id=request_id,
                method=request.method,
                path=str(request.url.path or ""),
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                client=str(request.client.host) if request.client else "",
                error=err,
            )
