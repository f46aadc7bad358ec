from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tokenfaucet.api.errors import ApiError, api_error_handler, faucet_error_handler
from tokenfaucet.api.routes_public import public_router
from tokenfaucet.api.security import RateLimitMiddleware
from tokenfaucet.api.structured_logging import RequestLogMiddleware
from tokenfaucet.runtime.errors import FaucetError
from tokenfaucet.runtime.executor_boot import build_executor as _build_executor


def build_executor():
    """Build a FaucetExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `tokenfaucet.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def _parse_cors_origins() -> List[str]:
    """Parse FAUCET_CORS_ORIGINS.

    Policy:
      - unset/empty -> CORS disabled
      - "*" is rejected when FAUCET_MODE=prod
    """
    raw = os.environ.get("FAUCET_CORS_ORIGINS", "").strip()
    mode = os.environ.get("FAUCET_MODE", "prod").strip().lower()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in FAUCET_CORS_ORIGINS."
            )
        return ["*"]
    return origins


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config and attach app.state.executor
      - False: no executor; callers (tests) attach their own
    """
    # build_executor loads the config, which exports its mode to FAUCET_MODE.
    executor = build_executor() if boot_runtime else None
    mode = os.environ.get("FAUCET_MODE", "prod").strip().lower()

    if mode == "prod":
        app = FastAPI(title="Token Faucet API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Token Faucet API")

    app.state.executor = executor

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(FaucetError, faucet_error_handler)

    # --- Middleware (last added runs first) ---
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=cors_origins != ["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "X-Faucet-Account"],
        )

    app.include_router(public_router)
    return app
