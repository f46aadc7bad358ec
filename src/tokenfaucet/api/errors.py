from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from tokenfaucet.runtime.errors import FaucetError


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


# Failure kind -> HTTP status.
FAUCET_ERROR_STATUS: Dict[str, int] = {
    "invalid_argument": 400,
    "unauthorized": 403,
    "lifetime_limit_reached": 403,
    "supply_exceeded": 409,
    "cooldown_or_limit_not_elapsed": 429,
    "faucet_paused": 503,
}


def from_faucet_error(e: FaucetError) -> ApiError:
    return ApiError(FAUCET_ERROR_STATUS.get(e.code, 400), e.code, e.reason, dict(e.details or {}))


def error_response(err: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=err.status_code,
        content={"ok": False, "error": {"code": err.code, "message": err.message, "details": err.details}},
    )


async def api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ApiError)
    return error_response(exc)


async def faucet_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, FaucetError)
    return error_response(from_faucet_error(exc))
