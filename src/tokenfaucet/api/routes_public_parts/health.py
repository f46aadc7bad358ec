from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Query, Request

from tokenfaucet.api.routes_public_parts.common import _executor, _render_receipt

router = APIRouter()

Json = Dict[str, Any]


@router.get("/health")
def health() -> Json:
    return {"ok": True}


@router.get("/contracts")
def contracts(request: Request) -> Json:
    """Deployed addresses (same shape as the frontend's contracts.json)."""
    return {"ok": True, **_executor(request).deployment_info()}


@router.get("/events")
def events(request: Request, limit: int = Query(default=50, ge=1, le=1000)) -> Json:
    receipts = _executor(request).receipts(limit=limit)
    return {"ok": True, "receipts": [_render_receipt(r) for r in receipts]}
