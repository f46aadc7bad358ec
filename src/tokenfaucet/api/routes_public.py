from __future__ import annotations

from fastapi import APIRouter

from tokenfaucet.api.routes_public_parts.faucet import router as faucet_router
from tokenfaucet.api.routes_public_parts.health import router as health_router
from tokenfaucet.api.routes_public_parts.token import router as token_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(faucet_router, prefix="/v1", tags=["faucet"])
public_router.include_router(token_router, prefix="/v1", tags=["token"])
