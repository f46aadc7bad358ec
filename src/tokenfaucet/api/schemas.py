from __future__ import annotations

"""Pydantic request schemas for the HTTP API.

These exist only for input validation; the faucet state itself is plain JSON.
"""

from pydantic import BaseModel, Field


class PauseRequest(BaseModel):
    paused: bool = Field(..., description="New value of the pause flag")

    model_config = {"extra": "forbid"}


class SetMinterRequest(BaseModel):
    minter: str = Field(..., description="Address allowed to issue tokens, e.g. 0xabc...")

    model_config = {"extra": "forbid"}
