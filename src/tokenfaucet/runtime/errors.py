from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass
class FaucetError(Exception):
    """Canonical error type for ledger and dispenser failures.

    `code` is the stable failure kind; `reason` is the human-readable message
    surfaced to callers.
    """

    code: str
    reason: str
    details: Optional[Json] = None

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


@dataclass
class UnauthorizedError(FaucetError):
    code: str = "unauthorized"
    reason: str = "Unauthorized"
    details: Optional[Json] = None


@dataclass
class FaucetPausedError(FaucetError):
    code: str = "faucet_paused"
    reason: str = "Faucet is paused"
    details: Optional[Json] = None


@dataclass
class CooldownNotElapsedError(FaucetError):
    """Shared by "too soon" and "claim would exceed the cap".

    details["condition"] tells the two apart.
    """

    code: str = "cooldown_or_limit_not_elapsed"
    reason: str = "Cooldown period not elapsed or limit reached"
    details: Optional[Json] = None


@dataclass
class LifetimeLimitReachedError(FaucetError):
    code: str = "lifetime_limit_reached"
    reason: str = "Lifetime claim limit reached"
    details: Optional[Json] = None


@dataclass
class SupplyExceededError(FaucetError):
    code: str = "supply_exceeded"
    reason: str = "Max supply exceeded"
    details: Optional[Json] = None


@dataclass
class InvalidArgumentError(FaucetError):
    code: str = "invalid_argument"
    reason: str = "Invalid argument"
    details: Optional[Json] = None


__all__ = [
    "CooldownNotElapsedError",
    "FaucetError",
    "FaucetPausedError",
    "InvalidArgumentError",
    "LifetimeLimitReachedError",
    "SupplyExceededError",
    "UnauthorizedError",
]
