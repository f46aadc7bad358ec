# src/tokenfaucet/runtime/dispenser.py
from __future__ import annotations

"""Rate-limited, capped dispenser ("faucet").

State lives under state["faucet"]:

  {
    "address": "0x...",            # identity used when minting through the ledger
    "token": "0x...",              # ledger address
    "admin": "0x...",              # controls the pause flag only
    "paused": bool,
    "faucet_amount": int,
    "cooldown_time": int,          # seconds
    "max_claim_amount": int,
    "last_claim_at": {"0x...": int},
    "total_claimed": {"0x...": int},
  }

Per-account eligibility is derived, never stored. Check order inside
request_tokens() is part of the contract:

  1) paused                       -> FaucetPausedError
  2) nothing left to claim        -> LifetimeLimitReachedError
  3) cooldown / would exceed cap  -> CooldownNotElapsedError
"""

from typing import Any, Dict, List, Optional

from tokenfaucet.ledger import token as ledger
from tokenfaucet.ledger.addresses import is_address, is_zero_address, normalize_address
from tokenfaucet.ledger.constants import COOLDOWN_TIME, FAUCET_AMOUNT, MAX_CLAIM_AMOUNT
from tokenfaucet.runtime.errors import (
    CooldownNotElapsedError,
    FaucetPausedError,
    InvalidArgumentError,
    LifetimeLimitReachedError,
    UnauthorizedError,
)

Json = Dict[str, Any]

# Derived account states, as reported by account_status().
STATUS_ELIGIBLE = "eligible"
STATUS_COOLDOWN = "cooldown"
STATUS_LIMIT_REACHED = "limit_reached"
STATUS_PAUSED = "paused"


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def init_faucet(
    state: Json,
    *,
    address: str,
    token_address: str,
    admin: str,
    faucet_amount: int = FAUCET_AMOUNT,
    cooldown_time: int = COOLDOWN_TIME,
    max_claim_amount: int = MAX_CLAIM_AMOUNT,
) -> Json:
    if isinstance(state.get("faucet"), dict):
        raise InvalidArgumentError(reason="faucet already initialized")
    if int(faucet_amount) <= 0 or int(max_claim_amount) <= 0 or int(cooldown_time) < 0:
        raise InvalidArgumentError(
            reason="invalid faucet parameters",
            details={
                "faucet_amount": int(faucet_amount),
                "cooldown_time": int(cooldown_time),
                "max_claim_amount": int(max_claim_amount),
            },
        )

    fc = {
        "address": normalize_address(address),
        "token": normalize_address(token_address),
        "admin": normalize_address(admin),
        "paused": False,
        "faucet_amount": int(faucet_amount),
        "cooldown_time": int(cooldown_time),
        "max_claim_amount": int(max_claim_amount),
        "last_claim_at": {},
        "total_claimed": {},
    }
    state["faucet"] = fc
    return fc


def _faucet_root(state: Json) -> Json:
    fc = state.get("faucet")
    if not isinstance(fc, dict):
        raise InvalidArgumentError(reason="faucet not initialized")
    fc.setdefault("last_claim_at", {})
    fc.setdefault("total_claimed", {})
    return fc


def _key(account: Any) -> str:
    return normalize_address(account) if is_address(account) else ""


# ----------------------------
# Reads
# ----------------------------


def last_claim_at(state: Json, account: str) -> int:
    fc = _as_dict(state.get("faucet"))
    return _as_int(_as_dict(fc.get("last_claim_at")).get(_key(account)), 0)


def total_claimed(state: Json, account: str) -> int:
    fc = _as_dict(state.get("faucet"))
    return _as_int(_as_dict(fc.get("total_claimed")).get(_key(account)), 0)


def is_paused(state: Json) -> bool:
    return bool(_as_dict(state.get("faucet")).get("paused", False))


def faucet_amount(state: Json) -> int:
    return _as_int(_as_dict(state.get("faucet")).get("faucet_amount"), FAUCET_AMOUNT)


def cooldown_time(state: Json) -> int:
    return _as_int(_as_dict(state.get("faucet")).get("cooldown_time"), COOLDOWN_TIME)


def max_claim_amount(state: Json) -> int:
    return _as_int(_as_dict(state.get("faucet")).get("max_claim_amount"), MAX_CLAIM_AMOUNT)


def admin(state: Json) -> str:
    return str(_as_dict(state.get("faucet")).get("admin") or "")


def remaining_allowance(state: Json, account: str) -> int:
    return max(0, max_claim_amount(state) - total_claimed(state, account))


def cooldown_elapsed(state: Json, account: str, now: int) -> bool:
    last = last_claim_at(state, account)
    return last == 0 or int(now) >= last + cooldown_time(state)


def next_claim_at(state: Json, account: str) -> int:
    """Earliest timestamp at which the cooldown allows another claim (0 = now)."""
    last = last_claim_at(state, account)
    return 0 if last == 0 else last + cooldown_time(state)


def account_status(state: Json, account: str, now: int) -> str:
    if is_paused(state):
        return STATUS_PAUSED
    if total_claimed(state, account) >= max_claim_amount(state):
        return STATUS_LIMIT_REACHED
    if not cooldown_elapsed(state, account, now):
        return STATUS_COOLDOWN
    return STATUS_ELIGIBLE


def can_claim(state: Json, account: str, now: int) -> bool:
    return account_status(state, account, now) == STATUS_ELIGIBLE


# ----------------------------
# Mutations
# ----------------------------


def request_tokens(state: Json, *, caller: str, now: int, events: Optional[List[Json]] = None) -> Json:
    """Claim FAUCET_AMOUNT for `caller` and mint it through the ledger.

    If the ledger rejects the mint, the dispenser's own per-account updates
    are restored before the ledger error propagates.
    """
    fc = _faucet_root(state)

    if not is_address(caller) or is_zero_address(caller):
        raise InvalidArgumentError(reason="caller must be a non-zero address", details={"caller": str(caller)})
    acct = normalize_address(caller)
    ts = int(now)

    if bool(fc.get("paused", False)):
        raise FaucetPausedError(details={"account": acct})

    amount = faucet_amount(state)
    claimed = total_claimed(state, acct)
    remaining = max(0, max_claim_amount(state) - claimed)
    if min(amount, remaining) == 0:
        raise LifetimeLimitReachedError(details={"account": acct, "total_claimed": str(claimed)})

    if not cooldown_elapsed(state, acct, ts):
        raise CooldownNotElapsedError(
            details={"account": acct, "condition": "cooldown_active", "next_claim_at": next_claim_at(state, acct)}
        )
    if amount > remaining:
        raise CooldownNotElapsedError(
            details={"account": acct, "condition": "claim_exceeds_limit", "remaining": str(remaining)}
        )

    last_map = fc["last_claim_at"]
    claimed_map = fc["total_claimed"]
    prev_last = last_map.get(acct)
    prev_claimed = claimed_map.get(acct)

    last_map[acct] = ts
    claimed_map[acct] = claimed + amount

    minted: List[Json] = []
    try:
        ledger.issue(state, caller=str(fc.get("address") or ""), account=acct, amount=amount, events=minted)
    except Exception:
        if prev_last is None:
            last_map.pop(acct, None)
        else:
            last_map[acct] = prev_last
        if prev_claimed is None:
            claimed_map.pop(acct, None)
        else:
            claimed_map[acct] = prev_claimed
        raise

    ev = {"event": "TokensClaimed", "account": acct, "amount": amount, "timestamp": ts}
    if events is not None:
        events.extend(minted)
        events.append(ev)
    return ev


def set_paused(state: Json, *, caller: str, paused: bool, events: Optional[List[Json]] = None) -> Json:
    """Admin-only. Emits FaucetPaused on every call, even if the value is unchanged."""
    fc = _faucet_root(state)

    who = normalize_address(caller) if is_address(caller) else str(caller or "")
    if who != fc.get("admin"):
        raise UnauthorizedError(reason="Only admin", details={"caller": str(caller)})

    fc["paused"] = bool(paused)

    ev = {"event": "FaucetPaused", "paused": bool(paused)}
    if events is not None:
        events.append(ev)
    return ev
