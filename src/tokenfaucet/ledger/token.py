# src/tokenfaucet/ledger/token.py
from __future__ import annotations

"""Supply-capped token ledger.

State lives under state["token"]:

  {
    "address": "0x...",        # this ledger's own identity
    "owner": "0x...",          # deployer; may rebind the minter
    "minter": "0x...",         # the only caller allowed to issue
    "max_supply": int,
    "total_supply": int,
    "balances": {"0x...": int, ...},
  }

Every mutating function either completes or raises before touching state.
"""

from typing import Any, Dict, List, Optional

from tokenfaucet.ledger.addresses import is_address, is_zero_address, normalize_address
from tokenfaucet.ledger.constants import MAX_SUPPLY, ZERO_ADDRESS
from tokenfaucet.runtime.errors import InvalidArgumentError, SupplyExceededError, UnauthorizedError

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _caller(v: Any) -> str:
    # Unparseable callers can never match a principal; keep them comparable.
    return normalize_address(v) if is_address(v) else str(v or "")


def init_token(
    state: Json,
    *,
    address: str,
    owner: str,
    minter: str,
    max_supply: int = MAX_SUPPLY,
) -> Json:
    """Create the ledger root. Refuses to overwrite an existing ledger."""
    if isinstance(state.get("token"), dict):
        raise InvalidArgumentError(reason="token ledger already initialized")
    if int(max_supply) <= 0:
        raise InvalidArgumentError(reason="max_supply must be > 0", details={"max_supply": int(max_supply)})

    tok = {
        "address": normalize_address(address),
        "owner": normalize_address(owner),
        "minter": normalize_address(minter),
        "max_supply": int(max_supply),
        "total_supply": 0,
        "balances": {},
    }
    state["token"] = tok
    return tok


def _token_root(state: Json) -> Json:
    tok = state.get("token")
    if not isinstance(tok, dict):
        raise InvalidArgumentError(reason="token ledger not initialized")
    if not isinstance(tok.get("balances"), dict):
        tok["balances"] = {}
    return tok


def issue(state: Json, *, caller: str, account: str, amount: int, events: Optional[List[Json]] = None) -> Json:
    """Mint `amount` units to `account`. Only the authorized minter may call."""
    tok = _token_root(state)

    if _caller(caller) != tok.get("minter"):
        raise UnauthorizedError(reason="Only faucet can mint", details={"caller": str(caller)})

    if not is_address(account) or is_zero_address(account):
        raise InvalidArgumentError(reason="mint to invalid address", details={"account": str(account)})
    acct = normalize_address(account)

    amt = _as_int(amount, 0)
    if amt <= 0:
        raise InvalidArgumentError(reason="amount must be > 0", details={"amount": str(amount)})

    total = _as_int(tok.get("total_supply"), 0)
    cap = _as_int(tok.get("max_supply"), MAX_SUPPLY)
    if total + amt > cap:
        raise SupplyExceededError(details={"total_supply": str(total), "amount": str(amt), "max_supply": str(cap)})

    balances = tok["balances"]
    balances[acct] = _as_int(balances.get(acct), 0) + amt
    tok["total_supply"] = total + amt

    ev = {"event": "Transfer", "from": ZERO_ADDRESS, "to": acct, "value": amt}
    if events is not None:
        events.append(ev)
    return ev


def set_authorized_minter(state: Json, *, caller: str, minter: str, events: Optional[List[Json]] = None) -> Json:
    """Rebind the minter. Owner-only; the ledger does not cap repeat calls."""
    tok = _token_root(state)

    if _caller(caller) != tok.get("owner"):
        raise UnauthorizedError(reason="Only owner", details={"caller": str(caller)})
    if not is_address(minter) or is_zero_address(minter):
        raise InvalidArgumentError(reason="minter must be a non-zero address", details={"minter": str(minter)})

    previous = str(tok.get("minter") or "")
    tok["minter"] = normalize_address(minter)

    ev = {"event": "MinterUpdated", "previous": previous, "current": tok["minter"]}
    if events is not None:
        events.append(ev)
    return ev


def balance_of(state: Json, account: str) -> int:
    if not is_address(account):
        return 0
    tok = _as_dict(state.get("token"))
    return _as_int(_as_dict(tok.get("balances")).get(normalize_address(account)), 0)


def total_supply(state: Json) -> int:
    return _as_int(_as_dict(state.get("token")).get("total_supply"), 0)


def max_supply(state: Json) -> int:
    return _as_int(_as_dict(state.get("token")).get("max_supply"), MAX_SUPPLY)


def minter(state: Json) -> str:
    return str(_as_dict(state.get("token")).get("minter") or "")


def owner(state: Json) -> str:
    return str(_as_dict(state.get("token")).get("owner") or "")
