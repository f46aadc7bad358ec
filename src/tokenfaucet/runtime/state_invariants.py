# src/tokenfaucet/runtime/state_invariants.py
from __future__ import annotations

"""State invariants for the faucet + ledger snapshot.

The executor calls check_invariants() on every working copy before it is
committed, and on the snapshot loaded at boot. A violation means the state
must not be persisted or served.
"""

from collections.abc import MutableMapping
from typing import Any, Dict, List

Json = Dict[str, Any]


class InvariantViolation(RuntimeError):
    pass


def _int_values(m: Any, where: str) -> List[int]:
    if not isinstance(m, dict):
        raise InvariantViolation(f"{where} must be dict, got {type(m)}")
    out: List[int] = []
    for k, v in m.items():
        if not isinstance(v, int) or isinstance(v, bool):
            raise InvariantViolation(f"{where}[{k!r}] must be int")
        if v < 0:
            raise InvariantViolation(f"{where}[{k!r}] is negative")
        out.append(v)
    return out


def check_invariants(st: Any) -> Json:
    """Raise InvariantViolation unless:

      - total_supply == sum(balances) and total_supply <= max_supply
      - every total_claimed entry is <= max_claim_amount
    """
    if not isinstance(st, MutableMapping):
        raise InvariantViolation(f"state must be MutableMapping, got {type(st)}")

    tok = st.get("token")
    if not isinstance(tok, dict):
        raise InvariantViolation("state['token'] missing")

    balances = _int_values(tok.get("balances"), "token.balances")
    total = int(tok.get("total_supply", -1))
    cap = int(tok.get("max_supply", 0))
    if total != sum(balances):
        raise InvariantViolation(f"total_supply {total} != sum(balances) {sum(balances)}")
    if total > cap:
        raise InvariantViolation(f"total_supply {total} exceeds max_supply {cap}")

    fc = st.get("faucet")
    if not isinstance(fc, dict):
        raise InvariantViolation("state['faucet'] missing")

    limit = int(fc.get("max_claim_amount", 0))
    for v in _int_values(fc.get("total_claimed"), "faucet.total_claimed"):
        if v > limit:
            raise InvariantViolation(f"total_claimed {v} exceeds max_claim_amount {limit}")
    _int_values(fc.get("last_claim_at"), "faucet.last_claim_at")

    return st  # type: ignore[return-value]


__all__ = ["InvariantViolation", "check_invariants"]
