# src/tokenfaucet/runtime/deploy.py
from __future__ import annotations

"""Initial deployment of the ledger + dispenser pair.

The ledger wants the dispenser as its only minter, while the dispenser needs
the ledger's address at construction. Two strategies resolve the cycle:

  two_phase:
    1) ledger created with the deployer as placeholder minter
    2) dispenser created pointing at the ledger
    3) owner rebinds the minter to the dispenser
    All three steps build one state dict that is committed as a whole, so no
    other caller can observe (or use) the placeholder minter.

  precomputed:
    the dispenser's address is derived before anything is created and the
    ledger is constructed with it directly; no rebind step.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from tokenfaucet.ledger import token as ledger
from tokenfaucet.ledger.addresses import derive_contract_address, normalize_address
from tokenfaucet.ledger.constants import COOLDOWN_TIME, FAUCET_AMOUNT, MAX_CLAIM_AMOUNT, MAX_SUPPLY
from tokenfaucet.runtime import dispenser
from tokenfaucet.runtime.state_invariants import check_invariants

Json = Dict[str, Any]

STRATEGY_TWO_PHASE = "two_phase"
STRATEGY_PRECOMPUTED = "precomputed"
STRATEGIES = {STRATEGY_TWO_PHASE, STRATEGY_PRECOMPUTED}

# Creation nonces of the two components under a deployer.
TOKEN_NONCE = 0
FAUCET_NONCE = 1


def deploy_contracts(
    deployer: str,
    *,
    strategy: str = STRATEGY_TWO_PHASE,
    network: str = "local",
    max_supply: int = MAX_SUPPLY,
    faucet_amount: int = FAUCET_AMOUNT,
    cooldown_time: int = COOLDOWN_TIME,
    max_claim_amount: int = MAX_CLAIM_AMOUNT,
) -> Tuple[Json, List[Json]]:
    """Build the genesis state. Returns (state, events emitted while deploying)."""
    if strategy not in STRATEGIES:
        raise ValueError(f"strategy must be one of {sorted(STRATEGIES)}; got: {strategy!r}")

    owner = normalize_address(deployer)
    token_address = derive_contract_address(owner, TOKEN_NONCE)
    faucet_address = derive_contract_address(owner, FAUCET_NONCE)

    state: Json = {"deployer": owner, "network": str(network), "seq": 0}
    events: List[Json] = []

    if strategy == STRATEGY_PRECOMPUTED:
        ledger.init_token(
            state, address=token_address, owner=owner, minter=faucet_address, max_supply=max_supply
        )
    else:
        ledger.init_token(state, address=token_address, owner=owner, minter=owner, max_supply=max_supply)

    dispenser.init_faucet(
        state,
        address=faucet_address,
        token_address=token_address,
        admin=owner,
        faucet_amount=faucet_amount,
        cooldown_time=cooldown_time,
        max_claim_amount=max_claim_amount,
    )

    if strategy == STRATEGY_TWO_PHASE:
        ledger.set_authorized_minter(state, caller=owner, minter=faucet_address, events=events)

    check_invariants(state)
    return state, events


def deployment_info(state: Json) -> Json:
    """Addresses in the shape the frontend's contracts.json expects."""
    tok = state.get("token") if isinstance(state.get("token"), dict) else {}
    fc = state.get("faucet") if isinstance(state.get("faucet"), dict) else {}
    return {
        "Token": str(tok.get("address") or ""),
        "TokenFaucet": str(fc.get("address") or ""),
        "Network": str(state.get("network") or ""),
    }


def write_deployment_info(path: str, info: Json) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(info, indent=2) + "\n", encoding="utf-8")
    return p
