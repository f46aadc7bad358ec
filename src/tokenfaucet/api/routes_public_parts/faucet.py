from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from tokenfaucet.api.routes_public_parts.common import _account_param, _amount, _executor, _render_receipt
from tokenfaucet.api.schemas import PauseRequest
from tokenfaucet.api.security import require_caller
from tokenfaucet.runtime import dispenser

router = APIRouter()

Json = Dict[str, Any]


@router.get("/faucet/config")
def faucet_config(request: Request) -> Json:
    cfg = dict(_executor(request).faucet_config())
    for k in ("faucet_amount", "max_claim_amount", "max_supply"):
        cfg[k] = _amount(cfg[k])
    return {"ok": True, **cfg}


@router.post("/faucet/request")
def faucet_request(request: Request) -> Json:
    """Claim FAUCET_AMOUNT for the caller named in X-Faucet-Account.

    Returns the committed receipt; failures map to the faucet error kinds.
    """
    caller = require_caller(request)
    receipt = _executor(request).request_tokens(caller)
    return _render_receipt(receipt)


@router.get("/faucet/can-claim/{account}")
def faucet_can_claim(account: str, request: Request) -> Json:
    acct = _account_param(account)
    return {"ok": True, "account": acct, "can_claim": bool(_executor(request).can_claim(acct))}


@router.get("/faucet/allowance/{account}")
def faucet_allowance(account: str, request: Request) -> Json:
    acct = _account_param(account)
    return {"ok": True, "account": acct, "remaining_allowance": _amount(_executor(request).remaining_allowance(acct))}


@router.get("/faucet/accounts/{account}")
def faucet_account(account: str, request: Request) -> Json:
    acct = _account_param(account)
    ex = _executor(request)
    st = ex.read_state()
    return {
        "ok": True,
        "account": acct,
        "status": dispenser.account_status(st, acct, ex.now()),
        "last_claim_at": dispenser.last_claim_at(st, acct),
        "next_claim_at": dispenser.next_claim_at(st, acct),
        "total_claimed": _amount(dispenser.total_claimed(st, acct)),
        "remaining_allowance": _amount(dispenser.remaining_allowance(st, acct)),
    }


@router.post("/faucet/pause")
def faucet_pause(body: PauseRequest, request: Request) -> Json:
    caller = require_caller(request)
    receipt = _executor(request).set_paused(caller, body.paused)
    return _render_receipt(receipt)
