from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from tokenfaucet.api.routes_public_parts.common import _account_param, _amount, _executor, _render_receipt
from tokenfaucet.api.schemas import SetMinterRequest
from tokenfaucet.api.security import require_caller
from tokenfaucet.ledger import token as ledger
from tokenfaucet.ledger.constants import TOKEN_DECIMALS, TOKEN_NAME, TOKEN_SYMBOL

router = APIRouter()

Json = Dict[str, Any]


@router.get("/token/balance/{account}")
def token_balance(account: str, request: Request) -> Json:
    acct = _account_param(account)
    return {"ok": True, "account": acct, "balance": _amount(_executor(request).balance_of(acct))}


@router.get("/token/supply")
def token_supply(request: Request) -> Json:
    st = _executor(request).read_state()
    return {
        "ok": True,
        "name": TOKEN_NAME,
        "symbol": TOKEN_SYMBOL,
        "decimals": TOKEN_DECIMALS,
        "total_supply": _amount(ledger.total_supply(st)),
        "max_supply": _amount(ledger.max_supply(st)),
    }


@router.post("/token/minter")
def token_set_minter(body: SetMinterRequest, request: Request) -> Json:
    caller = require_caller(request)
    receipt = _executor(request).set_authorized_minter(caller, body.minter)
    return _render_receipt(receipt)
