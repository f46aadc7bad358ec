from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from tokenfaucet.api.errors import ApiError
from tokenfaucet.ledger.addresses import is_address, normalize_address

Json = Dict[str, Any]

# Event fields carrying token amounts; rendered as decimal strings.
_AMOUNT_FIELDS = ("amount", "value")


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _account_param(account: Any) -> str:
    """Normalize an address path param; 400 on anything malformed."""
    if not is_address(account):
        raise ApiError.bad_request("invalid_address", "account must be 0x followed by 40 hex digits", {"account": str(account)})
    return normalize_address(account)


def _amount(v: Any) -> str:
    return str(int(v))


def _render_event(ev: Json) -> Json:
    out = dict(ev)
    for k in _AMOUNT_FIELDS:
        if k in out:
            out[k] = _amount(out[k])
    return out


def _render_receipt(receipt: Json) -> Json:
    out = dict(receipt)
    out["events"] = [_render_event(e) for e in receipt.get("events") or [] if isinstance(e, dict)]
    return out
