# src/tokenfaucet/ledger/addresses.py
from __future__ import annotations

import hashlib
import re
from typing import Any

from tokenfaucet.ledger.constants import ZERO_ADDRESS

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def is_address(v: Any) -> bool:
    if not isinstance(v, str):
        return False
    return bool(_ADDRESS_RE.match(v.strip().lower()))


def normalize_address(v: Any) -> str:
    """Return the canonical (lowercase, stripped) form of an address.

    Raises ValueError for anything that is not 0x + 40 hex digits.
    """
    if not is_address(v):
        raise ValueError(f"invalid address: {v!r}")
    return str(v).strip().lower()


def is_zero_address(v: Any) -> bool:
    return is_address(v) and normalize_address(v) == ZERO_ADDRESS


def derive_contract_address(deployer: str, nonce: int) -> str:
    """Deterministic address of the `nonce`-th entity created by `deployer`.

    The same (deployer, nonce) pair always yields the same address, which lets
    a deployment compute a component's identity before creating it.
    """
    d = normalize_address(deployer)
    n = int(nonce)
    if n < 0:
        raise ValueError("nonce must be >= 0")
    digest = hashlib.sha256(f"{d}|{n}".encode("utf-8")).hexdigest()
    return "0x" + digest[-40:]
