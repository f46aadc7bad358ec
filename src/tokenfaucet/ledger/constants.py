# src/tokenfaucet/ledger/constants.py
from __future__ import annotations

"""Token + faucet monetary constants.

These values define the public rules of the faucet.
Changing them changes eligibility for every account.
"""

TOKEN_NAME: str = "Faucet Token"
TOKEN_SYMBOL: str = "FCT"

# Monetary precision (1 token = 1e18 units)
TOKEN_DECIMALS: int = 18
UNIT: int = 10**TOKEN_DECIMALS

# Supply cap: 1,000,000 tokens
MAX_SUPPLY_TOKENS: int = 1_000_000
MAX_SUPPLY: int = MAX_SUPPLY_TOKENS * UNIT

# Per-claim drip
FAUCET_AMOUNT: int = 10 * UNIT

# One claim per account per day
COOLDOWN_TIME: int = 24 * 60 * 60

# Lifetime cap per account (10 claims)
MAX_CLAIM_AMOUNT: int = 100 * UNIT

# Mint sentinel used as the "from" side of issuance transfers.
ZERO_ADDRESS: str = "0x" + "0" * 40
