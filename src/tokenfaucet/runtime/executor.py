from __future__ import annotations

import copy
import hashlib
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from tokenfaucet.ledger import token as ledger
from tokenfaucet.ledger.addresses import normalize_address
from tokenfaucet.runtime import dispenser
from tokenfaucet.runtime.deploy import STRATEGY_TWO_PHASE, deploy_contracts, deployment_info
from tokenfaucet.runtime.errors import FaucetError
from tokenfaucet.runtime.runtime_logging import log_event
from tokenfaucet.runtime.sqlite_db import SqliteDB, SqliteFaucetStore, _canon_json
from tokenfaucet.runtime.state_invariants import InvariantViolation, check_invariants

Json = Dict[str, Any]

log = logging.getLogger("tokenfaucet.executor")

# Receipts kept in memory when running without a DB.
MAX_MEMORY_RECEIPTS = 1_000


class ExecutorError(RuntimeError):
    pass


def compute_receipt_id(receipt: Json) -> str:
    body = {k: v for k, v in receipt.items() if k != "receipt_id"}
    return hashlib.sha256(_canon_json(body).encode("utf-8")).hexdigest()


class FaucetExecutor:
    """Owns the ledger + faucet state and serializes every mutation.

    Each mutation:
      - samples the clock once
      - applies to a deep copy of the committed state
      - checks invariants on the copy
      - persists snapshot + receipt in one SQLite transaction (if a DB is set)
      - swaps the copy in as the committed state

    A failure at any step leaves the committed state untouched.
    """

    def __init__(
        self,
        *,
        deployer: str,
        db_path: Optional[str] = None,
        strategy: str = STRATEGY_TWO_PHASE,
        network: str = "local",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.deployer = normalize_address(deployer)
        self.db_path = str(db_path) if db_path else None
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._memory_receipts: List[Json] = []

        self._store: Optional[SqliteFaucetStore] = None
        if self.db_path:
            self._store = SqliteFaucetStore(db=SqliteDB(path=self.db_path))

        if self._store is not None and self._store.exists():
            self.state = self._store.read()
            try:
                check_invariants(self.state)
            except InvariantViolation as e:
                raise ExecutorError(f"persisted state violates invariants: {e}. Refuse to start.") from e

            st_deployer = str(self.state.get("deployer") or "")
            if st_deployer != self.deployer:
                raise ExecutorError(
                    f"deployer mismatch: db={st_deployer!r} executor={self.deployer!r}. Refuse to start."
                )
            log_event(log, "faucet_loaded", seq=int(self.state.get("seq", 0)), db_path=self.db_path)
        else:
            st, events = deploy_contracts(self.deployer, strategy=strategy, network=network)
            self._commit(st, op="deploy", caller=self.deployer, ts=self.now(), events=events)
            log_event(log, "faucet_deployed", strategy=strategy, **deployment_info(self.state))

    # ----------------------------
    # Internals
    # ----------------------------

    def now(self) -> int:
        return int(self._clock())

    def _refresh_from_store(self) -> None:
        """Reload the snapshot if another process committed to the same DB."""
        if self._store is None:
            return
        if self._store.seq() == int(self.state.get("seq", 0)):
            return
        st = self._store.read()
        check_invariants(st)
        self.state = st
        log_event(log, "faucet_reloaded", seq=int(st.get("seq", 0)), db_path=self.db_path)

    def _next_state_copy(self) -> Json:
        return copy.deepcopy(self.state)

    def _commit(self, work: Json, *, op: str, caller: str, ts: int, events: List[Json]) -> Json:
        check_invariants(work)

        seq = int(work.get("seq", 0)) + 1
        work["seq"] = seq
        receipt: Json = {
            "ok": True,
            "seq": seq,
            "op": op,
            "caller": str(caller),
            "timestamp": int(ts),
            "events": events,
        }
        receipt["receipt_id"] = compute_receipt_id(receipt)

        if self._store is not None:
            self._store.commit(work, receipt)
        else:
            self._memory_receipts.append(receipt)
            del self._memory_receipts[:-MAX_MEMORY_RECEIPTS]

        self.state = work
        log_event(log, "faucet_receipt", op=op, caller=str(caller), seq=seq, receipt_id=receipt["receipt_id"])
        return receipt

    def _mutate(self, op: str, caller: str, fn: Callable[[Json, int, List[Json]], Any]) -> Json:
        with self._lock:
            self._refresh_from_store()
            ts = self.now()
            work = self._next_state_copy()
            events: List[Json] = []
            try:
                fn(work, ts, events)
            except FaucetError as e:
                log_event(
                    log,
                    "faucet_rejected",
                    level=logging.WARNING,
                    op=op,
                    caller=str(caller),
                    code=e.code,
                    reason=e.reason,
                )
                raise
            return self._commit(work, op=op, caller=caller, ts=ts, events=events)

    # ----------------------------
    # Mutations
    # ----------------------------

    def request_tokens(self, caller: str) -> Json:
        return self._mutate(
            "request_tokens",
            caller,
            lambda st, ts, ev: dispenser.request_tokens(st, caller=caller, now=ts, events=ev),
        )

    def set_paused(self, caller: str, paused: bool) -> Json:
        return self._mutate(
            "set_paused",
            caller,
            lambda st, ts, ev: dispenser.set_paused(st, caller=caller, paused=paused, events=ev),
        )

    def set_authorized_minter(self, caller: str, minter: str) -> Json:
        return self._mutate(
            "set_authorized_minter",
            caller,
            lambda st, ts, ev: ledger.set_authorized_minter(st, caller=caller, minter=minter, events=ev),
        )

    def issue(self, caller: str, account: str, amount: int) -> Json:
        return self._mutate(
            "issue",
            caller,
            lambda st, ts, ev: ledger.issue(st, caller=caller, account=account, amount=amount, events=ev),
        )

    # ----------------------------
    # Reads (committed state only)
    # ----------------------------

    def read_state(self) -> Json:
        return self.state

    def balance_of(self, account: str) -> int:
        return ledger.balance_of(self.state, account)

    def total_supply(self) -> int:
        return ledger.total_supply(self.state)

    def can_claim(self, account: str) -> bool:
        return dispenser.can_claim(self.state, account, self.now())

    def remaining_allowance(self, account: str) -> int:
        return dispenser.remaining_allowance(self.state, account)

    def last_claim_at(self, account: str) -> int:
        return dispenser.last_claim_at(self.state, account)

    def total_claimed(self, account: str) -> int:
        return dispenser.total_claimed(self.state, account)

    def is_paused(self) -> bool:
        return dispenser.is_paused(self.state)

    def account_status(self, account: str) -> str:
        return dispenser.account_status(self.state, account, self.now())

    def deployment_info(self) -> Json:
        return deployment_info(self.state)

    def faucet_config(self) -> Json:
        st = self.state
        return {
            "token": str(st["token"]["address"]),
            "faucet": str(st["faucet"]["address"]),
            "admin": dispenser.admin(st),
            "owner": ledger.owner(st),
            "minter": ledger.minter(st),
            "paused": dispenser.is_paused(st),
            "faucet_amount": dispenser.faucet_amount(st),
            "cooldown_time": dispenser.cooldown_time(st),
            "max_claim_amount": dispenser.max_claim_amount(st),
            "max_supply": ledger.max_supply(st),
        }

    def receipts(self, *, limit: int = 50) -> List[Json]:
        if self._store is not None:
            return self._store.receipts(limit=limit)
        n = max(1, min(int(limit), MAX_MEMORY_RECEIPTS))
        return list(reversed(self._memory_receipts[-n:]))
