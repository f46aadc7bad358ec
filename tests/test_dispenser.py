from __future__ import annotations

import pytest

from conftest import ALICE, BOB, DEPLOYER, ONE_DAY
from tokenfaucet.ledger import token as ledger
from tokenfaucet.ledger.constants import COOLDOWN_TIME, FAUCET_AMOUNT, MAX_CLAIM_AMOUNT, UNIT
from tokenfaucet.runtime import dispenser
from tokenfaucet.runtime.deploy import deploy_contracts
from tokenfaucet.runtime.errors import (
    CooldownNotElapsedError,
    FaucetPausedError,
    LifetimeLimitReachedError,
    SupplyExceededError,
    UnauthorizedError,
)
from tokenfaucet.runtime.state_invariants import check_invariants

T0 = 1_700_000_000


def _state(**kw) -> dict:
    st, _ = deploy_contracts(DEPLOYER, **kw)
    return st


def test_configuration() -> None:
    st = _state()
    assert dispenser.faucet_amount(st) == FAUCET_AMOUNT == 10 * UNIT
    assert dispenser.cooldown_time(st) == COOLDOWN_TIME == ONE_DAY
    assert dispenser.max_claim_amount(st) == MAX_CLAIM_AMOUNT == 100 * UNIT
    assert dispenser.admin(st) == DEPLOYER
    assert dispenser.is_paused(st) is False


def test_successful_claim_updates_state_and_emits_events() -> None:
    st = _state()
    events: list = []

    ev = dispenser.request_tokens(st, caller=ALICE, now=T0, events=events)

    assert ev == {"event": "TokensClaimed", "account": ALICE, "amount": FAUCET_AMOUNT, "timestamp": T0}
    assert [e["event"] for e in events] == ["Transfer", "TokensClaimed"]
    assert ledger.balance_of(st, ALICE) == FAUCET_AMOUNT
    assert dispenser.last_claim_at(st, ALICE) == T0
    assert dispenser.total_claimed(st, ALICE) == FAUCET_AMOUNT
    check_invariants(st)


def test_cooldown_scenario() -> None:
    st = _state()
    dispenser.request_tokens(st, caller=ALICE, now=T0)

    with pytest.raises(CooldownNotElapsedError) as e:
        dispenser.request_tokens(st, caller=ALICE, now=T0)
    assert e.value.reason == "Cooldown period not elapsed or limit reached"
    assert e.value.details["condition"] == "cooldown_active"
    assert e.value.details["next_claim_at"] == T0 + ONE_DAY

    with pytest.raises(CooldownNotElapsedError):
        dispenser.request_tokens(st, caller=ALICE, now=T0 + ONE_DAY - 1)

    dispenser.request_tokens(st, caller=ALICE, now=T0 + ONE_DAY + 1)
    assert ledger.balance_of(st, ALICE) == 2 * FAUCET_AMOUNT


def test_cooldown_boundary_is_inclusive() -> None:
    st = _state()
    dispenser.request_tokens(st, caller=ALICE, now=T0)
    assert dispenser.can_claim(st, ALICE, T0 + ONE_DAY - 1) is False
    assert dispenser.can_claim(st, ALICE, T0 + ONE_DAY) is True
    dispenser.request_tokens(st, caller=ALICE, now=T0 + ONE_DAY)


def test_lifetime_limit() -> None:
    st = _state()
    now = T0
    for i in range(10):
        if i > 0:
            now += ONE_DAY
        dispenser.request_tokens(st, caller=ALICE, now=now)

    assert dispenser.remaining_allowance(st, ALICE) == 0
    assert dispenser.total_claimed(st, ALICE) == MAX_CLAIM_AMOUNT
    assert dispenser.account_status(st, ALICE, now + ONE_DAY) == dispenser.STATUS_LIMIT_REACHED

    # Limit wins over cooldown: both immediate and delayed attempts report it.
    for t in (now, now + ONE_DAY, now + 365 * ONE_DAY):
        with pytest.raises(LifetimeLimitReachedError) as e:
            dispenser.request_tokens(st, caller=ALICE, now=t)
        assert e.value.reason == "Lifetime claim limit reached"

    assert dispenser.remaining_allowance(st, BOB) == MAX_CLAIM_AMOUNT
    assert ledger.balance_of(st, ALICE) == MAX_CLAIM_AMOUNT
    check_invariants(st)


def test_claim_that_would_exceed_cap_is_rejected_with_shared_error() -> None:
    # 25 cap with 10 per claim: third claim would overshoot with 5 remaining.
    st = _state(faucet_amount=10, max_claim_amount=25, cooldown_time=0)
    dispenser.request_tokens(st, caller=ALICE, now=T0)
    dispenser.request_tokens(st, caller=ALICE, now=T0)

    with pytest.raises(CooldownNotElapsedError) as e:
        dispenser.request_tokens(st, caller=ALICE, now=T0)
    assert e.value.details["condition"] == "claim_exceeds_limit"
    assert dispenser.total_claimed(st, ALICE) == 20


def test_accounts_are_independent() -> None:
    st = _state()
    dispenser.request_tokens(st, caller=ALICE, now=T0)
    dispenser.request_tokens(st, caller=BOB, now=T0)

    assert ledger.balance_of(st, ALICE) == FAUCET_AMOUNT
    assert ledger.balance_of(st, BOB) == FAUCET_AMOUNT
    with pytest.raises(CooldownNotElapsedError):
        dispenser.request_tokens(st, caller=ALICE, now=T0 + 10)


def test_pause_gate() -> None:
    st = _state()
    dispenser.request_tokens(st, caller=BOB, now=T0)

    events: list = []
    dispenser.set_paused(st, caller=DEPLOYER, paused=True, events=events)
    assert events == [{"event": "FaucetPaused", "paused": True}]
    assert dispenser.is_paused(st) is True
    assert dispenser.can_claim(st, ALICE, T0) is False
    assert dispenser.account_status(st, BOB, T0) == dispenser.STATUS_PAUSED

    # Paused is reported before cooldown.
    for who in (ALICE, BOB):
        with pytest.raises(FaucetPausedError) as e:
            dispenser.request_tokens(st, caller=who, now=T0 + 1)
        assert e.value.reason == "Faucet is paused"

    dispenser.set_paused(st, caller=DEPLOYER, paused=False)
    dispenser.request_tokens(st, caller=ALICE, now=T0 + 2)
    assert ledger.balance_of(st, ALICE) == FAUCET_AMOUNT


def test_set_paused_admin_only() -> None:
    st = _state()
    with pytest.raises(UnauthorizedError) as e:
        dispenser.set_paused(st, caller=ALICE, paused=True)
    assert e.value.reason == "Only admin"
    assert dispenser.is_paused(st) is False


def test_set_paused_emits_even_when_unchanged() -> None:
    st = _state()
    events: list = []
    dispenser.set_paused(st, caller=DEPLOYER, paused=False, events=events)
    dispenser.set_paused(st, caller=DEPLOYER, paused=False, events=events)
    assert events == [{"event": "FaucetPaused", "paused": False}] * 2


def test_ledger_failure_rolls_back_dispenser_updates() -> None:
    st = _state(max_supply=15 * UNIT)
    dispenser.request_tokens(st, caller=ALICE, now=T0)

    events: list = []
    with pytest.raises(SupplyExceededError):
        dispenser.request_tokens(st, caller=BOB, now=T0, events=events)

    assert events == []
    assert "0x" + "bb" * 20 not in st["faucet"]["last_claim_at"]
    assert dispenser.total_claimed(st, BOB) == 0
    assert dispenser.last_claim_at(st, BOB) == 0
    assert ledger.balance_of(st, BOB) == 0
    check_invariants(st)


def test_ledger_failure_restores_previous_values() -> None:
    st = _state(max_supply=15 * UNIT, cooldown_time=0)
    dispenser.request_tokens(st, caller=ALICE, now=T0)

    with pytest.raises(SupplyExceededError):
        dispenser.request_tokens(st, caller=ALICE, now=T0 + 5)

    assert dispenser.last_claim_at(st, ALICE) == T0
    assert dispenser.total_claimed(st, ALICE) == FAUCET_AMOUNT


def test_reads_are_idempotent() -> None:
    st = _state()
    dispenser.request_tokens(st, caller=ALICE, now=T0)
    first = (dispenser.can_claim(st, ALICE, T0 + 5), dispenser.remaining_allowance(st, ALICE))
    for _ in range(3):
        assert (dispenser.can_claim(st, ALICE, T0 + 5), dispenser.remaining_allowance(st, ALICE)) == first
    assert first == (False, 90 * UNIT)


def test_fresh_account_can_claim() -> None:
    st = _state()
    assert dispenser.can_claim(st, ALICE, T0) is True
    assert dispenser.next_claim_at(st, ALICE) == 0
    assert dispenser.account_status(st, ALICE, T0) == dispenser.STATUS_ELIGIBLE
