from __future__ import annotations

import pytest

from conftest import ALICE, BOB, DEPLOYER
from tokenfaucet.ledger import token as ledger
from tokenfaucet.ledger.constants import MAX_SUPPLY, UNIT, ZERO_ADDRESS
from tokenfaucet.runtime.errors import InvalidArgumentError, SupplyExceededError, UnauthorizedError

TOKEN = "0x" + "70" * 20
MINTER = "0x" + "f0" * 20


def _fresh(max_supply: int = MAX_SUPPLY) -> dict:
    st: dict = {}
    ledger.init_token(st, address=TOKEN, owner=DEPLOYER, minter=MINTER, max_supply=max_supply)
    return st


def test_initial_state() -> None:
    st = _fresh()
    assert ledger.max_supply(st) == 1_000_000 * 10**18
    assert ledger.total_supply(st) == 0
    assert ledger.balance_of(st, ALICE) == 0
    assert ledger.minter(st) == MINTER
    assert ledger.owner(st) == DEPLOYER


def test_issue_by_minter_updates_balance_and_supply() -> None:
    st = _fresh()
    events: list = []

    ev = ledger.issue(st, caller=MINTER, account=ALICE, amount=10 * UNIT, events=events)

    assert ev == {"event": "Transfer", "from": ZERO_ADDRESS, "to": ALICE, "value": 10 * UNIT}
    assert events == [ev]
    assert ledger.balance_of(st, ALICE) == 10 * UNIT
    assert ledger.total_supply(st) == 10 * UNIT


def test_issue_normalizes_account_case() -> None:
    st = _fresh()
    ledger.issue(st, caller=MINTER.upper().replace("0X", "0x"), account=ALICE.upper().replace("0X", "0x"), amount=5)
    assert ledger.balance_of(st, ALICE) == 5


def test_issue_rejects_non_minter() -> None:
    st = _fresh()
    for caller in (DEPLOYER, ALICE, "", "not-an-address"):
        with pytest.raises(UnauthorizedError) as e:
            ledger.issue(st, caller=caller, account=ALICE, amount=1)
        assert e.value.code == "unauthorized"
        assert e.value.reason == "Only faucet can mint"

    assert ledger.total_supply(st) == 0


def test_issue_enforces_max_supply_without_partial_effect() -> None:
    st = _fresh(max_supply=25)
    ledger.issue(st, caller=MINTER, account=ALICE, amount=20)

    with pytest.raises(SupplyExceededError) as e:
        ledger.issue(st, caller=MINTER, account=BOB, amount=6)
    assert e.value.reason == "Max supply exceeded"

    assert ledger.balance_of(st, BOB) == 0
    assert ledger.total_supply(st) == 20

    # Exactly reaching the cap is allowed.
    ledger.issue(st, caller=MINTER, account=BOB, amount=5)
    assert ledger.total_supply(st) == 25


@pytest.mark.parametrize("amount", [0, -1])
def test_issue_rejects_non_positive_amount(amount: int) -> None:
    st = _fresh()
    with pytest.raises(InvalidArgumentError):
        ledger.issue(st, caller=MINTER, account=ALICE, amount=amount)


def test_issue_rejects_zero_address() -> None:
    st = _fresh()
    with pytest.raises(InvalidArgumentError):
        ledger.issue(st, caller=MINTER, account=ZERO_ADDRESS, amount=1)


def test_set_authorized_minter_owner_only() -> None:
    st = _fresh()

    with pytest.raises(UnauthorizedError) as e:
        ledger.set_authorized_minter(st, caller=ALICE, minter=ALICE)
    assert e.value.reason == "Only owner"
    assert ledger.minter(st) == MINTER

    events: list = []
    ledger.set_authorized_minter(st, caller=DEPLOYER, minter=BOB, events=events)
    assert ledger.minter(st) == BOB
    assert events == [{"event": "MinterUpdated", "previous": MINTER, "current": BOB}]

    # The old minter lost its ability to issue.
    with pytest.raises(UnauthorizedError):
        ledger.issue(st, caller=MINTER, account=ALICE, amount=1)
    ledger.issue(st, caller=BOB, account=ALICE, amount=1)
    assert ledger.balance_of(st, ALICE) == 1


def test_init_token_refuses_reinit() -> None:
    st = _fresh()
    with pytest.raises(InvalidArgumentError):
        ledger.init_token(st, address=TOKEN, owner=DEPLOYER, minter=MINTER)


def test_reads_never_fail_on_garbage() -> None:
    st = _fresh()
    assert ledger.balance_of(st, "garbage") == 0
    assert ledger.balance_of({}, ALICE) == 0
    assert ledger.total_supply({}) == 0
