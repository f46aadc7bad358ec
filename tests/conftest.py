from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "tokenfaucet" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

DEPLOYER = "0x" + "11" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20

ONE_DAY = 24 * 60 * 60


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.t = int(start)

    def __call__(self) -> float:
        return float(self.t)

    def increase(self, seconds: int) -> int:
        self.t += int(seconds)
        return self.t


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
