from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest

from conftest import DEPLOYER
from tokenfaucet.ledger.addresses import derive_contract_address

ROOT = Path(__file__).resolve().parents[1]


def _load_deploy():
    spec = importlib.util.spec_from_file_location("faucet_deploy_script", ROOT / "scripts" / "deploy.py")
    assert spec is not None and spec.loader is not None
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


@pytest.fixture
def deploy(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.setenv("FAUCET_DOTENV_PATH", str(tmp_path / "missing.env"))
    mod = _load_deploy()
    # Keep pytest's log capture handlers on the root logger.
    monkeypatch.setattr(mod, "configure_structured_logging", lambda *a, **k: None)
    return mod


def test_deploy_writes_info_and_summary(deploy, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "faucet.db"
    out = tmp_path / "frontend" / "src" / "contracts.json"

    rc = deploy.main(["--deployer", DEPLOYER, "--db", str(db), "--out", str(out), "--network", "sepolia"])
    assert rc == 0

    info = json.loads(out.read_text(encoding="utf-8"))
    assert info == {
        "Token": derive_contract_address(DEPLOYER, 0),
        "TokenFaucet": derive_contract_address(DEPLOYER, 1),
        "Network": "sepolia",
    }

    printed = capsys.readouterr().out
    assert "Deployment Summary:" in printed
    assert info["TokenFaucet"] in printed


def test_deploy_refuses_existing_db(deploy, tmp_path: Path) -> None:
    db = tmp_path / "faucet.db"
    out = tmp_path / "contracts.json"
    assert deploy.main(["--deployer", DEPLOYER, "--db", str(db), "--out", str(out)]) == 0
    assert deploy.main(["--deployer", DEPLOYER, "--db", str(db), "--out", str(out)]) == 2


def test_deploy_rejects_bad_deployer(deploy, tmp_path: Path) -> None:
    db = tmp_path / "faucet.db"
    assert deploy.main(["--deployer", "0xnope", "--db", str(db), "--out", str(tmp_path / "c.json")]) == 1
    assert not db.exists()
