# src/tokenfaucet/runtime/faucet_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from tokenfaucet.ledger.addresses import is_address, normalize_address
from tokenfaucet.runtime.deploy import STRATEGIES

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class FaucetConfig:
    mode: str  # "dev" | "testnet" | "prod"
    network: str

    # Single SQLite DB file for snapshot + receipts.
    db_path: str

    # Deployer: ledger owner and faucet admin.
    deployer: str
    bootstrap: str  # "two_phase" | "precomputed"

    # Where deployment addresses are written for the frontend ("" = skip).
    deployment_info_path: str

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_faucet_config(cfg: FaucetConfig) -> None:
    """Fail-fast validation for operator config."""
    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    if not is_address(cfg.deployer):
        raise ValueError(f"deployer must be a 0x-prefixed 20-byte hex address; got: {cfg.deployer!r}")

    if cfg.bootstrap not in STRATEGIES:
        raise ValueError(f"bootstrap must be one of {sorted(STRATEGIES)}; got: {cfg.bootstrap!r}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if str(cfg.log_level).upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_ALLOWED_LOG_LEVELS)}; got: {cfg.log_level!r}")


def default_faucet_config() -> FaucetConfig:
    # No default deployer: an operator must name the admin explicitly.
    return FaucetConfig(
        mode="prod",
        network="local",
        db_path="./data/faucet.db",
        deployer="",
        bootstrap="two_phase",
        deployment_info_path="",
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def _merge(raw: Json, d: FaucetConfig) -> FaucetConfig:
    deployer = _as_str(raw.get("deployer"), d.deployer).strip()
    return FaucetConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        network=_as_str(raw.get("network"), d.network),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        deployer=normalize_address(deployer) if is_address(deployer) else deployer,
        bootstrap=_as_str(raw.get("bootstrap"), d.bootstrap).strip().lower(),
        deployment_info_path=_as_str(raw.get("deployment_info_path"), d.deployment_info_path),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
    )


def read_faucet_config_file(path: str) -> FaucetConfig:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("faucet config must be a JSON object")

    cfg = _merge(raw, default_faucet_config())
    validate_faucet_config(cfg)
    return cfg


def faucet_config_from_env() -> FaucetConfig:
    env = os.environ
    raw = {
        "mode": env.get("FAUCET_MODE"),
        "network": env.get("FAUCET_NETWORK"),
        "db_path": env.get("FAUCET_DB_PATH"),
        "deployer": env.get("FAUCET_DEPLOYER"),
        "bootstrap": env.get("FAUCET_BOOTSTRAP"),
        "deployment_info_path": env.get("FAUCET_DEPLOYMENT_INFO_PATH"),
        "api_host": env.get("FAUCET_API_HOST"),
        "api_port": env.get("FAUCET_API_PORT"),
        "log_level": env.get("FAUCET_LOG_LEVEL"),
    }
    cfg = _merge(raw, default_faucet_config())
    validate_faucet_config(cfg)
    return cfg


def apply_faucet_config_to_env(cfg: FaucetConfig) -> None:
    validate_faucet_config(cfg)

    # The API app and SQLite pragmas read the mode from the environment.
    os.environ["FAUCET_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["FAUCET_LOG_LEVEL"] = cfg.log_level


def load_faucet_config(*, config_path: Optional[str] = None) -> FaucetConfig:
    p = config_path or os.environ.get("FAUCET_CONFIG_PATH")
    cfg = read_faucet_config_file(p) if p else faucet_config_from_env()
    apply_faucet_config_to_env(cfg)
    return cfg
