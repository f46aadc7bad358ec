# src/tokenfaucet/runtime/executor_boot.py

from __future__ import annotations

from typing import Optional

from tokenfaucet.runtime.deploy import write_deployment_info
from tokenfaucet.runtime.executor import FaucetExecutor
from tokenfaucet.runtime.faucet_config import FaucetConfig, load_faucet_config


def build_executor(cfg: Optional[FaucetConfig] = None) -> FaucetExecutor:
    """
    Build a FaucetExecutor from an explicit config or, if omitted, from
    FAUCET_CONFIG_PATH / FAUCET_* environment variables.

    A fresh DB is deployed on first boot; if deployment_info_path is set the
    addresses are (re)written there on every boot.
    """
    c = cfg or load_faucet_config()
    ex = FaucetExecutor(
        deployer=c.deployer,
        db_path=c.db_path,
        strategy=c.bootstrap,
        network=c.network,
    )
    if c.deployment_info_path:
        write_deployment_info(c.deployment_info_path, ex.deployment_info())
    return ex
