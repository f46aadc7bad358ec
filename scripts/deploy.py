#!/usr/bin/env python3

"""Deploy the token ledger + faucet into a fresh SQLite DB.

Steps:
  1) ledger + faucet created under the deployer (two_phase or precomputed)
  2) faucet bound as the ledger's only minter
  3) addresses written to the deployment info JSON for the frontend

Usage:
  python3 scripts/deploy.py --deployer 0x... --db ./data/faucet.db \
      --out ./frontend/src/contracts.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tokenfaucet.api.structured_logging import configure_structured_logging
from tokenfaucet.env import load_dotenv_if_present
from tokenfaucet.runtime.deploy import STRATEGIES, STRATEGY_TWO_PHASE, write_deployment_info
from tokenfaucet.runtime.executor import ExecutorError, FaucetExecutor


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="faucet-deploy", description="Deploy the token ledger and faucet.")
    p.add_argument("--deployer", required=True, help="Deployer address (ledger owner, faucet admin).")
    p.add_argument("--db", required=True, help="SQLite DB path. Must not already hold a deployment.")
    p.add_argument("--network", default="local", help="Network label stored with the deployment.")
    p.add_argument("--strategy", default=STRATEGY_TWO_PHASE, choices=sorted(STRATEGIES))
    p.add_argument("--out", default="contracts.json", help="Deployment info JSON path.")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return p


def main(argv: list[str] | None = None) -> int:
    load_dotenv_if_present()
    args = build_parser().parse_args(argv)
    configure_structured_logging("DEBUG" if args.verbose else "INFO")
    log = logging.getLogger("faucet.deploy")

    if Path(args.db).exists():
        print(f"refusing to deploy: {args.db} already exists", file=sys.stderr)
        return 2

    try:
        ex = FaucetExecutor(deployer=args.deployer, db_path=args.db, strategy=args.strategy, network=args.network)
    except (ValueError, ExecutorError) as e:
        print(f"deployment failed: {e}", file=sys.stderr)
        return 1

    info = ex.deployment_info()
    out = write_deployment_info(args.out, info)
    log.debug("deployment info written to %s", out)

    print("Deployment Summary:")
    print("-------------------")
    print(f"Token      : {info['Token']}")
    print(f"Faucet     : {info['TokenFaucet']}")
    print(f"Network    : {info['Network']}")
    print(f"Minter     : {ex.faucet_config()['minter']}")
    print(f"Wrote      : {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
